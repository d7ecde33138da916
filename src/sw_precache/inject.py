"""Manifest injection into an existing service-worker source."""

from __future__ import annotations

import json
import logging
import re
from typing import Sequence

from sw_precache.core.errors import PlaceholderError
from sw_precache.manifest import ManifestEntry

logger = logging.getLogger(__name__)

INJECTION_POINT = re.compile(r"(\.precache\()\s*\[\s*\]\s*(\))")
INJECTION_POINT_HINT = ".precache([])"


def serialize_manifest(entries: Sequence[ManifestEntry]) -> str:
    return json.dumps([entry.as_precache_record() for entry in entries], indent=2)


def locate_injection_point(source: str) -> re.Match[str]:
    matches = list(INJECTION_POINT.finditer(source))
    if not matches:
        raise PlaceholderError(
            f"Unable to find a place to inject the manifest: the service worker must contain "
            f"exactly one {INJECTION_POINT_HINT} call, found none.",
            occurrences=0,
        )
    if len(matches) > 1:
        raise PlaceholderError(
            f"The service worker contains {len(matches)} {INJECTION_POINT_HINT} calls; "
            "exactly one is required so the injection target is unambiguous.",
            occurrences=len(matches),
        )
    return matches[0]


def inject_manifest_text(source: str, entries: Sequence[ManifestEntry]) -> str:
    """Replace the empty ``.precache([])`` argument with the serialised manifest.

    Text outside the matched call is returned unchanged.
    """
    match = locate_injection_point(source)
    replacement = f"{match.group(1)}{serialize_manifest(entries)}{match.group(2)}"
    logger.debug("Manifest injector: replacing span %d-%d", match.start(), match.end())
    return source[: match.start()] + replacement + source[match.end() :]
