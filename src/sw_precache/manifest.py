"""Manifest entries, transform results and the manifest assembler."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from sw_precache.core.errors import CollisionError, ManifestStructureError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManifestEntry:
    url: str
    revision: str
    size: int | None = None
    cache_bust: bool = True

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"url": self.url, "revision": self.revision}
        if self.size is not None:
            payload["size"] = self.size
        if not self.cache_bust:
            payload["cacheBust"] = False
        return payload

    def as_precache_record(self) -> dict[str, Any]:
        """Serialisable form for a service worker; ``size`` is build-time only."""
        payload: dict[str, Any] = {"url": self.url, "revision": self.revision}
        if not self.cache_bust:
            payload["cacheBust"] = False
        return payload

    @classmethod
    def from_value(cls, value: Any) -> "ManifestEntry":
        if isinstance(value, ManifestEntry):
            return value
        if not isinstance(value, Mapping):
            raise ManifestStructureError(
                f"Manifest entries must be ManifestEntry values or mappings, got {type(value).__name__}"
            )
        url = value.get("url")
        if "revision" not in value or value.get("revision") is None:
            raise ManifestStructureError(f"Manifest entry for {url!r} has no revision", url=url)
        cache_bust = value.get("cache_bust", value.get("cacheBust", True))
        return cls(
            url=url,
            revision=value["revision"],
            size=value.get("size"),
            cache_bust=bool(cache_bust),
        )


@dataclass
class TransformResult:
    manifest: list[ManifestEntry]
    warnings: list[str] = field(default_factory=list)


def check_manifest(entries: Sequence[ManifestEntry]) -> None:
    """Raise if any entry is malformed or any URL appears twice."""
    seen: set[str] = set()
    for entry in entries:
        if not isinstance(entry.url, str) or not entry.url:
            raise ManifestStructureError("Manifest entry has an empty url", url=entry.url)
        if not isinstance(entry.revision, str) or not entry.revision:
            raise ManifestStructureError(f"Manifest entry for {entry.url} has an invalid revision", url=entry.url)
        if entry.size is not None and (
            isinstance(entry.size, bool) or not isinstance(entry.size, int) or entry.size < 0
        ):
            raise ManifestStructureError(f"Manifest entry for {entry.url} has an invalid size", url=entry.url)
        if entry.url in seen:
            raise CollisionError(f"Duplicate manifest URL: {entry.url}", url=entry.url)
        seen.add(entry.url)


def assemble_manifest(
    asset_entries: Iterable[ManifestEntry],
    templated_entries: Iterable[ManifestEntry],
) -> list[ManifestEntry]:
    """Merge real-asset and templated-URL entries, ordered by URL."""
    assets = list(asset_entries)
    templated = list(templated_entries)
    asset_urls = {entry.url for entry in assets}
    for entry in templated:
        if entry.url in asset_urls:
            raise CollisionError(
                f"templatedUrls entry {entry.url} collides with a file matched by globPatterns",
                url=entry.url,
            )
    merged = sorted(assets + templated, key=lambda entry: entry.url)
    check_manifest(merged)
    logger.debug(
        "Manifest assembler: %d asset entries, %d templated entries", len(assets), len(templated)
    )
    return merged


def manifest_size(entries: Iterable[ManifestEntry]) -> int:
    return sum(entry.size or 0 for entry in entries)
