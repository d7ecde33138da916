"""Manifest transform pipeline.

Built-in stages run first, in a fixed order: URL prefix rewriting, then the
cache-bust exemption flag. Caller transforms follow in the order given. Every
stage output is re-checked for structural problems and duplicate URLs, and
warnings from all stages are concatenated. Any other exception raised by a
caller transform is reported as a ``TransformError`` naming the transform.
"""

from __future__ import annotations

import dataclasses
import logging
from re import Pattern
from typing import Any, Callable, Mapping, Sequence

from sw_precache.core.errors import ManifestStructureError, PrecacheError, TransformError
from sw_precache.manifest import ManifestEntry, TransformResult, check_manifest

logger = logging.getLogger(__name__)

ManifestTransform = Callable[[list[ManifestEntry]], Any]


def modify_url_prefix(prefixes: Mapping[str, str]) -> ManifestTransform:
    rules = list(prefixes.items())

    def _transform(manifest: list[ManifestEntry]) -> TransformResult:
        rewritten: list[ManifestEntry] = []
        for entry in manifest:
            url = entry.url
            for prefix, replacement in rules:
                if url.startswith(prefix):
                    url = replacement + url[len(prefix) :]
                    break
            rewritten.append(entry if url == entry.url else dataclasses.replace(entry, url=url))
        return TransformResult(manifest=rewritten)

    _transform.__name__ = "modifyUrlPrefix"
    return _transform


def dont_cache_bust(pattern: Pattern[str]) -> ManifestTransform:
    def _transform(manifest: list[ManifestEntry]) -> TransformResult:
        return TransformResult(
            manifest=[
                dataclasses.replace(entry, cache_bust=False) if pattern.search(entry.url) else entry
                for entry in manifest
            ]
        )

    _transform.__name__ = "dontCacheBustUrlsMatching"
    return _transform


def _transform_name(transform: Callable[..., Any]) -> str:
    return getattr(transform, "__name__", None) or type(transform).__name__


def _coerce_result(raw: Any, name: str) -> TransformResult:
    if isinstance(raw, TransformResult):
        manifest, warnings = raw.manifest, raw.warnings
    elif isinstance(raw, Mapping) and "manifest" in raw:
        manifest, warnings = raw["manifest"], raw.get("warnings") or []
    elif isinstance(raw, (list, tuple)):
        manifest, warnings = raw, []
    else:
        raise ManifestStructureError(
            f"Manifest transform {name} returned {type(raw).__name__}, expected a manifest",
            detail={"transform": name},
        )
    if isinstance(warnings, str):
        warnings = [warnings]
    return TransformResult(
        manifest=[ManifestEntry.from_value(item) for item in manifest],
        warnings=[str(item) for item in warnings],
    )


def apply_transforms(
    manifest: Sequence[ManifestEntry],
    transforms: Sequence[Callable[..., Any]],
) -> TransformResult:
    current = TransformResult(manifest=list(manifest))
    for transform in transforms:
        name = _transform_name(transform)
        try:
            raw = transform(list(current.manifest))
        except PrecacheError as exc:
            exc.detail.setdefault("transform", name)
            raise
        except Exception as exc:
            raise TransformError(
                f"Manifest transform {name} raised {type(exc).__name__}: {exc}", transform=name
            ) from exc
        try:
            result = _coerce_result(raw, name)
            check_manifest(result.manifest)
        except ManifestStructureError as exc:
            exc.detail.setdefault("transform", name)
            raise
        logger.debug(
            "Transform pipeline: %s produced %d entries, %d warnings",
            name,
            len(result.manifest),
            len(result.warnings),
        )
        current = TransformResult(manifest=result.manifest, warnings=current.warnings + result.warnings)
    return current


def run_transforms(
    manifest: Sequence[ManifestEntry],
    *,
    url_prefixes: Mapping[str, str] | None = None,
    dont_cache_bust_urls_matching: Pattern[str] | None = None,
    manifest_transforms: Sequence[Callable[..., Any]] = (),
) -> TransformResult:
    stages: list[Callable[..., Any]] = []
    if url_prefixes:
        stages.append(modify_url_prefix(url_prefixes))
    if dont_cache_bust_urls_matching is not None:
        stages.append(dont_cache_bust(dont_cache_bust_urls_matching))
    stages.extend(manifest_transforms)
    return apply_transforms(manifest, stages)
