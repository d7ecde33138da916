"""Revision calculator for matched files and templated URLs."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Mapping, Sequence, Union

from sw_precache.collector import AssetMatch
from sw_precache.core.errors import AssetReadError, ConfigurationError
from sw_precache.core.hashing import hash_concat, hash_file
from sw_precache.core.patterns import resolve_patterns
from sw_precache.manifest import ManifestEntry

logger = logging.getLogger(__name__)

TemplatedSource = Union[str, Sequence[str]]


def _raise_failures(failures: dict[str, str], what: str) -> None:
    first = sorted(failures)[0]
    raise AssetReadError(
        f"Unable to fingerprint {len(failures)} {what}, first: {first}: {failures[first]}",
        path=first,
        failures=failures,
    )


def revision_assets(matches: Sequence[AssetMatch], *, max_workers: int | None = None) -> list[ManifestEntry]:
    """Fingerprint every matched file; all files are attempted before failing."""
    if not matches:
        return []
    entries: list[ManifestEntry] = []
    failures: dict[str, str] = {}
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(hash_file, match.absolute_path): match for match in matches}
        for future in as_completed(futures):
            match = futures[future]
            try:
                digest = future.result()
            except AssetReadError as exc:
                failures.update(exc.failures)
                continue
            logger.debug("Revision calculator: %s -> %s", match.relative_url, digest.revision)
            entries.append(
                ManifestEntry(url=match.relative_url, revision=digest.revision, size=match.size_bytes)
            )
    if failures:
        _raise_failures(failures, "file(s)")
    return sorted(entries, key=lambda entry: entry.url)


def _dependency_files(
    templated_urls: Mapping[str, TemplatedSource],
    root: Path,
    ignores: Sequence[str] = (),
) -> tuple[dict[str, list[Path]], list[str]]:
    resolved: dict[str, list[Path]] = {}
    empty: list[str] = []
    for url, source in templated_urls.items():
        if isinstance(source, str):
            continue
        relative = resolve_patterns(root, source, ignores)
        if not relative:
            empty.append(url)
            continue
        resolved[url] = [root / item for item in relative]
    return resolved, empty


def _empty_match_error(empty: list[str], failures: Mapping[str, str]) -> ConfigurationError:
    message = f"templatedUrls patterns matched no files for: {', '.join(empty)}"
    detail: dict[str, object] = {"urls": list(empty)}
    if failures:
        message += f"; {len(failures)} file(s) also could not be fingerprinted"
        detail["failures"] = dict(failures)
    return ConfigurationError(message, option="templatedUrls", detail=detail)


def _hash_templated(
    dependencies: Mapping[str, list[Path]], *, max_workers: int | None
) -> tuple[list[ManifestEntry], dict[str, str]]:
    entries: list[ManifestEntry] = []
    failures: dict[str, str] = {}
    if not dependencies:
        return entries, failures
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(hash_concat, paths): url for url, paths in dependencies.items()}
        for future in as_completed(futures):
            url = futures[future]
            try:
                revision = future.result()
            except AssetReadError as exc:
                failures.update(exc.failures)
                continue
            logger.debug(
                "Revision calculator: templated %s from %d file(s) -> %s",
                url,
                len(dependencies[url]),
                revision,
            )
            entries.append(ManifestEntry(url=url, revision=revision))
    return entries, failures


def revision_templated_urls(
    templated_urls: Mapping[str, TemplatedSource] | None,
    root: Path,
    *,
    ignores: Sequence[str] = (),
    max_workers: int | None = None,
) -> list[ManifestEntry]:
    """Resolve templated URLs into entries without a size.

    A literal string is used verbatim as the revision. A pattern list is
    resolved against ``root`` with the same ignore patterns as the collector,
    and the matched files are hashed as one byte stream in relative-path order.
    Every URL is resolved and hashed before any problem is reported.
    """
    if not templated_urls:
        return []
    entries: list[ManifestEntry] = [
        ManifestEntry(url=url, revision=source)
        for url, source in templated_urls.items()
        if isinstance(source, str)
    ]
    dependencies, empty = _dependency_files(templated_urls, root, ignores)
    hashed, failures = _hash_templated(dependencies, max_workers=max_workers)
    if empty:
        raise _empty_match_error(empty, failures)
    if failures:
        _raise_failures(failures, "templatedUrls dependency file(s)")
    return sorted(entries + hashed, key=lambda entry: entry.url)


def fingerprint_entries(
    matches: Sequence[AssetMatch],
    templated_urls: Mapping[str, TemplatedSource] | None,
    root: Path,
    *,
    ignores: Sequence[str] = (),
    max_workers: int | None = None,
) -> tuple[list[ManifestEntry], list[ManifestEntry]]:
    """Fingerprint assets and templated URLs, draining both before failing.

    Read failures from both passes are merged into one ``AssetReadError``. An
    empty templated match set wins as a ``ConfigurationError`` that also lists
    the read failures.
    """
    failures: dict[str, str] = {}
    try:
        assets = revision_assets(matches, max_workers=max_workers)
    except AssetReadError as exc:
        failures.update(exc.failures)
        assets = []
    try:
        templated = revision_templated_urls(templated_urls, root, ignores=ignores, max_workers=max_workers)
    except ConfigurationError as exc:
        if failures:
            raise _empty_match_error(exc.detail["urls"], {**failures, **exc.detail.get("failures", {})}) from exc
        raise
    except AssetReadError as exc:
        failures.update(exc.failures)
        templated = []
    if failures:
        _raise_failures(failures, "file(s)")
    return assets, templated
