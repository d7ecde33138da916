"""Asset collector: resolves glob configuration into sized files."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Collection, Sequence

from sw_precache.core.errors import AssetReadError
from sw_precache.core.patterns import resolve_patterns

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetMatch:
    absolute_path: Path
    relative_url: str
    size_bytes: int


@dataclass
class CollectionResult:
    matches: list[AssetMatch] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _oversize_warning(url: str, size: int, maximum: int) -> str:
    return (
        f"{url} is {size} bytes, and won't be precached. Configure "
        f"maximumFileSizeToCacheInBytes (currently {maximum}) to change this limit."
    )


def collect_assets(
    glob_directory: Path,
    *,
    patterns: Sequence[str],
    ignores: Sequence[str] = (),
    exclude_paths: Collection[str] = (),
    maximum_size: int,
) -> CollectionResult:
    result = CollectionResult()
    if not glob_directory.is_dir():
        result.warnings.append(f"globDirectory {glob_directory} does not exist or is not a directory.")
        return result

    base = glob_directory.resolve()
    relative_paths = [
        relative for relative in resolve_patterns(base, patterns, ignores) if relative not in exclude_paths
    ]
    if patterns and not relative_paths:
        result.warnings.append(
            f"The patterns {list(patterns)} did not match any files in {glob_directory}."
        )
        return result

    failures: dict[str, str] = {}
    for relative in relative_paths:
        path = base / relative
        try:
            size = path.stat().st_size
        except OSError as exc:
            failures[str(path)] = str(exc)
            continue
        if size > maximum_size:
            result.warnings.append(_oversize_warning(relative, size, maximum_size))
            continue
        result.matches.append(AssetMatch(absolute_path=path, relative_url=relative, size_bytes=size))

    if failures:
        first = sorted(failures)[0]
        raise AssetReadError(
            f"Unable to stat {len(failures)} matched file(s), first: {first}",
            path=first,
            failures=failures,
        )
    logger.debug("Asset collector: %d files matched under %s", len(result.matches), base)
    return result
