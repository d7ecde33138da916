"""Content fingerprints with race checks."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from sw_precache.core.errors import AssetReadError

REVISION_LENGTH = 32


@dataclass(frozen=True)
class FileDigest:
    path: Path
    size_bytes: int
    revision: str


def _stat(path: Path) -> tuple[int, int]:
    stat = path.stat()
    return stat.st_size, stat.st_mtime_ns


def revision_from_digest(hasher: Any) -> str:
    return hasher.hexdigest()[:REVISION_LENGTH]


def hash_bytes(data: bytes) -> str:
    return revision_from_digest(hashlib.sha256(data))


def hash_file(path: Path, chunk_size: int = 1024 * 1024) -> FileDigest:
    """Fingerprint one file, failing if it changes while being read."""
    try:
        size_before, mtime_before = _stat(path)
        hasher = hashlib.sha256()
        with path.open("rb") as handle:
            for chunk in iter(lambda: handle.read(chunk_size), b""):
                hasher.update(chunk)
        size_after, mtime_after = _stat(path)
    except OSError as exc:
        raise AssetReadError(f"Unable to read {path}: {exc}", path=str(path)) from exc
    if size_before != size_after or mtime_before != mtime_after:
        raise AssetReadError(f"File changed during hashing: {path}", path=str(path))
    return FileDigest(path=path, size_bytes=size_after, revision=revision_from_digest(hasher))


def hash_concat(paths: Iterable[Path], chunk_size: int = 1024 * 1024) -> str:
    """Fingerprint the concatenated bytes of ``paths`` in the order given."""
    hasher = hashlib.sha256()
    for path in paths:
        try:
            with path.open("rb") as handle:
                for chunk in iter(lambda: handle.read(chunk_size), b""):
                    hasher.update(chunk)
        except OSError as exc:
            raise AssetReadError(f"Unable to read {path}: {exc}", path=str(path)) from exc
    return revision_from_digest(hasher)
