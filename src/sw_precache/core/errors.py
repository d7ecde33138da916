"""Precache build error types used across modules."""

from __future__ import annotations

from typing import Any


class PrecacheError(RuntimeError):
    """Base error for precache build failures."""

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.detail: dict[str, Any] = dict(detail or {})
        self.stage: str | None = None
        self.warnings: list[str] = []


class ConfigurationError(PrecacheError):
    """Raised for malformed or mutually incompatible build options."""

    def __init__(self, message: str, *, option: str | None = None, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message, detail=detail)
        self.option = option
        if option is not None:
            self.detail.setdefault("option", option)


class ManifestStructureError(PrecacheError):
    """Raised when a manifest entry is structurally invalid (empty url, bad revision)."""

    def __init__(self, message: str, *, url: str | None = None, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message, detail=detail)
        self.url = url
        if url is not None:
            self.detail.setdefault("url", url)


class CollisionError(ManifestStructureError):
    """Raised when two manifest entries share a URL."""


class PlaceholderError(PrecacheError):
    """Raised when the injection point is missing or ambiguous in a target script."""

    def __init__(self, message: str, *, occurrences: int) -> None:
        super().__init__(message, detail={"occurrences": occurrences})
        self.occurrences = occurrences


class AssetReadError(PrecacheError):
    """Raised when one or more files cannot be read or hashed."""

    def __init__(self, message: str, *, path: str, failures: dict[str, str] | None = None) -> None:
        super().__init__(message, detail={"path": path})
        self.path = path
        self.failures: dict[str, str] = dict(failures or {path: message})
        self.detail["failures"] = self.failures


class TemplateRenderError(PrecacheError):
    """Raised when the service-worker template cannot be rendered."""


class TransformError(PrecacheError):
    """Raised when a caller-supplied manifest transform fails."""

    def __init__(self, message: str, *, transform: str) -> None:
        super().__init__(message, detail={"transform": transform})
        self.transform = transform


class AssetWriteError(PrecacheError):
    """Raised when the generated service worker cannot be written."""

    def __init__(self, message: str, *, path: str) -> None:
        super().__init__(message, detail={"path": path})
        self.path = path
