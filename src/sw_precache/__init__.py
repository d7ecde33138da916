"""Precache manifest builder for service workers."""

from sw_precache.config import BuildConfig, build_config, load_config
from sw_precache.core.errors import (
    AssetReadError,
    AssetWriteError,
    CollisionError,
    ConfigurationError,
    ManifestStructureError,
    PlaceholderError,
    PrecacheError,
    TemplateRenderError,
    TransformError,
)
from sw_precache.entry_points import (
    ManifestResult,
    ScriptResult,
    generate_sw,
    generate_sw_string,
    get_manifest,
    inject_manifest,
    inject_manifest_string,
)
from sw_precache.manifest import ManifestEntry, TransformResult

__all__ = [
    "AssetReadError",
    "AssetWriteError",
    "BuildConfig",
    "CollisionError",
    "ConfigurationError",
    "ManifestEntry",
    "ManifestResult",
    "ManifestStructureError",
    "PlaceholderError",
    "PrecacheError",
    "ScriptResult",
    "TemplateRenderError",
    "TransformError",
    "TransformResult",
    "build_config",
    "generate_sw",
    "generate_sw_string",
    "get_manifest",
    "inject_manifest",
    "inject_manifest_string",
    "load_config",
]
