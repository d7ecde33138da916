"""Build configuration: typed options, YAML loading and per-mode validation."""

from __future__ import annotations

import importlib
import logging
import os
import re
from enum import Enum
from pathlib import Path
from re import Pattern
from typing import Any, Callable, Literal, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from sw_precache.core.errors import AssetReadError, ConfigurationError

logger = logging.getLogger(__name__)

_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

DEFAULT_GLOB_PATTERNS = ["**/*.{js,css,html}"]
DEFAULT_GLOB_IGNORES = ["**/node_modules/**/*"]
DEFAULT_MAXIMUM_FILE_SIZE = 2 * 1024 * 1024


class BuildMode(str, Enum):
    MANIFEST = "MANIFEST"
    RENDER = "RENDER"
    INJECT = "INJECT"


Handler = Literal["cacheFirst", "cacheOnly", "networkFirst", "networkOnly", "staleWhileRevalidate"]


class RuntimeCachingEntry(BaseModel):
    """One runtime route: a URL pattern answered with a named strategy."""

    url_pattern: Union[str, Pattern[str]] = Field(
        ..., alias="urlPattern", description="Express-style route string, or a regex"
    )
    handler: Handler
    method: str = "GET"
    options: Optional[dict[str, Any]] = None

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @field_validator("url_pattern", mode="before")
    @classmethod
    def _regex_mapping(cls, value: Any) -> Any:
        # YAML cannot carry a regex literal, so ``{regex: "..."}`` stands in for one.
        if isinstance(value, Mapping) and "regex" in value:
            return re.compile(str(value["regex"]))
        return value


class BuildConfig(BaseModel):
    """Every recognised build option, with its documented default."""

    glob_directory: Optional[str] = Field(None, alias="globDirectory")
    glob_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_GLOB_PATTERNS), alias="globPatterns")
    glob_ignores: list[str] = Field(default_factory=lambda: list(DEFAULT_GLOB_IGNORES), alias="globIgnores")
    maximum_file_size_to_cache_in_bytes: int = Field(
        DEFAULT_MAXIMUM_FILE_SIZE, ge=0, alias="maximumFileSizeToCacheInBytes"
    )
    templated_urls: Optional[dict[str, Union[str, list[str]]]] = Field(None, alias="templatedUrls")
    modify_url_prefix: Optional[dict[str, str]] = Field(None, alias="modifyUrlPrefix")
    dont_cache_bust_urls_matching: Optional[Pattern[str]] = Field(None, alias="dontCacheBustUrlsMatching")
    manifest_transforms: list[Any] = Field(default_factory=list, alias="manifestTransforms")

    sw_dest: Optional[str] = Field(None, alias="swDest")
    sw_src: Optional[str] = Field(None, alias="swSrc")
    sw_template: Optional[str] = Field(None, alias="swTemplate")

    import_workbox_from_cdn: bool = Field(True, alias="importWorkboxFromCDN")
    import_scripts: list[str] = Field(default_factory=list, alias="importScripts")
    navigate_fallback: Optional[str] = Field(None, alias="navigateFallback")
    navigate_fallback_whitelist: list[Pattern[str]] = Field(
        default_factory=lambda: [re.compile(r".")], alias="navigateFallbackWhitelist"
    )
    cache_id: Optional[str] = Field(None, alias="cacheId")
    skip_waiting: bool = Field(False, alias="skipWaiting")
    clients_claim: bool = Field(False, alias="clientsClaim")
    directory_index: str = Field("index.html", alias="directoryIndex")
    runtime_caching: list[RuntimeCachingEntry] = Field(default_factory=list, alias="runtimeCaching")
    ignore_url_parameters_matching: list[Pattern[str]] = Field(
        default_factory=lambda: [re.compile(r"^utm_")], alias="ignoreUrlParametersMatching"
    )
    handle_fetch: bool = Field(True, alias="handleFetch")

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @field_validator("glob_patterns", "glob_ignores", "import_scripts", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("navigate_fallback_whitelist", "ignore_url_parameters_matching", mode="before")
    @classmethod
    def _listify_patterns(cls, value: Any) -> Any:
        if isinstance(value, (str, Pattern)):
            return [value]
        return value

    @field_validator("templated_urls")
    @classmethod
    def _check_templated_urls(
        cls, value: Optional[dict[str, Union[str, list[str]]]]
    ) -> Optional[dict[str, Union[str, list[str]]]]:
        if value is None:
            return value
        for url, source in value.items():
            if not url:
                raise ValueError("templatedUrls keys must be non-empty URLs")
            if isinstance(source, list) and not source:
                raise ValueError(f"templatedUrls[{url!r}] has no patterns")
            if isinstance(source, str) and not source:
                raise ValueError(f"templatedUrls[{url!r}] has an empty version string")
        return value

    @field_validator("manifest_transforms")
    @classmethod
    def _resolve_transforms(cls, value: list[Any]) -> list[Callable[..., Any]]:
        return [_resolve_callable(item) for item in value]

    def unknown_options(self) -> list[str]:
        return sorted((self.model_extra or {}).keys())

    def supplied_options(self) -> set[str]:
        return set(self.model_fields_set)


RENDER_ONLY_OPTIONS = (
    "import_workbox_from_cdn",
    "import_scripts",
    "navigate_fallback",
    "navigate_fallback_whitelist",
    "cache_id",
    "skip_waiting",
    "clients_claim",
    "directory_index",
    "runtime_caching",
    "ignore_url_parameters_matching",
    "handle_fetch",
)


def option_alias(name: str) -> str:
    field = BuildConfig.model_fields.get(name)
    if field is not None and field.alias:
        return field.alias
    return name


def _resolve_callable(item: Any) -> Callable[..., Any]:
    if callable(item):
        return item
    if not isinstance(item, str):
        raise ValueError(f"manifest transform must be callable or an import string, got {type(item).__name__}")
    module_name, sep, attr = item.partition(":")
    if not sep:
        module_name, _, attr = item.rpartition(".")
    if not module_name or not attr:
        raise ValueError(f"manifest transform {item!r} is not a 'module:function' reference")
    try:
        module = importlib.import_module(module_name)
        target = getattr(module, attr)
    except (ImportError, AttributeError) as exc:
        raise ValueError(f"manifest transform {item!r} could not be imported: {exc}") from exc
    if not callable(target):
        raise ValueError(f"manifest transform {item!r} is not callable")
    return target


def _expand_str(value: str) -> str:
    def replacer(match: re.Match[str]) -> str:
        token = match.group(1)
        if ":-" in token:
            key, default = token.split(":-", 1)
            actual = os.getenv(key, "")
            return actual if actual.strip() else default
        actual = os.getenv(token, "")
        if not actual.strip():
            raise ConfigurationError(f"missing environment variable: {token}", option=token)
        return actual

    return _VAR_PATTERN.sub(replacer, value)


def _expand_payload(value: Any) -> Any:
    if isinstance(value, str):
        return _expand_str(value)
    if isinstance(value, list):
        return [_expand_payload(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _expand_payload(item) for key, item in value.items()}
    return value


def build_config(data: Mapping[str, Any] | BuildConfig) -> BuildConfig:
    """Validate a raw option mapping into a ``BuildConfig``."""
    if isinstance(data, BuildConfig):
        return data
    try:
        return BuildConfig.model_validate(dict(data))
    except ValidationError as exc:
        options = sorted({str(error["loc"][0]) for error in exc.errors() if error.get("loc")})
        messages = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        raise ConfigurationError(
            f"Invalid configuration: {messages}",
            option=options[0] if options else None,
            detail={"options": options},
        ) from exc


def load_config(path: Path) -> BuildConfig:
    if not path.exists():
        raise ConfigurationError(f"Missing configuration file: {path}", option="config")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise AssetReadError(f"Unable to read configuration file {path}: {exc}", path=str(path)) from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Configuration file is not valid YAML: {path}: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file must hold a mapping of options: {path}")
    return build_config(_expand_payload(data))


def validate_for_mode(config: BuildConfig, mode: BuildMode, *, writes_output: bool = False) -> None:
    """Reject option combinations that cannot work for ``mode``.

    Runs before any file is touched.
    """
    if not config.glob_directory:
        raise ConfigurationError("globDirectory is required", option="globDirectory")
    if writes_output and not config.sw_dest:
        raise ConfigurationError("swDest is required when writing a service worker", option="swDest")

    if mode is BuildMode.RENDER:
        if config.sw_src:
            raise ConfigurationError(
                "swSrc is only valid when injecting into an existing service worker", option="swSrc"
            )
        return

    if mode is BuildMode.INJECT:
        if writes_output and not config.sw_src:
            raise ConfigurationError("swSrc is required when injecting a manifest", option="swSrc")
        if config.sw_template:
            raise ConfigurationError(
                "swTemplate is only valid when generating a service worker", option="swTemplate"
            )
        supplied = config.supplied_options()
        rejected = [name for name in RENDER_ONLY_OPTIONS if name in supplied]
        if rejected:
            aliases = [option_alias(name) for name in rejected]
            raise ConfigurationError(
                "Options only valid when generating a service worker were supplied with "
                f"injectManifest: {', '.join(aliases)}",
                option=aliases[0],
                detail={"options": aliases},
            )
