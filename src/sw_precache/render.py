"""Service-worker rendering from a Jinja2 template."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from re import Pattern
from typing import Any, Sequence

import jinja2

from sw_precache.config import BuildConfig, RuntimeCachingEntry
from sw_precache.core.errors import TemplateRenderError
from sw_precache.inject import serialize_manifest
from sw_precache.manifest import ManifestEntry

logger = logging.getLogger(__name__)

WORKBOX_SW_VERSION = "2.1.3"
WORKBOX_SW_FILENAME = f"workbox-sw.prod.v{WORKBOX_SW_VERSION}.js"
WORKBOX_CDN_URL = f"https://storage.googleapis.com/workbox-cdn/releases/{WORKBOX_SW_VERSION}/{WORKBOX_SW_FILENAME}"
DEFAULT_TEMPLATE_PATH = Path(__file__).resolve().parent / "templates" / "sw.js.j2"

_REGEX_FLAGS = ((re.IGNORECASE, "i"), (re.MULTILINE, "m"), (re.DOTALL, "s"))


def _js_regex(pattern: Pattern[str]) -> str:
    source: list[str] = []
    escaped = False
    for char in pattern.pattern:
        if char == "/" and not escaped:
            source.append("\\/")
        else:
            source.append(char)
        escaped = char == "\\" and not escaped
    flags = "".join(flag for bit, flag in _REGEX_FLAGS if pattern.flags & bit)
    return f"/{''.join(source) or '(?:)'}/{flags}"


def js_literal(value: Any) -> str:
    """Serialise a value as a JavaScript literal; regexes become ``/.../`` literals."""
    if isinstance(value, Pattern):
        return _js_regex(value)
    if isinstance(value, dict):
        items = ", ".join(f"{json.dumps(str(key))}: {js_literal(item)}" for key, item in value.items())
        return "{" + items + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(js_literal(item) for item in value) + "]"
    return json.dumps(value)


def _runtime_route(entry: RuntimeCachingEntry) -> str:
    strategy = f"workboxSW.strategies.{entry.handler}({js_literal(entry.options or {})})"
    return f"{js_literal(entry.url_pattern)}, {strategy}, {json.dumps(entry.method.upper())}"


def _import_scripts(config: BuildConfig) -> list[str]:
    scripts = [WORKBOX_CDN_URL if config.import_workbox_from_cdn else WORKBOX_SW_FILENAME]
    scripts.extend(config.import_scripts)
    return scripts


def template_bindings(config: BuildConfig, entries: Sequence[ManifestEntry]) -> dict[str, Any]:
    options: dict[str, Any] = {}
    if config.cache_id:
        options["cacheId"] = config.cache_id
    options.update(
        {
            "skipWaiting": config.skip_waiting,
            "clientsClaim": config.clients_claim,
            "directoryIndex": config.directory_index,
            "ignoreUrlParametersMatching": list(config.ignore_url_parameters_matching),
            "handleFetch": config.handle_fetch,
        }
    )
    return {
        "import_scripts": ", ".join(json.dumps(script) for script in _import_scripts(config)),
        "precache_manifest": serialize_manifest(entries),
        "manifest_entries": [entry.as_precache_record() for entry in entries],
        "workbox_sw_options": js_literal(options),
        "navigate_fallback": json.dumps(config.navigate_fallback) if config.navigate_fallback else None,
        "navigate_fallback_whitelist": js_literal(list(config.navigate_fallback_whitelist)),
        "runtime_caching": [_runtime_route(entry) for entry in config.runtime_caching],
    }


def load_default_template() -> str:
    return DEFAULT_TEMPLATE_PATH.read_text(encoding="utf-8")


def render_template(template: str, bindings: dict[str, Any]) -> str:
    env = jinja2.Environment(
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    try:
        return env.from_string(template).render(**bindings)
    except jinja2.TemplateError as exc:
        raise TemplateRenderError(f"Unable to render the service worker template: {exc}") from exc


def render_service_worker(config: BuildConfig, entries: Sequence[ManifestEntry]) -> str:
    template = config.sw_template if config.sw_template is not None else load_default_template()
    script = render_template(template, template_bindings(config, entries))
    logger.debug("Script renderer: rendered %d characters for %d entries", len(script), len(entries))
    return script
