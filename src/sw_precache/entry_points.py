"""Public build entry points.

``get_manifest``, ``generate_sw_string`` and ``inject_manifest_string`` return
their results in memory. ``generate_sw`` and ``inject_manifest`` additionally
read ``swSrc`` and write ``swDest`` as the last step of the build; a failed
write fails the build in its final stage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Union

from sw_precache.config import BuildConfig, BuildMode
from sw_precache.core.errors import AssetReadError, AssetWriteError
from sw_precache.manifest import ManifestEntry
from sw_precache.pipeline import PrecacheBuilder, ScriptBuild

logger = logging.getLogger(__name__)

ConfigInput = Union[BuildConfig, Mapping[str, Any]]


@dataclass
class ManifestResult:
    manifest_entries: list[ManifestEntry]
    count: int
    size: int
    warnings: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "manifestEntries": [entry.as_dict() for entry in self.manifest_entries],
            "count": self.count,
            "size": self.size,
            "warnings": list(self.warnings),
        }


@dataclass
class ScriptResult:
    script: str
    count: int
    size: int
    warnings: list[str] = field(default_factory=list)
    sw_dest: str | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"count": self.count, "size": self.size, "warnings": list(self.warnings)}
        if self.sw_dest:
            payload["swDest"] = self.sw_dest
        return payload


def _script_result(built: ScriptBuild, sw_dest: str | None = None) -> ScriptResult:
    return ScriptResult(
        script=built.script,
        count=built.build.count,
        size=built.build.size,
        warnings=list(built.build.warnings),
        sw_dest=sw_dest,
    )


def write_service_worker(path: Path, script: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(script, encoding="utf-8")
    except OSError as exc:
        raise AssetWriteError(f"Unable to write swDest {path}: {exc}", path=str(path)) from exc
    logger.info("Precache build: wrote %s (%d bytes)", path, len(script.encode("utf-8")))


def _writer(builder: PrecacheBuilder) -> Callable[[str], None]:
    return lambda script: write_service_worker(builder.cwd / str(builder.config.sw_dest), script)


def get_manifest(config: ConfigInput, *, cwd: Path | None = None) -> ManifestResult:
    build = PrecacheBuilder(config, cwd=cwd).build_manifest()
    return ManifestResult(
        manifest_entries=build.manifest,
        count=build.count,
        size=build.size,
        warnings=build.warnings,
    )


def generate_sw_string(config: ConfigInput, *, cwd: Path | None = None) -> ScriptResult:
    return _script_result(PrecacheBuilder(config, cwd=cwd).render())


def inject_manifest_string(config: ConfigInput, source: str, *, cwd: Path | None = None) -> ScriptResult:
    return _script_result(PrecacheBuilder(config, cwd=cwd).inject(source))


def generate_sw(config: ConfigInput, *, cwd: Path | None = None) -> ScriptResult:
    builder = PrecacheBuilder(config, cwd=cwd)
    built = builder.render(writer=_writer(builder))
    return _script_result(built, str(builder.cwd / str(builder.config.sw_dest)))


def inject_manifest(config: ConfigInput, *, cwd: Path | None = None) -> ScriptResult:
    builder = PrecacheBuilder(config, cwd=cwd)
    builder.validate(BuildMode.INJECT, writes_output=True)
    sw_src = builder.cwd / str(builder.config.sw_src)
    try:
        source = sw_src.read_text(encoding="utf-8")
    except OSError as exc:
        error = AssetReadError(f"Unable to read swSrc {sw_src}: {exc}", path=str(sw_src))
        builder.fail(error)
        raise error from exc
    built = builder.inject(source, writer=_writer(builder))
    return _script_result(built, str(builder.cwd / str(builder.config.sw_dest)))
