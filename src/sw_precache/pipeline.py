"""Precache build pipeline shared by every entry point.

A run moves through COLLECTING, FINGERPRINTING, ASSEMBLING and TRANSFORMING,
then finishes in RENDERING or INJECTING (or stops after TRANSFORMING when only
the manifest is wanted). Any fatal error moves the run to ERROR; the error is
re-raised carrying the stage it failed in and the warnings gathered so far.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Mapping, TypeVar

from sw_precache.collector import collect_assets
from sw_precache.config import BuildConfig, BuildMode, build_config, option_alias, validate_for_mode
from sw_precache.core.errors import PrecacheError
from sw_precache.inject import inject_manifest_text
from sw_precache.manifest import ManifestEntry, assemble_manifest, manifest_size
from sw_precache.render import render_service_worker
from sw_precache.revisions import fingerprint_entries
from sw_precache.transforms import run_transforms

logger = logging.getLogger(__name__)

T = TypeVar("T")
ScriptWriter = Callable[[str], None]


def _emit(script: str, writer: ScriptWriter | None) -> str:
    if writer is not None:
        writer(script)
    return script


class BuildStage(str, Enum):
    COLLECTING = "COLLECTING"
    FINGERPRINTING = "FINGERPRINTING"
    ASSEMBLING = "ASSEMBLING"
    TRANSFORMING = "TRANSFORMING"
    RENDERING = "RENDERING"
    INJECTING = "INJECTING"
    DONE = "DONE"
    ERROR = "ERROR"


@dataclass
class ManifestBuild:
    manifest: list[ManifestEntry]
    warnings: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.manifest)

    @property
    def size(self) -> int:
        return manifest_size(self.manifest)


@dataclass
class ScriptBuild:
    build: ManifestBuild
    script: str


class PrecacheBuilder:
    """Runs one precache build over a configuration and working directory."""

    def __init__(
        self,
        config: BuildConfig | Mapping[str, Any],
        *,
        cwd: Path | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.config = build_config(config)
        self.cwd = cwd or Path.cwd()
        self.max_workers = max_workers
        self.stage: BuildStage | None = None
        self.warnings: list[str] = []

    def build_manifest(self, mode: BuildMode = BuildMode.MANIFEST, *, writes_output: bool = False) -> ManifestBuild:
        self.validate(mode, writes_output=writes_output)
        for name in self.config.unknown_options():
            self._warn(f"Unknown configuration option {name!r} was ignored.")

        glob_directory = self.cwd / str(self.config.glob_directory)
        collected = self._run(
            BuildStage.COLLECTING,
            lambda: collect_assets(
                glob_directory,
                patterns=self.config.glob_patterns,
                ignores=self.config.glob_ignores,
                exclude_paths=self._own_output(glob_directory),
                maximum_size=self.config.maximum_file_size_to_cache_in_bytes,
            ),
        )
        for message in collected.warnings:
            self._warn(message)

        asset_entries, templated_entries = self._run(
            BuildStage.FINGERPRINTING,
            lambda: fingerprint_entries(
                collected.matches,
                self.config.templated_urls,
                self.cwd,
                ignores=self.config.glob_ignores,
                max_workers=self.max_workers,
            ),
        )
        merged = self._run(
            BuildStage.ASSEMBLING, lambda: assemble_manifest(asset_entries, templated_entries)
        )
        transformed = self._run(
            BuildStage.TRANSFORMING,
            lambda: run_transforms(
                merged,
                url_prefixes=self.config.modify_url_prefix,
                dont_cache_bust_urls_matching=self.config.dont_cache_bust_urls_matching,
                manifest_transforms=self.config.manifest_transforms,
            ),
        )
        for message in transformed.warnings:
            self._warn(message)

        build = ManifestBuild(manifest=transformed.manifest, warnings=list(self.warnings))
        logger.info(
            "Precache build: manifest ready (%d entries, %d bytes, %d warnings)",
            build.count,
            build.size,
            len(build.warnings),
        )
        if mode is BuildMode.MANIFEST:
            self._enter(BuildStage.DONE)
        return build

    def validate(self, mode: BuildMode, *, writes_output: bool = False) -> None:
        """Check option combinations for ``mode``; runs before any file is read."""
        self.stage = None
        self.warnings = []
        try:
            validate_for_mode(self.config, mode, writes_output=writes_output)
        except PrecacheError as exc:
            self.fail(exc)
            raise

    def render(self, *, writer: ScriptWriter | None = None) -> ScriptBuild:
        """Render the service worker; ``writer`` receives the script before DONE."""
        build = self.build_manifest(BuildMode.RENDER, writes_output=writer is not None)
        script = self._run(
            BuildStage.RENDERING,
            lambda: _emit(render_service_worker(self.config, build.manifest), writer),
        )
        self._enter(BuildStage.DONE)
        return ScriptBuild(build=build, script=script)

    def inject(self, source: str, *, writer: ScriptWriter | None = None) -> ScriptBuild:
        build = self.build_manifest(BuildMode.INJECT, writes_output=writer is not None)
        script = self._run(
            BuildStage.INJECTING,
            lambda: _emit(inject_manifest_text(source, build.manifest), writer),
        )
        self._enter(BuildStage.DONE)
        return ScriptBuild(build=build, script=script)

    def fail(self, exc: PrecacheError) -> PrecacheError:
        """Tag ``exc`` with the current stage and warnings, and enter ERROR."""
        if exc.stage is None:
            exc.stage = self.stage.value if self.stage else None
        exc.warnings = list(self.warnings)
        logger.error("Precache build failed in %s: %s", exc.stage or "CONFIGURING", exc)
        self.stage = BuildStage.ERROR
        return exc

    def _own_output(self, glob_directory: Path) -> set[str]:
        if not self.config.sw_dest:
            return set()
        sw_dest = (self.cwd / self.config.sw_dest).resolve()
        try:
            relative = sw_dest.relative_to(glob_directory.resolve()).as_posix()
        except ValueError:
            return set()
        logger.debug("Precache build: excluding %s (%s) from the manifest", relative, option_alias("sw_dest"))
        return {relative}

    def _enter(self, stage: BuildStage) -> None:
        if stage is not self.stage:
            logger.info("Precache build: stage=%s", stage.value)
        self.stage = stage

    def _warn(self, message: str) -> None:
        logger.warning("Precache build: %s", message)
        self.warnings.append(message)

    def _run(self, stage: BuildStage, step: Callable[[], T]) -> T:
        self._enter(stage)
        try:
            return step()
        except PrecacheError as exc:
            self.fail(exc)
            raise
