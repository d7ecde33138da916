from __future__ import annotations

import re
from pathlib import Path

import pytest

from sw_precache.config import (
    DEFAULT_MAXIMUM_FILE_SIZE,
    BuildConfig,
    BuildMode,
    build_config,
    load_config,
    validate_for_mode,
)
from sw_precache.core.errors import AssetReadError, ConfigurationError


def test_defaults_match_documented_values() -> None:
    config = build_config({"globDirectory": "dist"})
    assert config.glob_patterns == ["**/*.{js,css,html}"]
    assert config.glob_ignores == ["**/node_modules/**/*"]
    assert config.maximum_file_size_to_cache_in_bytes == DEFAULT_MAXIMUM_FILE_SIZE == 2097152
    assert config.import_workbox_from_cdn is True
    assert config.directory_index == "index.html"
    assert [p.pattern for p in config.ignore_url_parameters_matching] == ["^utm_"]
    assert config.handle_fetch is True


def test_string_options_are_normalised() -> None:
    config = build_config(
        {
            "globDirectory": "dist",
            "globIgnores": "**/ignored.html",
            "dontCacheBustUrlsMatching": r"\.\w{8}\.",
        }
    )
    assert config.glob_ignores == ["**/ignored.html"]
    assert isinstance(config.dont_cache_bust_urls_matching, re.Pattern)


def test_snake_case_names_are_accepted() -> None:
    config = BuildConfig(glob_directory="dist", skip_waiting=True)
    assert config.glob_directory == "dist"
    assert "skip_waiting" in config.supplied_options()


def test_unknown_options_are_kept_for_warning() -> None:
    config = build_config({"globDirectory": "dist", "globPattern": ["*.js"]})
    assert config.unknown_options() == ["globPattern"]


def test_invalid_runtime_handler_names_option() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        build_config(
            {"globDirectory": "dist", "runtimeCaching": [{"urlPattern": "/api", "handler": "fastest"}]}
        )
    assert excinfo.value.option == "runtimeCaching"


def test_transform_import_strings_are_resolved() -> None:
    config = build_config({"globDirectory": "dist", "manifestTransforms": ["builtins:list"]})
    assert config.manifest_transforms == [list]
    with pytest.raises(ConfigurationError):
        build_config({"globDirectory": "dist", "manifestTransforms": ["no_such_module_xyz:fn"]})


def test_empty_templated_sources_are_rejected() -> None:
    with pytest.raises(ConfigurationError):
        build_config({"globDirectory": "dist", "templatedUrls": {"/shell": []}})
    with pytest.raises(ConfigurationError):
        build_config({"globDirectory": "dist", "templatedUrls": {"/shell": ""}})


def test_load_config_expands_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SW_BUILD_DIR", "build")
    monkeypatch.delenv("SW_DEST", raising=False)
    path = tmp_path / "sw-config.yaml"
    path.write_text(
        """
globDirectory: ${SW_BUILD_DIR}
swDest: ${SW_DEST:-build/sw.js}
globPatterns:
  - "**/*.{js,html}"
modifyUrlPrefix:
  "build/": ""
""",
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.glob_directory == "build"
    assert config.sw_dest == "build/sw.js"
    assert config.modify_url_prefix == {"build/": ""}


def test_load_config_rejects_missing_and_malformed_files(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "missing.yaml")
    bad = tmp_path / "bad.yaml"
    bad.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(bad)


def test_every_mode_requires_glob_directory() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        validate_for_mode(build_config({}), BuildMode.MANIFEST)
    assert excinfo.value.option == "globDirectory"


def test_render_mode_rejects_sw_src() -> None:
    config = build_config({"globDirectory": "dist", "swSrc": "src/sw.js"})
    with pytest.raises(ConfigurationError) as excinfo:
        validate_for_mode(config, BuildMode.RENDER)
    assert excinfo.value.option == "swSrc"


def test_inject_mode_rejects_render_only_options() -> None:
    config = build_config(
        {"globDirectory": "dist", "swSrc": "src/sw.js", "swDest": "dist/sw.js", "skipWaiting": True, "cacheId": "x"}
    )
    with pytest.raises(ConfigurationError) as excinfo:
        validate_for_mode(config, BuildMode.INJECT, writes_output=True)
    assert excinfo.value.detail["options"] == ["cacheId", "skipWaiting"]


def test_file_writing_modes_require_paths() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        validate_for_mode(build_config({"globDirectory": "dist"}), BuildMode.RENDER, writes_output=True)
    assert excinfo.value.option == "swDest"
    with pytest.raises(ConfigurationError) as excinfo:
        validate_for_mode(
            build_config({"globDirectory": "dist", "swDest": "dist/sw.js"}), BuildMode.INJECT, writes_output=True
        )
    assert excinfo.value.option == "swSrc"


def test_load_config_read_failure_names_path(tmp_path: Path) -> None:
    directory = tmp_path / "sw-build.yaml"
    directory.mkdir()
    with pytest.raises(AssetReadError) as excinfo:
        load_config(directory)
    assert excinfo.value.path == str(directory)
