from __future__ import annotations

import dataclasses
import re

import pytest

from sw_precache.core.errors import CollisionError, ManifestStructureError, TransformError
from sw_precache.manifest import ManifestEntry, TransformResult
from sw_precache.transforms import modify_url_prefix, run_transforms


def test_prefix_rewrite_strips_build_prefix() -> None:
    result = run_transforms([ManifestEntry("build/app.js", "h1")], url_prefixes={"build/": ""})
    assert result.manifest == [ManifestEntry("app.js", "h1")]
    assert result.warnings == []


def test_prefix_rewrite_first_match_wins() -> None:
    transform = modify_url_prefix({"build/": "/static/", "build/js/": "/js/"})
    result = transform([ManifestEntry("build/js/app.js", "h1")])
    assert result.manifest[0].url == "/static/js/app.js"


@pytest.mark.parametrize("url", ["app.js", "/build/app.js", "assets/build/app.js"])
def test_prefix_rewrite_leaves_non_matching_urls(url: str) -> None:
    entry = ManifestEntry(url, "h1", 5)
    result = run_transforms([entry], url_prefixes={"build/": ""})
    assert result.manifest == [entry]


def test_cache_bust_exemption_flags_without_mutating() -> None:
    entries = [ManifestEntry("app.1234abcd.js", "h1", 1), ManifestEntry("index.html", "h2", 2)]
    result = run_transforms(entries, dont_cache_bust_urls_matching=re.compile(r"\.\w{8}\."))
    hashed, plain = result.manifest
    assert hashed.cache_bust is False
    assert (hashed.url, hashed.revision) == ("app.1234abcd.js", "h1")
    assert plain.cache_bust is True


def test_builtin_stages_run_before_caller_transforms() -> None:
    seen: list[list[str]] = []

    def record(manifest: list[ManifestEntry]) -> list[ManifestEntry]:
        seen.append([entry.url for entry in manifest])
        return manifest

    run_transforms(
        [ManifestEntry("build/app.js", "h1")],
        url_prefixes={"build/": ""},
        manifest_transforms=[record],
    )
    assert seen == [["app.js"]]


def test_caller_warnings_are_concatenated_in_order() -> None:
    def first(manifest: list[ManifestEntry]) -> TransformResult:
        return TransformResult(manifest=manifest, warnings=["first"])

    def second(manifest: list[ManifestEntry]) -> dict:
        return {"manifest": [entry.as_dict() for entry in manifest], "warnings": ["second"]}

    result = run_transforms([ManifestEntry("a.js", "h")], manifest_transforms=[first, second])
    assert result.warnings == ["first", "second"]
    assert result.manifest == [ManifestEntry("a.js", "h")]


def test_caller_transform_may_drop_and_rewrite() -> None:
    def drop_maps(manifest: list[ManifestEntry]) -> list[ManifestEntry]:
        return [
            dataclasses.replace(entry, url="/" + entry.url)
            for entry in manifest
            if not entry.url.endswith(".map")
        ]

    result = run_transforms(
        [ManifestEntry("app.js", "1"), ManifestEntry("app.js.map", "2")],
        manifest_transforms=[drop_maps],
    )
    assert result.manifest == [ManifestEntry("/app.js", "1")]


def test_transform_introducing_duplicate_is_fatal() -> None:
    def collapse(manifest: list[ManifestEntry]) -> list[ManifestEntry]:
        return [dataclasses.replace(entry, url="same.js") for entry in manifest]

    with pytest.raises(CollisionError) as excinfo:
        run_transforms(
            [ManifestEntry("a.js", "1"), ManifestEntry("b.js", "2")],
            manifest_transforms=[collapse],
        )
    assert excinfo.value.detail["transform"] == "collapse"


def test_prefix_rewrite_collision_is_fatal() -> None:
    with pytest.raises(CollisionError):
        run_transforms(
            [ManifestEntry("build/app.js", "1"), ManifestEntry("app.js", "2")],
            url_prefixes={"build/": ""},
        )


def test_transform_dropping_revision_is_fatal() -> None:
    def strip_revision(manifest: list[ManifestEntry]) -> list[dict]:
        return [{"url": entry.url} for entry in manifest]

    with pytest.raises(ManifestStructureError) as excinfo:
        run_transforms([ManifestEntry("a.js", "1")], manifest_transforms=[strip_revision])
    assert excinfo.value.detail["transform"] == "strip_revision"


def test_transform_returning_nothing_is_fatal() -> None:
    with pytest.raises(ManifestStructureError):
        run_transforms([ManifestEntry("a.js", "1")], manifest_transforms=[lambda manifest: None])


def test_transform_raising_is_wrapped_with_its_name() -> None:
    def lookup_hashes(manifest: list[ManifestEntry]) -> list[ManifestEntry]:
        raise KeyError("hashes.json")

    with pytest.raises(TransformError) as excinfo:
        run_transforms([ManifestEntry("a.js", "1")], manifest_transforms=[lookup_hashes])
    assert excinfo.value.transform == "lookup_hashes"
    assert excinfo.value.detail["transform"] == "lookup_hashes"
    assert isinstance(excinfo.value.__cause__, KeyError)
