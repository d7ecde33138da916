from __future__ import annotations

from pathlib import Path

import pytest

from sw_precache.core.patterns import compile_patterns, expand_braces, resolve_patterns


def _touch(root: Path, *relative: str) -> None:
    for item in relative:
        path = root / item
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(item, encoding="utf-8")


def test_expand_braces_keeps_order() -> None:
    assert expand_braces("**/*.{js,css,html}") == ["**/*.js", "**/*.css", "**/*.html"]


def test_expand_braces_nested_and_literal() -> None:
    assert expand_braces("{a,b{1,2}}.txt") == ["a.txt", "b1.txt", "b2.txt"]
    assert expand_braces("{single}.txt") == ["{single}.txt"]


@pytest.mark.parametrize(
    ("pattern", "path", "expected"),
    [
        ("**/*.js", "app.js", True),
        ("**/*.js", "scripts/vendor/app.js", True),
        ("*.js", "scripts/app.js", False),
        ("dev/**/*.css", "dev/main.css", True),
        ("dev/**/*.css", "prod/main.css", False),
        ("img/?.png", "img/a.png", True),
        ("img/[!a].png", "img/a.png", False),
        ("img/[!a].png", "img/b.png", True),
        ("node_modules/**", "node_modules/pkg/index.js", True),
        ("img/[a-c].png", "img/b.png", True),
        ("img/[a-c].png", "img/d.png", False),
        ("file[^x].txt", "file^.txt", True),
        ("file[^x].txt", "filex.txt", True),
        ("file[^x].txt", "filey.txt", False),
        ("file[.].txt", "fileA.txt", False),
    ],
)
def test_compiled_pattern_matching(pattern: str, path: str, expected: bool) -> None:
    compiled = compile_patterns([pattern])
    assert any(item.matches(path) for item in compiled) is expected


def test_resolve_patterns_applies_ignores(tmp_path: Path) -> None:
    _touch(
        tmp_path,
        "index.html",
        "app.js",
        "css/main.css",
        "node_modules/lib/index.js",
        "ignored.html",
    )
    matched = resolve_patterns(
        tmp_path,
        ["**/*.{js,css,html}"],
        ["**/node_modules/**/*", "ignored.html"],
    )
    assert matched == ["app.js", "css/main.css", "index.html"]


def test_resolve_patterns_literal_path(tmp_path: Path) -> None:
    _touch(tmp_path, "templates/shell.hbs", "templates/other.hbs")
    assert resolve_patterns(tmp_path, ["templates/shell.hbs"]) == ["templates/shell.hbs"]
    assert resolve_patterns(tmp_path, ["./templates/missing.hbs"]) == []
