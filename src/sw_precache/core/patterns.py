"""Glob-style pattern resolution over a base directory.

Patterns follow the usual build-tool conventions: ``*`` and ``?`` stay within a
path segment, ``**`` spans any number of segments, ``[...]`` is a character
class (``[!...]`` negated) and ``{a,b}`` expands to alternatives. Matching is
always done against forward-slash relative paths.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)

_GLOB_CHARS = set("*?[{")


@dataclass(frozen=True)
class GlobPattern:
    source: str
    regex: re.Pattern[str]
    root: str

    def matches(self, relative_path: str) -> bool:
        return self.regex.fullmatch(relative_path) is not None


def _split_options(body: str) -> list[str]:
    options: list[str] = []
    depth = 0
    current: list[str] = []
    for char in body:
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        if char == "," and depth == 0:
            options.append("".join(current))
            current = []
            continue
        current.append(char)
    options.append("".join(current))
    return options


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives, preserving their order."""
    start = 0
    depth = 0
    for index, char in enumerate(pattern):
        if char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth:
            depth -= 1
            if depth:
                continue
            options = _split_options(pattern[start + 1 : index])
            if len(options) < 2:
                continue
            prefix, suffix = pattern[:start], pattern[index + 1 :]
            expanded: list[str] = []
            for option in options:
                for item in expand_braces(prefix + option + suffix):
                    if item not in expanded:
                        expanded.append(item)
            return expanded
    return [pattern]


def _normalise(pattern: str) -> str:
    pattern = pattern.replace("\\", "/")
    while pattern.startswith("./"):
        pattern = pattern[2:]
    return pattern


def _translate_segment(segment: str) -> str:
    out: list[str] = []
    index = 0
    while index < len(segment):
        char = segment[index]
        if char == "*":
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "[":
            end = segment.find("]", index + 1)
            body = segment[index + 1 : end] if end != -1 else ""
            negated = body.startswith("!")
            if negated:
                body = body[1:]
            if not body:
                out.append(re.escape(char))
            else:
                escaped = "".join(item if item == "-" else re.escape(item) for item in body)
                out.append(f"[{'^' if negated else ''}{escaped}]")
                index = end
        else:
            out.append(re.escape(char))
        index += 1
    return "".join(out)


def translate(pattern: str) -> str:
    """Translate one brace-free glob into a regular expression source."""
    segments = _normalise(pattern).split("/")
    parts: list[str] = []
    for position, segment in enumerate(segments):
        last = position == len(segments) - 1
        if segment == "**":
            parts.append(".*" if last else "(?:[^/]*/)*")
            continue
        parts.append(_translate_segment(segment) + ("" if last else "/"))
    return "".join(parts)


def _static_root(pattern: str) -> str:
    normalised = _normalise(pattern)
    if not _GLOB_CHARS.intersection(normalised):
        return normalised
    literal: list[str] = []
    segments = normalised.split("/")
    for segment in segments[:-1]:
        if _GLOB_CHARS.intersection(segment):
            break
        literal.append(segment)
    return "/".join(literal)


def compile_patterns(patterns: Iterable[str]) -> list[GlobPattern]:
    compiled: list[GlobPattern] = []
    for source in patterns:
        for expanded in expand_braces(source):
            compiled.append(
                GlobPattern(
                    source=source,
                    regex=re.compile(translate(expanded)),
                    root=_static_root(expanded),
                )
            )
    return compiled


def _walk(base_dir: Path, root: str) -> Iterable[Path]:
    start = base_dir / root if root else base_dir
    if start.is_file():
        yield start
        return
    if not start.is_dir():
        return
    for path in start.rglob("*"):
        if path.is_file():
            yield path


def resolve_patterns(
    base_dir: Path,
    include: Iterable[str],
    exclude: Iterable[str] = (),
) -> list[str]:
    """Return sorted forward-slash paths under ``base_dir`` matched by ``include``
    and by none of ``exclude``."""

    includes = compile_patterns(include)
    excludes = compile_patterns(exclude)
    candidates: set[str] = set()
    for root in sorted({pattern.root for pattern in includes}):
        for path in _walk(base_dir, root):
            candidates.add(path.relative_to(base_dir).as_posix())

    matched = []
    for relative in sorted(candidates):
        if not any(pattern.matches(relative) for pattern in includes):
            continue
        if any(pattern.matches(relative) for pattern in excludes):
            logger.debug("Pattern resolver: %s excluded by ignore patterns", relative)
            continue
        matched.append(relative)
    return matched
