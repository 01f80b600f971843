"""
Glob-style path matching for ignore and group patterns.

Patterns are translated into anchored regular expressions:

* ``*`` matches any run of characters inside a single path segment,
* ``?`` matches one character other than ``/``,
* ``**`` as a whole segment matches zero or more segments,
* ``[abc]`` and ``[!abc]`` are character classes,
* a trailing ``/`` selects everything below a directory.

Matching is case-sensitive and never touches the filesystem, so the same
``(path, pattern)`` pair always gives the same answer. Unlike
:func:`fnmatch.fnmatch`, ``*`` never crosses a ``/``.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, List, Pattern, Sequence


def _translate_segment(segment: str) -> str:
    """Translate one path segment (no ``/`` inside) into a regex fragment."""
    out: List[str] = []
    i = 0
    n = len(segment)
    while i < n:
        char = segment[i]
        if char == "*":
            # Collapse runs like "**" inside a segment into a single star
            while i + 1 < n and segment[i + 1] == "*":
                i += 1
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "[":
            end = segment.find("]", i + 2 if i + 1 < n and segment[i + 1] in "!^" else i + 1)
            if end == -1:
                out.append(re.escape(char))
            else:
                body = segment[i + 1:end]
                if body[:1] in ("!", "^"):
                    out.append("[^/" + body[1:].replace("\\", "\\\\") + "]")
                else:
                    out.append("[" + body.replace("\\", "\\\\") + "]")
                i = end
        elif char == "\\" and i + 1 < n:
            i += 1
            out.append(re.escape(segment[i]))
        else:
            out.append(re.escape(char))
        i += 1
    return "".join(out)


@lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> Pattern[str]:
    """Compile ``pattern`` into a regular expression matched with ``fullmatch``.

    Raises
    ------
    ValueError
        If the pattern contains an invalid character class such as ``[z-a]``.
    """
    original = pattern
    if pattern.startswith("./"):
        pattern = pattern[2:]
    pattern = pattern.lstrip("/")
    if pattern.endswith("/"):
        pattern += "**"

    segments = pattern.split("/")
    parts: List[str] = []
    last = len(segments) - 1
    for index, segment in enumerate(segments):
        if segment == "**":
            if index == last:
                parts.append(".*")
            else:
                parts.append("(?:[^/]+/)*")
            continue
        parts.append(_translate_segment(segment))
        if index != last:
            parts.append("/")
    try:
        return re.compile("".join(parts))
    except re.error as exc:
        raise ValueError(f"Invalid pattern {original!r}: {exc}") from exc


def matches(path: str, pattern: str) -> bool:
    """Return True if the whole of ``path`` matches ``pattern``."""
    return compile_pattern(pattern).fullmatch(path) is not None


def matches_any(path: str, patterns: Iterable[str]) -> bool:
    """Return True if ``path`` matches at least one of ``patterns``.

    An empty pattern list matches nothing.
    """
    return any(matches(path, pattern) for pattern in patterns)


def filter_out(paths: Sequence[str], patterns: Sequence[str]) -> List[str]:
    """Return the paths that match none of ``patterns``, keeping their order."""
    if not patterns:
        return list(paths)
    return [path for path in paths if not matches_any(path, patterns)]
