"""
Translate raw ``git status`` and ``git diff --numstat`` output into changes.

The status text is expected in short/porcelain format (``XY path``), the
numstat text as ``additions<TAB>deletions<TAB>path`` lines. Malformed
lines are skipped instead of aborting the whole translation.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Tuple

from coparrot.models import Change, kind_for_status


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


UNTRACKED = "??"
RENAME_ARROW = " -> "

# "{old => new}" inside a numstat rename path, e.g. "src/{a.py => b.py}"
_BRACE_RENAME = re.compile(r"\{([^{}]*) => ([^{}]*)\}")


_C_ESCAPES = {
    "a": 0x07,
    "b": 0x08,
    "t": 0x09,
    "n": 0x0A,
    "v": 0x0B,
    "f": 0x0C,
    "r": 0x0D,
    '"': 0x22,
    "\\": 0x5C,
}
_OCTAL_ESCAPE = re.compile(r"[0-3][0-7]{2}")


def _unquote(path: str) -> str:
    """Remove the C-style quoting git applies to unusual path names.

    Octal escapes are raw UTF-8 bytes (``"caf\\303\\251.txt"``), so the
    unescaped name is rebuilt as bytes and decoded once at the end.
    """
    if len(path) < 2 or not (path.startswith('"') and path.endswith('"')):
        return path
    inner = path[1:-1]
    raw = bytearray()
    i = 0
    while i < len(inner):
        char = inner[i]
        if char == "\\" and i + 1 < len(inner):
            octal = _OCTAL_ESCAPE.match(inner, i + 1)
            if octal:
                raw.append(int(octal.group(0), 8))
                i = octal.end()
                continue
            escaped = _C_ESCAPES.get(inner[i + 1])
            if escaped is not None:
                raw.append(escaped)
                i += 2
                continue
        raw.extend(char.encode("utf-8"))
        i += 1
    return raw.decode("utf-8", errors="replace")


def _count(value: str) -> int:
    if value == "-":
        # binary file
        return 0
    try:
        return max(int(value), 0)
    except ValueError:
        return 0


def _numstat_target(path: str) -> str:
    """Return the destination path of a numstat entry (handles renames)."""
    if "{" in path and " => " in path:
        resolved = _BRACE_RENAME.sub(lambda m: m.group(2), path)
        return resolved.replace("//", "/")
    if " => " in path:
        return path.split(" => ", 1)[1]
    return path


def parse_numstat(raw_numstat: str) -> Dict[str, Tuple[int, int]]:
    """Build a ``path -> (additions, deletions)`` lookup from numstat output."""
    stats: Dict[str, Tuple[int, int]] = {}
    if not raw_numstat:
        return stats
    for line in raw_numstat.splitlines():
        parts = line.split("\t")
        if len(parts) < 3:
            continue
        additions, deletions = parts[0].strip(), parts[1].strip()
        path = _numstat_target(_unquote("\t".join(parts[2:]).strip()))
        if not path:
            continue
        stats[path] = (_count(additions), _count(deletions))
    return stats


def parse_status_line(line: str) -> Optional[Tuple[str, str, Optional[str]]]:
    """Split one status line into ``(status_code, path, original_path)``.

    Returns None for lines that cannot describe a change.
    """
    if len(line) < 4 or not line.strip():
        return None
    status_code = line[:2]
    offset = 3 if status_code == UNTRACKED else 2
    path = line[offset:].strip()
    if not path:
        return None

    original_path: Optional[str] = None
    if RENAME_ARROW in path and ("R" in status_code or "C" in status_code):
        source, target = path.split(RENAME_ARROW, 1)
        original_path = _unquote(source.strip())
        path = target.strip()
    path = _unquote(path)
    if not path:
        return None
    return status_code, path, original_path


def translate(raw_status: str, raw_numstat: str = "") -> List[Change]:
    """Convert raw status and numstat text into an ordered list of changes.

    Parameters
    ----------
    raw_status : str
        Output of ``git status --porcelain``/``--short``.
    raw_numstat : str
        Output of ``git diff --numstat``; may be empty.

    Returns
    -------
    List[Change]
        One change per well-formed status line, in the order git listed
        them. Paths absent from the numstat data get zero line counts.
    """
    stats = parse_numstat(raw_numstat)
    changes: List[Change] = []
    seen = set()
    for line in raw_status.splitlines():
        parsed = parse_status_line(line)
        if parsed is None:
            if line.strip():
                logger.debug("Skipping malformed status line: %r", line)
            continue
        status_code, path, original_path = parsed
        if path in seen:
            logger.debug("Skipping duplicate status entry for %s", path)
            continue
        seen.add(path)
        additions, deletions = stats.get(path, (0, 0))
        changes.append(
            Change(
                path=path,
                status_code=status_code,
                kind=kind_for_status(status_code),
                additions=additions,
                deletions=deletions,
                original_path=original_path,
            )
        )
    return changes
