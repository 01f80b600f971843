"""
Data models shared by the squawk engine.

A :class:`Change` is one pending modification reported by ``git status``.
Changes are collected into :class:`Group` buckets by glob pattern, and a
squawk run accumulates its counters in :class:`RunStatistics`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, Optional, Tuple


class ChangeKind(str, Enum):
    """Human readable classification of a two-character status code."""

    MODIFIED = "modified"
    ADDED = "added"
    DELETED = "deleted"
    RENAMED = "renamed"
    COPIED = "copied"
    UPDATED = "updated"
    UNTRACKED = "untracked"
    UNKNOWN = "unknown"


STATUS_KINDS: Dict[str, ChangeKind] = {
    "M ": ChangeKind.MODIFIED,
    " M": ChangeKind.MODIFIED,
    "MM": ChangeKind.MODIFIED,
    "A ": ChangeKind.ADDED,
    "AM": ChangeKind.ADDED,
    "D ": ChangeKind.DELETED,
    " D": ChangeKind.DELETED,
    "R ": ChangeKind.RENAMED,
    "C ": ChangeKind.COPIED,
    "U ": ChangeKind.UPDATED,
    "??": ChangeKind.UNTRACKED,
}


def kind_for_status(status_code: str) -> ChangeKind:
    """Return the :class:`ChangeKind` for ``status_code`` (``unknown`` if unmapped)."""
    return STATUS_KINDS.get(status_code, ChangeKind.UNKNOWN)


@dataclass(frozen=True)
class Change:
    """A single file change in the working tree.

    Attributes
    ----------
    path : str
        Repository-relative path. For renames and copies this is the
        destination path.
    status_code : str
        Raw two-character status code, e.g. ``" M"`` or ``"??"``.
    kind : ChangeKind
        Classification derived from ``status_code``.
    additions, deletions : int
        Line counts from ``git diff --numstat``; 0 when unavailable.
    original_path : str, optional
        Source path of a rename or copy.
    """

    path: str
    status_code: str
    kind: ChangeKind = ChangeKind.UNKNOWN
    additions: int = 0
    deletions: int = 0
    original_path: Optional[str] = None

    @property
    def paths(self) -> Tuple[str, ...]:
        """Every path that has to be staged to record this change."""
        if self.original_path and self.original_path != self.path:
            return (self.original_path, self.path)
        return (self.path,)


@dataclass(frozen=True)
class Group:
    """Changes matched by one group pattern, committed together."""

    pattern: str
    files: Tuple[Change, ...]

    @property
    def paths(self) -> Tuple[str, ...]:
        seen: Dict[str, None] = {}
        for change in self.files:
            for path in change.paths:
                seen.setdefault(path, None)
        return tuple(seen)

    def __len__(self) -> int:
        return len(self.files)


@dataclass(frozen=True)
class Partition:
    """Result of grouping: the non-empty groups and the leftover changes."""

    groups: Tuple[Group, ...] = ()
    ungrouped: Tuple[Change, ...] = ()

    def __iter__(self) -> Iterator[object]:
        # Allows ``groups, ungrouped = partition``
        yield self.groups
        yield self.ungrouped

    @property
    def is_empty(self) -> bool:
        return not self.groups and not self.ungrouped


class SquawkOutcome(str, Enum):
    """How a squawk run ended."""

    COMPLETED = "completed"
    NO_CHANGES = "no_changes"
    ALL_IGNORED = "all_ignored"


@dataclass
class RunStatistics:
    """Counters for one squawk run.

    All counters only ever grow while the run is in progress.
    ``total_commits`` is computed once by :meth:`finalize`.
    """

    group_commits: int = 0
    group_files: int = 0
    individual_commits: int = 0
    total_commits: int = 0
    failed: int = 0
    skipped: int = 0
    outcome: SquawkOutcome = SquawkOutcome.COMPLETED
    elapsed: float = field(default=0.0, compare=False)

    def finalize(self, elapsed: float = 0.0) -> "RunStatistics":
        self.total_commits = self.group_commits + self.individual_commits
        self.elapsed = elapsed
        return self

    @property
    def attempted(self) -> int:
        return self.total_commits + self.failed + self.skipped
