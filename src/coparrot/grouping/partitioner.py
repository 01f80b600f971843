"""
Split a change list into ignore, group and individual buckets.

Ignore patterns are applied first, so an ignored file can never end up in
a group. Group patterns are then evaluated in the order given by the
caller. By default every pattern is matched against the whole filtered
list, which means overlapping patterns may place a change in more than one
group (:attr:`GroupOverlap.SHARED`). With :attr:`GroupOverlap.EXCLUSIVE` a
change belongs to the first pattern that matches it.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Sequence

from coparrot.grouping.patterns import matches, matches_any
from coparrot.models import Change, Group, Partition


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class GroupOverlap(str, Enum):
    """How a change matched by several group patterns is assigned."""

    SHARED = "shared"
    EXCLUSIVE = "exclusive"


def _unique(patterns: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(p for p in patterns if p))


def apply_ignore(changes: Sequence[Change], ignore_patterns: Sequence[str]) -> List[Change]:
    """Drop every change whose path matches one of ``ignore_patterns``.

    With no patterns the input is returned unchanged (as a new list).
    """
    if not ignore_patterns:
        return list(changes)
    kept = [change for change in changes if not matches_any(change.path, ignore_patterns)]
    logger.debug(
        "Ignore patterns %s removed %d of %d change(s)",
        list(ignore_patterns),
        len(changes) - len(kept),
        len(changes),
    )
    return kept


def apply_groups(
    changes: Sequence[Change],
    group_patterns: Sequence[str],
    overlap: GroupOverlap = GroupOverlap.SHARED,
) -> Partition:
    """Build one :class:`Group` per pattern plus the ungrouped remainder.

    Parameters
    ----------
    changes : Sequence[Change]
        Changes that survived ignore filtering, in status order.
    group_patterns : Sequence[str]
        Glob patterns, processed in order. Duplicates are evaluated once.
    overlap : GroupOverlap
        Whether a change may be claimed by several patterns.

    Returns
    -------
    Partition
        Non-empty groups in pattern order and the changes no pattern
        claimed, in their original order.
    """
    patterns = _unique(group_patterns)
    if not patterns:
        return Partition(groups=(), ungrouped=tuple(changes))

    claimed: Dict[str, None] = {}
    groups: List[Group] = []
    for pattern in patterns:
        files = [
            change
            for change in changes
            if matches(change.path, pattern)
            and (overlap is GroupOverlap.SHARED or change.path not in claimed)
        ]
        if not files:
            logger.debug("Group pattern %r matched nothing; dropped", pattern)
            continue
        for change in files:
            claimed.setdefault(change.path, None)
        groups.append(Group(pattern=pattern, files=tuple(files)))

    ungrouped = tuple(change for change in changes if change.path not in claimed)
    return Partition(groups=tuple(groups), ungrouped=ungrouped)


def partition(
    changes: Sequence[Change],
    group_patterns: Sequence[str] = (),
    ignore_patterns: Sequence[str] = (),
    overlap: GroupOverlap = GroupOverlap.SHARED,
) -> Partition:
    """Apply ignore patterns, then group patterns."""
    return apply_groups(apply_ignore(changes, ignore_patterns), group_patterns, overlap)
