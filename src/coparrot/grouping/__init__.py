"""
Pattern matching and partitioning of changes.

See :mod:`coparrot.grouping.patterns` for the glob matcher and
:mod:`coparrot.grouping.partitioner` for the ignore/group split.
"""

from .partitioner import GroupOverlap, apply_groups, apply_ignore, partition  # noqa: F401
from .patterns import filter_out, matches, matches_any  # noqa: F401
