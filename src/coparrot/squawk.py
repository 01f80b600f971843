"""
Sequential "squawk" run: one AI-written commit per group or file.

:class:`Squawk` partitions the pending changes, then processes every group
followed by every ungrouped change, strictly one item at a time, because
each item relies on the staging area holding nothing but its own files.
For each item it stages the paths, reads the staged diff, asks for a
message through the :class:`~coparrot.approval.ApprovalLoop`, and commits.
A failing item is counted and reported, and the run moves on.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence, Union

from coparrot.approval import ApprovalLoop
from coparrot.grouping.partitioner import GroupOverlap, apply_groups, apply_ignore
from coparrot.models import Change, Group, RunStatistics, SquawkOutcome


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


StageFn = Callable[[Sequence[str]], None]
GenerateFn = Callable[[str, Optional[str]], str]
CommitFn = Callable[[str], None]


@dataclass(frozen=True)
class SquawkItem:
    """One unit of work: either a group or a single change."""

    index: int
    total: int
    subject: Union[Group, Change]

    @property
    def is_group(self) -> bool:
        return isinstance(self.subject, Group)

    @property
    def paths(self) -> Sequence[str]:
        return self.subject.paths

    @property
    def label(self) -> str:
        if isinstance(self.subject, Group):
            count = len(self.subject.files)
            return f"{self.subject.pattern} ({count} file{'s' if count != 1 else ''})"
        return self.subject.path


class SquawkReporter:
    """Receives progress signals from a squawk run. Every hook is optional."""

    def on_nothing_to_do(self, outcome: SquawkOutcome, total_changes: int) -> None:
        pass

    def on_start(self, groups: Sequence[Group], ungrouped: Sequence[Change]) -> None:
        pass

    def on_item_start(self, item: SquawkItem) -> None:
        pass

    def on_item_committed(self, item: SquawkItem, message: str) -> None:
        pass

    def on_item_skipped(self, item: SquawkItem, reason: str) -> None:
        pass

    def on_item_failed(self, item: SquawkItem, error: Exception) -> None:
        pass

    def on_finish(self, stats: RunStatistics) -> None:
        pass


class Squawk:
    """Commit every pending change, in groups or one by one.

    Parameters
    ----------
    stage : callable
        ``stage(paths)``; adds the given paths to the index.
    generate : callable
        ``generate(staged_diff, instructions)``; returns a commit message.
    commit : callable
        ``commit(message)``; records the staged content.
    staged_diff : callable
        Returns the staged diff; an empty string means nothing is staged.
    unstage_all : callable, optional
        Empties the index. Called once before the run and after any item
        that did not end in a commit.
    approval : ApprovalLoop, optional
        Wraps each generation call. Defaults to an interactive loop.
    reporter : SquawkReporter, optional
        Receives progress signals.
    overlap : GroupOverlap
        Whether a change may belong to several groups.
    """

    def __init__(
        self,
        stage: StageFn,
        generate: GenerateFn,
        commit: CommitFn,
        staged_diff: Callable[[], str],
        unstage_all: Optional[Callable[[], None]] = None,
        approval: Optional[ApprovalLoop] = None,
        reporter: Optional[SquawkReporter] = None,
        overlap: GroupOverlap = GroupOverlap.SHARED,
    ) -> None:
        self.stage = stage
        self.generate = generate
        self.commit = commit
        self.staged_diff = staged_diff
        self.unstage_all = unstage_all
        self.approval = approval or ApprovalLoop()
        self.reporter = reporter or SquawkReporter()
        self.overlap = overlap

    def _items(self, groups: Sequence[Group], ungrouped: Sequence[Change]) -> Iterator[SquawkItem]:
        subjects: List[Union[Group, Change]] = list(groups) + list(ungrouped)
        for index, subject in enumerate(subjects, start=1):
            yield SquawkItem(index=index, total=len(subjects), subject=subject)

    def _reset_staging(self) -> None:
        if self.unstage_all is None:
            return
        try:
            self.unstage_all()
        except Exception as exc:
            logger.warning("Could not reset the staging area: %s", exc)

    def _process(self, item: SquawkItem) -> Optional[str]:
        """Stage, generate and commit one item. Returns the message, or None if skipped."""
        self.stage(list(item.paths))
        diff = self.staged_diff()
        if not diff.strip():
            self.reporter.on_item_skipped(item, "nothing staged")
            return None

        message = self.approval.run(lambda instructions: self.generate(diff, instructions))
        if not message.strip():
            self.reporter.on_item_skipped(item, "no message approved")
            return None

        self.commit(message)
        return message

    def run(
        self,
        changes: Sequence[Change],
        group_patterns: Sequence[str] = (),
        ignore_patterns: Sequence[str] = (),
    ) -> RunStatistics:
        """Process every change and return the run's statistics."""
        started = time.monotonic()
        stats = RunStatistics()

        if not changes:
            stats.outcome = SquawkOutcome.NO_CHANGES
            self.reporter.on_nothing_to_do(stats.outcome, 0)
            return stats.finalize()

        filtered = apply_ignore(changes, ignore_patterns)
        if not filtered:
            stats.outcome = SquawkOutcome.ALL_IGNORED
            self.reporter.on_nothing_to_do(stats.outcome, len(changes))
            return stats.finalize()

        groups, ungrouped = apply_groups(filtered, group_patterns, self.overlap)
        logger.info(
            "Squawk: %d group(s), %d individual change(s), %d ignored",
            len(groups),
            len(ungrouped),
            len(changes) - len(filtered),
        )
        if self.unstage_all is not None:
            self.unstage_all()
        self.reporter.on_start(groups, ungrouped)

        for item in self._items(groups, ungrouped):
            self.reporter.on_item_start(item)
            try:
                message = self._process(item)
            except Exception as exc:
                logger.error("Squawk item %s failed: %s", item.label, exc)
                stats.failed += 1
                self.reporter.on_item_failed(item, exc)
                self._reset_staging()
                continue

            if message is None:
                stats.skipped += 1
                self._reset_staging()
                continue

            if item.is_group:
                stats.group_commits += 1
                stats.group_files += len(item.subject.files)
            else:
                stats.individual_commits += 1
            self.reporter.on_item_committed(item, message)

        stats.finalize(time.monotonic() - started)
        self.reporter.on_finish(stats)
        return stats
