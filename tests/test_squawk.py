"""Tests for the sequential squawk orchestrator."""

import unittest
from unittest.mock import Mock

from coparrot.approval import ApprovalCancelled, ApprovalLoop
from coparrot.grouping.partitioner import GroupOverlap
from coparrot.models import Change, ChangeKind, SquawkOutcome
from coparrot.squawk import Squawk, SquawkReporter


def make_change(path: str, status_code: str = " M") -> Change:
    return Change(path=path, status_code=status_code, kind=ChangeKind.MODIFIED)


class FakeRepo:
    """Records every collaborator call in order.

    Committed paths drop out of later diffs, the way git reports nothing
    for a file whose changes are already in HEAD.
    """

    def __init__(self, fail_commit_on=None, fail_stage_on=None):
        self.events = []
        self.staged = []
        self.committed = set()
        self.fail_commit_on = fail_commit_on or set()
        self.fail_stage_on = fail_stage_on or set()
        self.commits = 0

    def stage(self, paths):
        self.events.append(("stage", tuple(paths)))
        if self.fail_stage_on & set(paths):
            raise RuntimeError("cannot stage")
        self.staged.extend(paths)

    def staged_diff(self):
        self.events.append(("diff",))
        return "".join(f"+{p}\n" for p in self.staged if p not in self.committed)

    def generate(self, diff, instructions):
        self.events.append(("generate", diff))
        return f"commit {diff.strip()}"

    def commit(self, message):
        self.events.append(("commit", message))
        self.commits += 1
        if self.commits in self.fail_commit_on:
            raise RuntimeError("commit rejected")
        self.committed.update(self.staged)
        self.staged = []

    def unstage_all(self):
        self.events.append(("unstage",))
        self.staged = []


def make_squawk(repo, reporter=None, approval=None, overlap=GroupOverlap.SHARED):
    return Squawk(
        stage=repo.stage,
        generate=repo.generate,
        commit=repo.commit,
        staged_diff=repo.staged_diff,
        unstage_all=repo.unstage_all,
        approval=approval or ApprovalLoop(auto_approve=True),
        reporter=reporter,
        overlap=overlap,
    )


class TestSquawk(unittest.TestCase):
    def test_no_changes(self) -> None:
        repo = FakeRepo()
        reporter = Mock(spec=SquawkReporter)
        stats = make_squawk(repo, reporter).run([])
        self.assertEqual(stats.outcome, SquawkOutcome.NO_CHANGES)
        self.assertEqual((stats.total_commits, stats.failed, stats.group_commits), (0, 0, 0))
        self.assertEqual(repo.events, [])
        reporter.on_nothing_to_do.assert_called_once_with(SquawkOutcome.NO_CHANGES, 0)

    def test_all_ignored_is_distinct_from_no_changes(self) -> None:
        repo = FakeRepo()
        reporter = Mock(spec=SquawkReporter)
        stats = make_squawk(repo, reporter).run([make_change("a.json")], ignore_patterns=["*.json"])
        self.assertEqual(stats.outcome, SquawkOutcome.ALL_IGNORED)
        self.assertEqual(repo.events, [])
        reporter.on_nothing_to_do.assert_called_once_with(SquawkOutcome.ALL_IGNORED, 1)

    def test_groups_first_then_individual(self) -> None:
        repo = FakeRepo()
        changes = [make_change("a.js"), make_change("b.txt"), make_change("c.txt"), make_change("d.json")]
        stats = make_squawk(repo).run(changes, group_patterns=["*.txt"], ignore_patterns=["*.json"])

        staged = [event[1] for event in repo.events if event[0] == "stage"]
        self.assertEqual(staged, [("b.txt", "c.txt"), ("a.js",)])
        self.assertEqual(stats.group_commits, 1)
        self.assertEqual(stats.group_files, 2)
        self.assertEqual(stats.individual_commits, 1)
        self.assertEqual(stats.total_commits, 2)
        self.assertEqual(stats.failed, 0)
        self.assertEqual(stats.outcome, SquawkOutcome.COMPLETED)

    def test_each_item_fully_processed_before_next(self) -> None:
        repo = FakeRepo()
        make_squawk(repo).run([make_change("a.py"), make_change("b.py")])
        kinds = [event[0] for event in repo.events]
        self.assertEqual(
            kinds,
            ["unstage", "stage", "diff", "generate", "commit", "stage", "diff", "generate", "commit"],
        )
        diffs = [event[1] for event in repo.events if event[0] == "generate"]
        self.assertEqual(diffs, ["+a.py\n", "+b.py\n"])

    def test_commit_failure_does_not_abort_run(self) -> None:
        for failing in (1, 2, 3):
            with self.subTest(failing=failing):
                repo = FakeRepo(fail_commit_on={failing})
                reporter = Mock(spec=SquawkReporter)
                changes = [make_change("a.py"), make_change("b.py"), make_change("c.py")]
                stats = make_squawk(repo, reporter).run(changes)
                self.assertEqual(len([e for e in repo.events if e[0] == "commit"]), 3)
                self.assertEqual(stats.failed, 1)
                self.assertEqual(stats.total_commits, 2)
                self.assertEqual(reporter.on_item_failed.call_count, 1)
                self.assertEqual(str(reporter.on_item_failed.call_args[0][1]), "commit rejected")

    def test_failure_resets_staging(self) -> None:
        repo = FakeRepo(fail_stage_on={"a.py"})
        stats = make_squawk(repo).run([make_change("a.py"), make_change("b.py")])
        self.assertEqual(stats.failed, 1)
        self.assertEqual(stats.individual_commits, 1)
        generated = [event[1] for event in repo.events if event[0] == "generate"]
        self.assertEqual(generated, ["+b.py\n"])

    def test_generation_error_is_per_item(self) -> None:
        repo = FakeRepo()
        calls = []

        def generate(diff, instructions):
            calls.append(diff)
            if len(calls) == 1:
                raise ConnectionError("provider down")
            return "ok"

        squawk = Squawk(
            stage=repo.stage,
            generate=generate,
            commit=repo.commit,
            staged_diff=repo.staged_diff,
            unstage_all=repo.unstage_all,
            approval=ApprovalLoop(auto_approve=True),
        )
        stats = squawk.run([make_change("a.py"), make_change("b.py")])
        self.assertEqual(len(calls), 2)
        self.assertEqual((stats.failed, stats.total_commits), (1, 1))

    def test_cancelled_approval_skips_item(self) -> None:
        repo = FakeRepo()
        prompter = Mock()
        prompter.review.side_effect = ApprovalCancelled()
        reporter = Mock(spec=SquawkReporter)
        stats = make_squawk(repo, reporter, approval=ApprovalLoop(prompter=prompter)).run([make_change("a.py")])
        self.assertEqual((stats.total_commits, stats.failed, stats.skipped), (0, 0, 1))
        self.assertNotIn("commit", [event[0] for event in repo.events])
        reporter.on_item_skipped.assert_called_once()

    def test_empty_staged_diff_skips_item(self) -> None:
        repo = FakeRepo()
        repo.staged_diff = lambda: ""
        stats = make_squawk(repo).run([make_change("a.py")])
        self.assertEqual(stats.skipped, 1)
        self.assertNotIn("generate", [event[0] for event in repo.events])

    def test_overlapping_groups_shared(self) -> None:
        repo = FakeRepo()
        reporter = Mock(spec=SquawkReporter)
        changes = [make_change("src/a.py"), make_change("src/b.md")]
        stats = make_squawk(repo, reporter).run(changes, group_patterns=["src/*", "**/*.py"])
        self.assertEqual(stats.group_commits, 1)
        self.assertEqual(stats.group_files, 2)
        self.assertEqual(stats.skipped, 1)
        self.assertEqual(stats.individual_commits, 0)
        self.assertEqual(reporter.on_item_skipped.call_args[0][1], "nothing staged")

    def test_overlapping_groups_shared_narrows_later_diff(self) -> None:
        repo = FakeRepo()
        changes = [make_change("src/a.py"), make_change("src/b.md"), make_change("lib/c.py")]
        stats = make_squawk(repo).run(changes, group_patterns=["src/*", "**/*.py"])
        self.assertEqual(stats.group_commits, 2)
        generated = [event[1] for event in repo.events if event[0] == "generate"]
        self.assertEqual(generated, ["+src/a.py\n+src/b.md\n", "+lib/c.py\n"])

    def test_overlapping_groups_exclusive(self) -> None:
        repo = FakeRepo()
        changes = [make_change("src/a.py"), make_change("src/b.md")]
        stats = make_squawk(repo, overlap=GroupOverlap.EXCLUSIVE).run(changes, group_patterns=["src/*", "**/*.py"])
        self.assertEqual(stats.group_commits, 1)
        self.assertEqual(stats.group_files, 2)

    def test_rename_stages_both_paths(self) -> None:
        repo = FakeRepo()
        change = Change(path="new.py", status_code="R ", kind=ChangeKind.RENAMED, original_path="old.py")
        make_squawk(repo).run([change])
        self.assertIn(("stage", ("old.py", "new.py")), repo.events)

    def test_works_without_unstage_all(self) -> None:
        repo = FakeRepo()
        squawk = Squawk(
            stage=repo.stage,
            generate=repo.generate,
            commit=repo.commit,
            staged_diff=repo.staged_diff,
            approval=ApprovalLoop(auto_approve=True),
        )
        stats = squawk.run([make_change("a.py")])
        self.assertEqual(stats.total_commits, 1)
        self.assertNotIn(("unstage",), repo.events)

    def test_reporter_receives_finish(self) -> None:
        repo = FakeRepo()
        reporter = Mock(spec=SquawkReporter)
        stats = make_squawk(repo, reporter).run([make_change("a.py")])
        reporter.on_start.assert_called_once()
        reporter.on_item_committed.assert_called_once()
        reporter.on_finish.assert_called_once_with(stats)
        self.assertGreaterEqual(stats.elapsed, 0.0)


if __name__ == "__main__":
    unittest.main()
