"""GitClient against a real throwaway repository."""

import shutil
import subprocess
import tempfile
import unittest
from pathlib import Path

from coparrot.approval import ApprovalLoop
from coparrot.squawk import Squawk
from coparrot.vcs.git_client import GitClient


@unittest.skipUnless(shutil.which("git"), "git executable not available")
class TestGitRepository(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)
        for args in (
            ["init", "-q"],
            ["config", "user.name", "Test User"],
            ["config", "user.email", "test@example.com"],
            ["config", "commit.gpgsign", "false"],
            ["config", "core.quotePath", "true"],
        ):
            subprocess.run(["git"] + args, cwd=self.root, check=True, capture_output=True)
        self.client = GitClient(self.root)

    def test_non_ascii_untracked_file(self) -> None:
        (self.root / "café.txt").write_text("bonjour\n", encoding="utf-8")

        changes = self.client.get_changes()

        self.assertEqual([c.path for c in changes], ["café.txt"])
        self.client.stage(changes[0].paths)
        self.assertIn("bonjour", self.client.staged_diff())

    def test_squawk_commits_non_ascii_files(self) -> None:
        (self.root / "café.txt").write_text("one\n", encoding="utf-8")
        (self.root / "naïve file.md").write_text("two\n", encoding="utf-8")

        squawk = Squawk(
            stage=self.client.stage,
            generate=lambda diff, instructions: "chore: add file",
            commit=self.client.commit,
            staged_diff=self.client.staged_diff,
            unstage_all=self.client.unstage_all,
            approval=ApprovalLoop(auto_approve=True),
        )
        stats = squawk.run(self.client.get_changes())

        self.assertEqual((stats.failed, stats.individual_commits), (0, 2))
        self.assertEqual(self.client.get_changes(), [])

    def test_numstat_for_non_ascii_path(self) -> None:
        (self.root / "über.py").write_text("a = 1\n", encoding="utf-8")
        self.client.stage(["über.py"])
        self.client.commit("feat: add module")
        (self.root / "über.py").write_text("a = 1\nb = 2\n", encoding="utf-8")

        changes = self.client.get_changes()

        self.assertEqual(changes[0].path, "über.py")
        self.assertEqual((changes[0].additions, changes[0].deletions), (1, 0))


if __name__ == "__main__":
    unittest.main()
