"""
Git client implementation for coparrot.

This module wraps the Git operations needed by the squawk engine and the
single-shot commands. Every command goes through :meth:`GitClient._run`,
which raises :class:`GitError` on failure so that unit tests can mock a
single seam.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from coparrot.models import Change
from coparrot.vcs.status import translate


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class GitError(Exception):
    """Raised when a Git command fails."""

    pass


class GitClient:
    """Client for interacting with a Git repository."""

    # Report non-ASCII paths verbatim instead of as octal escapes
    RAW_PATHS = ["-c", "core.quotePath=false"]

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def is_repo(path: Path) -> bool:
        """Return True if the given path is inside a Git repository."""
        return (path / ".git").exists()

    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                return None
            current = current.parent

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitError
            If git cannot be executed, or the command exits with a non-zero
            status when ``check`` is True.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Unable to run Git: %s", exc)
            raise GitError(f"Failed to run git: {exc}") from exc

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitError(result.stderr.strip() or result.stdout.strip() or f"{' '.join(full_cmd)} failed")
        return result

    def has_head(self) -> bool:
        """Return True once the repository has at least one commit."""
        return self._run(["rev-parse", "--verify", "-q", "HEAD"], check=False).returncode == 0

    # ------------------------------------------------------------------
    # Status and change detection
    # ------------------------------------------------------------------
    def raw_status(self) -> str:
        """Return short-format status lines, untracked files listed one by one."""
        return self._run(self.RAW_PATHS + ["status", "--porcelain", "-u"], check=True).stdout

    def raw_numstat(self) -> str:
        """Return ``git diff --numstat`` output against HEAD.

        Falls back to the index when there is no commit yet, and to an
        empty string if neither works.
        """
        result = self._run(self.RAW_PATHS + ["diff", "--numstat", "HEAD"], check=False)
        if result.returncode == 0:
            return result.stdout
        result = self._run(self.RAW_PATHS + ["diff", "--numstat"], check=False)
        if result.returncode == 0:
            return result.stdout
        logger.debug("No numstat data available: %s", result.stderr.strip())
        return ""

    def get_changes(self) -> List[Change]:
        """Get the list of pending changes, untracked files included.

        Raises
        ------
        GitError
            If the status query fails (e.g. not a repository).
        """
        status = self.raw_status()
        if not status.strip():
            return []
        return translate(status, self.raw_numstat())

    # ------------------------------------------------------------------
    # Staging and diffs
    # ------------------------------------------------------------------
    def stage(self, paths: Sequence[str]) -> None:
        """Stage ``paths``; deletions and renames are recorded as well."""
        if not paths:
            return
        self._run(["add", "--all", "--"] + list(paths), check=True)

    def unstage_all(self) -> None:
        """Empty the staging area without touching the working tree."""
        if self.has_head():
            self._run(["reset", "-q"], check=True)
        else:
            self._run(["rm", "--cached", "-r", "-q", "--ignore-unmatch", "."], check=True)

    def staged_diff(self) -> str:
        """Return the diff of the index against HEAD; empty if nothing is staged."""
        return self._run(["diff", "--cached"], check=True).stdout

    def working_diff(self) -> str:
        """Return the diff of the working tree against HEAD (or the index)."""
        result = self._run(["diff", "HEAD"], check=False)
        if result.returncode == 0:
            return result.stdout
        return self._run(["diff"], check=True).stdout

    def commit(self, message: str) -> None:
        """Create a commit with the given message.

        The message is passed as a single argument, never through a shell,
        so quotes and ``$`` need no escaping.
        """
        if not message.strip():
            raise GitError("Refusing to commit with an empty message")
        self._run(["commit", "-m", message], check=True)

    # ------------------------------------------------------------------
    # Branches and history
    # ------------------------------------------------------------------
    def get_current_branch(self) -> str:
        """Get the name of the current branch."""
        result = self._run(["branch", "--show-current"], check=True)
        return result.stdout.strip()

    def branch_exists(self, branch_name: str) -> bool:
        """Check if a local branch exists."""
        result = self._run(["branch", "--list", branch_name], check=False)
        return bool(result.stdout.strip())

    def create_branch(self, branch_name: str) -> None:
        """Create and switch to a new branch."""
        self._run(["checkout", "-b", branch_name], check=True)

    def checkout(self, branch_name: str) -> None:
        """Switch to an existing branch."""
        self._run(["checkout", branch_name], check=True)

    def log_range(self, base: str) -> str:
        """Return one-line summaries of the commits in ``base..HEAD``."""
        return self._run(["log", "--oneline", f"{base}..HEAD"], check=True).stdout

    def diff_range(self, base: str) -> str:
        """Return the diff between the merge base with ``base`` and HEAD."""
        return self._run(["diff", f"{base}...HEAD"], check=True).stdout
