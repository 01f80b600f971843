"""
Version control system (VCS) integration.

This package contains the :class:`GitClient` used to query and mutate a
Git repository, and :mod:`coparrot.vcs.status` which turns raw status
output into :class:`~coparrot.models.Change` records.
"""

from .git_client import GitClient, GitError  # noqa: F401
from .status import translate  # noqa: F401
