"""Version control access for buildy."""

from __future__ import annotations

from buildy.vcs.git import Commit, GitRepository, commits_between, is_valid_sha

__all__ = [
    "Commit",
    "GitRepository",
    "commits_between",
    "is_valid_sha",
]
