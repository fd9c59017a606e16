"""Git repository access via the git CLI.

All repository reads go through ``git`` subprocesses. The repository is
treated as read-only: nothing in this module creates commits or moves refs.
"""

from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from buildy.exceptions import GitError, RangeNotFoundError, RepositoryOpenError

if TYPE_CHECKING:
    from collections.abc import Sequence

# Field and record separators for ``git log --format``
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = _FIELD_SEP.join(["%H", "%an", "%ae", "%aI", "%cI", "%B"]) + _RECORD_SEP

SHA_RE = re.compile(r"^(?:[0-9a-f]{40}|[0-9a-f]{64})$")


def is_valid_sha(value: str) -> bool:
    """Return True if ``value`` is a full lowercase hexadecimal commit sha."""
    return bool(SHA_RE.match(value))


@dataclass(frozen=True)
class Commit:
    """A single commit read from the log."""

    sha: str
    message: str
    author_name: str
    author_email: str
    # Author timestamp
    date: datetime
    # Committer timestamp, the order of the log
    committed_date: datetime

    @property
    def subject(self) -> str:
        """First line of the commit message."""
        lines = self.message.strip().splitlines()
        return lines[0].strip() if lines else ""

    @property
    def short_sha(self) -> str:
        return self.sha[:7]


class GitRepository:
    """Read access to a git repository."""

    def __init__(self, path: Path | str) -> None:
        """Open the repository containing ``path``.

        Raises:
            RepositoryOpenError: If ``path`` is not inside a git work tree
        """
        self.path = Path(path).resolve()
        if not self.path.is_dir():
            raise RepositoryOpenError(f"Repository path does not exist: {self.path}")

        try:
            toplevel = self._run("rev-parse", "--show-toplevel")
        except GitError as e:
            raise RepositoryOpenError(
                f"Not a git repository: {self.path}", stderr=e.stderr
            ) from e
        self.root = Path(toplevel)

    @staticmethod
    def owns_repository(path: Path | str) -> bool:
        """Return True if ``path`` is itself a repository root."""
        return (Path(path) / ".git").exists()

    def _run(self, *args: str) -> str:
        """Run a git command in the repository and return its stdout."""
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=self.path,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=True,
            )
        except FileNotFoundError as e:
            raise RepositoryOpenError("git executable not found") from e
        except subprocess.CalledProcessError as e:
            raise GitError(
                f"git {args[0]} failed with exit code {e.returncode}",
                stderr=e.stderr,
            ) from e
        return result.stdout.strip()

    def resolve(self, ref: str) -> str | None:
        """Return the full sha of the commit ``ref`` names, or None."""
        try:
            output = self._run("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")
        except GitError:
            return None
        return output or None

    def head_sha(self) -> str:
        """Return the sha of the current branch head.

        Raises:
            GitError: If the repository has no commits
        """
        sha = self.resolve("HEAD")
        if sha is None:
            raise GitError(f"Repository has no commits: {self.root}")
        return sha

    def get_commit(self, ref: str) -> Commit:
        """Return the commit ``ref`` names.

        Raises:
            GitError: If ``ref`` does not name a commit
        """
        sha = self.resolve(ref)
        if sha is None:
            raise GitError(f"Commit not found: {ref}")
        commits = self._parse_log(self._run("log", "-1", f"--format={_LOG_FORMAT}", sha))
        return commits[0]

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """Return True if ``ancestor`` is reachable from ``descendant``."""
        try:
            self._run("merge-base", "--is-ancestor", ancestor, descendant)
        except GitError:
            return False
        return True

    def log(
        self,
        rev: str = "HEAD",
        *,
        exclude: str | None = None,
        paths: Sequence[str] | None = None,
    ) -> list[Commit]:
        """Return commits reachable from ``rev``, newest-first by committer time.

        Args:
            rev: Starting revision
            exclude: Omit commits reachable from this revision
            paths: Only include commits touching these paths

        Returns:
            List of commits
        """
        args = ["log", "--date-order", f"--format={_LOG_FORMAT}"]
        if exclude:
            args.append(f"^{exclude}")
        args.append(rev)
        if paths:
            args.append("--")
            args.extend(paths)
        return self._parse_log(self._run(*args))

    def first_commit(self) -> Commit:
        """Return the oldest commit on the current branch by committer time."""
        commits = self.log("HEAD")
        if not commits:
            raise GitError(f"Repository has no commits: {self.root}")
        return commits[-1]

    def commits_between(
        self,
        lower: str | None,
        upper: str | None = None,
        *,
        paths: Sequence[str] | None = None,
    ) -> list[Commit]:
        """Return commits after ``lower`` up to and including ``upper``.

        The lower bound is exclusive and the upper bound inclusive. Without
        a lower bound every commit reachable from ``upper`` is returned.
        Path filtering only scopes the result; the bounds are checked
        against the unfiltered history.

        Args:
            lower: Last already-processed commit, or None for full history
            upper: Newest commit to include, defaults to the current head
            paths: Only include commits touching these paths

        Returns:
            Commits in oldest-first order

        Raises:
            RangeNotFoundError: If ``lower`` does not resolve or is not an
                ancestor of ``upper``
        """
        upper_sha = self.head_sha() if upper is None else self.resolve(upper)
        if upper_sha is None:
            raise RangeNotFoundError(f"Could not resolve upper bound {upper}")

        lower_sha = None
        if lower is not None:
            lower_sha = self.resolve(lower)
            if lower_sha is None or not self.is_ancestor(lower_sha, upper_sha):
                raise RangeNotFoundError(
                    f"Could not find a valid range between {lower} and {upper_sha}"
                )

        commits = self.log(upper_sha, exclude=lower_sha, paths=paths)
        commits.reverse()
        return commits

    @staticmethod
    def _parse_log(output: str) -> list[Commit]:
        commits = []
        for record in output.split(_RECORD_SEP):
            record = record.strip("\n")
            if not record:
                continue
            sha, author_name, author_email, date, committed, message = record.split(_FIELD_SEP, 5)
            commits.append(
                Commit(
                    sha=sha,
                    message=message.strip(),
                    author_name=author_name,
                    author_email=author_email,
                    date=datetime.fromisoformat(date),
                    committed_date=datetime.fromisoformat(committed),
                )
            )
        return commits


def commits_between(
    repo: GitRepository,
    lower: str | None,
    upper: str | None = None,
    paths: Sequence[str] | None = None,
) -> list[Commit]:
    """Return commits strictly after ``lower`` up to ``upper``, oldest-first.

    See :meth:`GitRepository.commits_between`.
    """
    return repo.commits_between(lower, upper, paths=paths)
