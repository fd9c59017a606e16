"""Shared fixtures for buildy tests."""

from __future__ import annotations

import os
import shutil
import subprocess
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from buildy.config.models import BuildyConfig, SubProjectConfig
from buildy.vcs.git import Commit


class RepoBuilder:
    """Create commits in a scratch git repository."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._clock = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        path.mkdir(parents=True, exist_ok=True)
        self.git("init", "-q")
        self.git("config", "user.name", "Test User")
        self.git("config", "user.email", "test@example.com")
        self.git("config", "commit.gpgsign", "false")

    def git(self, *args: str) -> str:
        env = {
            **os.environ,
            "GIT_AUTHOR_DATE": self._clock.isoformat(),
            "GIT_COMMITTER_DATE": self._clock.isoformat(),
        }
        result = subprocess.run(
            ["git", *args],
            cwd=self.path,
            capture_output=True,
            text=True,
            check=True,
            env=env,
        )
        return result.stdout.strip()

    def commit(self, message: str, files: dict[str, str] | None = None) -> str:
        """Write ``files`` and commit them; returns the new sha."""
        self._clock += timedelta(minutes=1)
        if files is None:
            files = {"README.md": f"{message}\n"}
        for name, content in files.items():
            target = self.path / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
            self.git("add", name)
        self.git("commit", "-q", "-m", message)
        return self.git("rev-parse", "HEAD")


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """A fresh git repository at ``tmp_path / 'repo'``."""
    if shutil.which("git") is None:
        pytest.skip("git not installed")
    return RepoBuilder(tmp_path / "repo")


@pytest.fixture
def repo_factory(repo_builder: RepoBuilder):
    """Factory for further repositories: ``repo_factory(path)``."""
    return RepoBuilder


def make_commit(sha: str, message: str, day: int = 1) -> Commit:
    """Build an in-memory commit authored and committed on the same day."""
    when = datetime(2024, 1, day, tzinfo=UTC)
    return Commit(
        sha=sha,
        message=message,
        author_name="Test",
        author_email="test@test.com",
        date=when,
        committed_date=when,
    )


@pytest.fixture
def commit_factory():
    """Factory for in-memory commits: ``commit_factory(sha, message, day=1)``."""
    return make_commit


@pytest.fixture
def feat_commit() -> Commit:
    return make_commit("f" * 40, "feat: add user authentication")


@pytest.fixture
def fix_commit() -> Commit:
    return make_commit("a" * 40, "fix: handle null response")


@pytest.fixture
def breaking_commit() -> Commit:
    return make_commit("b" * 40, "refactor: new config format\n\nBREAKING CHANGE: old keys removed")


@pytest.fixture
def sample_config() -> BuildyConfig:
    return BuildyConfig(
        name="platform",
        version="1.0.0",
        sub_projects=[
            SubProjectConfig(name="core", version="1.0.0", path="core"),
            SubProjectConfig(name="api", version="2.3.4", path="api", depends_on=["core"]),
        ],
    )
