"""Tests for GitRepository against real repositories."""

from __future__ import annotations

from pathlib import Path

import pytest

from buildy.exceptions import GitError, RangeNotFoundError, RepositoryOpenError
from buildy.vcs.git import GitRepository, commits_between


@pytest.fixture
def linear_repo(repo_builder):
    """Repository with five commits; returns (builder, shas oldest-first)."""
    shas = [
        repo_builder.commit("Initial commit"),
        repo_builder.commit("feat: core api", {"core/a.py": "a"}),
        repo_builder.commit("Docs", {"docs/index.md": "docs"}),
        repo_builder.commit("fix: core bug", {"core/a.py": "b"}),
        repo_builder.commit("chore: tooling", {"tools/x.sh": "x"}),
    ]
    return repo_builder, shas


class TestOpen:
    def test_not_a_repository(self, tmp_path: Path):
        with pytest.raises(RepositoryOpenError):
            GitRepository(tmp_path)

    def test_missing_path(self, tmp_path: Path):
        with pytest.raises(RepositoryOpenError):
            GitRepository(tmp_path / "missing")

    def test_owns_repository(self, repo_builder):
        (repo_builder.path / "sub").mkdir()

        assert GitRepository.owns_repository(repo_builder.path)
        assert not GitRepository.owns_repository(repo_builder.path / "sub")

    def test_empty_repository_has_no_head(self, repo_builder):
        repo = GitRepository(repo_builder.path)
        with pytest.raises(GitError):
            repo.head_sha()


class TestResolve:
    def test_head(self, linear_repo):
        builder, shas = linear_repo
        repo = GitRepository(builder.path)

        assert repo.head_sha() == shas[-1]
        assert repo.resolve("HEAD~1") == shas[-2]

    def test_unknown_sha(self, linear_repo):
        builder, _ = linear_repo
        repo = GitRepository(builder.path)

        assert repo.resolve("0123456789" * 4) is None
        assert repo.resolve("not-a-ref") is None

    def test_get_commit(self, linear_repo):
        builder, shas = linear_repo
        commit = GitRepository(builder.path).get_commit(shas[1])

        assert commit.sha == shas[1]
        assert commit.subject == "feat: core api"
        assert commit.author_name == "Test User"
        assert commit.date.year == 2024

    def test_author_and_commit_dates(self, repo_builder):
        """Both timestamps are read; a rebased commit keeps its author date."""
        repo_builder.commit("Initial commit")
        repo_builder.git(
            "commit", "-q", "--allow-empty", "-m", "Ported", "--date", "2020-05-01T00:00:00+00:00"
        )

        commit = GitRepository(repo_builder.path).get_commit("HEAD")

        assert commit.date.year == 2020
        assert commit.committed_date.year == 2024

    def test_first_commit(self, linear_repo):
        builder, shas = linear_repo
        assert GitRepository(builder.path).first_commit().sha == shas[0]


class TestCommitsBetween:
    """Tests for commits_between()."""

    def test_excludes_lower_includes_upper(self, linear_repo):
        builder, shas = linear_repo
        repo = GitRepository(builder.path)

        commits = commits_between(repo, shas[1], shas[3])

        assert [c.sha for c in commits] == [shas[2], shas[3]]

    def test_defaults_to_head(self, linear_repo):
        builder, shas = linear_repo
        commits = GitRepository(builder.path).commits_between(shas[2])

        assert [c.sha for c in commits] == shas[3:]

    def test_no_lower_bound_walks_to_root(self, linear_repo):
        builder, shas = linear_repo
        commits = GitRepository(builder.path).commits_between(None)

        assert [c.sha for c in commits] == shas

    def test_same_bounds_is_empty(self, linear_repo):
        builder, shas = linear_repo
        assert GitRepository(builder.path).commits_between(shas[-1]) == []

    def test_path_filter(self, linear_repo):
        """The checkpoint need not touch the filtered path."""
        builder, shas = linear_repo
        repo = GitRepository(builder.path)

        commits = repo.commits_between(shas[2], paths=["core"])

        assert [c.subject for c in commits] == ["fix: core bug"]

    def test_unknown_lower_bound_raises(self, linear_repo):
        builder, _ = linear_repo
        with pytest.raises(RangeNotFoundError):
            GitRepository(builder.path).commits_between("abc123" + "0" * 34)

    def test_lower_bound_not_ancestor_raises(self, linear_repo):
        builder, shas = linear_repo
        with pytest.raises(RangeNotFoundError):
            GitRepository(builder.path).commits_between(shas[3], shas[1])

    def test_full_message_is_kept(self, repo_builder):
        repo_builder.commit("feat: thing\n\nBREAKING CHANGE: removed old thing")
        commits = GitRepository(repo_builder.path).commits_between(None)

        assert "BREAKING CHANGE" in commits[0].message
        assert commits[0].subject == "feat: thing"
