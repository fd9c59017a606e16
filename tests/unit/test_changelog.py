"""Unit tests for changelog rendering and writing."""

from __future__ import annotations

from datetime import UTC, date, datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from buildy.core.changelog import prepend_entry, render_central_entry, render_subproject_entry
from buildy.exceptions import ChangelogWriteError
from buildy.vcs.git import Commit

SHA_A = "a" * 40
SHA_B = "b" * 40


class TestRenderSubprojectEntry:
    def test_render(self, commit_factory):
        commits = [
            commit_factory("1" * 40, "First change\n\nwith a body", day=3),
            commit_factory("2" * 40, "Second change", day=5),
        ]

        entry = render_subproject_entry("1.0.1", commits)

        assert entry == "## [1.0.1] - 2024-01-05\n- First change\n- Second change\n\n"

    def test_dated_by_commit_time(self):
        """A rebased commit is dated when it was committed, not authored."""
        rebased = Commit(
            sha="1" * 40,
            message="Port fix",
            author_name="Test",
            author_email="test@test.com",
            date=datetime(2023, 6, 1, tzinfo=UTC),
            committed_date=datetime(2024, 1, 9, tzinfo=UTC),
        )

        entry = render_subproject_entry("1.0.1", [rebased])

        assert entry.startswith("## [1.0.1] - 2024-01-09\n")


class TestRenderCentralEntry:
    def test_render_full(self, commit_factory):
        head = commit_factory(SHA_B, "Bump tooling", day=7)

        entry = render_central_entry(
            version="1.0.1",
            today=date(2024, 2, 1),
            sections=[("core", "1.1.0", SHA_A), ("api", "2.0.0", SHA_A)],
            central_commits=[commit_factory(SHA_B, "Bump tooling")],
            head=head,
        )

        assert entry == (
            "## [1.0.1] - 2024-02-01\n"
            "\n"
            "### core\n"
            f"- Updated to version 1.1.0 | {SHA_A}\n"
            "### api\n"
            f"- Updated to version 2.0.0 | {SHA_A}\n"
            "\n"
            "### Central Repository\n"
            "- Bump tooling\n"
            "\n"
            f"Commit: {SHA_B}\n"
            "Author: Test\n"
            "Date: 2024-01-07\n"
            "Message: Bump tooling\n"
            "\n"
        )

    def test_central_section_omitted_without_commits(self, commit_factory):
        entry = render_central_entry(
            version="1.0.1",
            today=date(2024, 2, 1),
            sections=[("core", "1.1.0", SHA_A)],
            central_commits=[],
            head=commit_factory(SHA_A, "Release"),
        )

        assert "### Central Repository" not in entry
        assert f"Commit: {SHA_A}" in entry


class TestPrependEntry:
    def test_creates_file_and_directories(self, tmp_path: Path):
        path = tmp_path / "reports" / "CHANGELOG.md"

        prepend_entry(path, "## [1.0.0] - 2024-01-01\n- First\n\n")

        assert path.read_text() == "## [1.0.0] - 2024-01-01\n- First\n\n"

    def test_newest_entry_on_top(self, tmp_path: Path):
        path = tmp_path / "CHANGELOG.md"
        path.write_text("## [1.0.0] - 2024-01-01\n- First\n\n")

        prepend_entry(path, "## [1.0.1] - 2024-01-02\n- Second\n\n")

        assert path.read_text().startswith("## [1.0.1]")
        assert path.read_text().endswith("- First\n\n")
        assert not (tmp_path / ".CHANGELOG.md.tmp").exists()

    def test_write_failure_raises(self, tmp_path: Path):
        path = tmp_path / "CHANGELOG.md"

        with patch("buildy.core.changelog.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(ChangelogWriteError, match="disk full"):
                prepend_entry(path, "entry\n")
