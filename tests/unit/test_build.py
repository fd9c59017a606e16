"""Tests for the build step runner."""

from __future__ import annotations

from pathlib import Path

import pytest

from buildy.build import failed_builds, run_build
from buildy.config.models import BuildyConfig, SubProjectConfig
from buildy.exceptions import BuildError


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    for name in ("core", "api", "web"):
        (tmp_path / name).mkdir()
    return tmp_path


def make_config(core_cmd: list[str]) -> BuildyConfig:
    return BuildyConfig(
        name="platform",
        sub_projects=[
            SubProjectConfig(name="web", version="1.0.0", path="web", depends_on=["api"]),
            SubProjectConfig(name="api", version="1.0.0", path="api", depends_on=["core"]),
            SubProjectConfig(name="core", version="1.0.0", path="core", build_cmd=core_cmd),
        ],
    )


class TestRunBuild:
    """Tests for run_build()."""

    def test_runs_in_dependency_order(self, workspace: Path):
        results = run_build(make_config(["touch built.txt"]), root=workspace)

        assert list(results) == ["core", "api", "web"]
        assert failed_builds(results) == []
        assert (workspace / "core" / "built.txt").exists()

    def test_failure_is_reported(self, workspace: Path):
        results = run_build(make_config(["echo broken >&2; exit 3"]), root=workspace)

        core = results["core"]
        assert not core.success
        assert "exit code 3" in core.error
        assert "broken" in core.error

    def test_dependents_of_failure_are_skipped(self, workspace: Path):
        results = run_build(make_config(["exit 1"]), root=workspace)

        assert results["api"].skipped
        assert results["web"].skipped
        assert "core" in results["api"].error
        assert len(failed_builds(results)) == 3

    def test_stops_at_first_failing_command(self, workspace: Path):
        results = run_build(make_config(["exit 1", "touch never.txt"]), root=workspace, only=["core"])

        assert not results["core"].success
        assert not (workspace / "core" / "never.txt").exists()

    def test_only_subset(self, workspace: Path):
        results = run_build(make_config([]), root=workspace, only=["api", "core"])

        assert list(results) == ["core", "api"]

    def test_unknown_name_raises(self, workspace: Path):
        with pytest.raises(BuildError, match="mobile"):
            run_build(make_config([]), root=workspace, only=["mobile"])

    def test_missing_directory_fails(self, tmp_path: Path):
        results = run_build(make_config([]), root=tmp_path, only=["core"])

        assert "Directory not found" in results["core"].error
