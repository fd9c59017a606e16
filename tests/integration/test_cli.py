"""Tests for the buildy command line."""

from __future__ import annotations

import pytest
import yaml
from typer.testing import CliRunner

from buildy import __version__
from buildy.cli import app

runner = CliRunner()


def write_config(path, core_cmd=None):
    data = {
        "name": "platform",
        "version": "1.0.0",
        "subProjects": [
            {"name": "core", "version": "1.0.0", "path": "core", "buildCmd": core_cmd or []},
            {"name": "api", "version": "2.3.4", "path": "api", "dependsOn": ["core"]},
        ],
    }
    (path / "build-config.yaml").write_text(yaml.safe_dump(data, sort_keys=False))


def load_written_config(path):
    return yaml.safe_load((path / "build-config.yaml").read_text())


@pytest.fixture
def project(repo_builder):
    repo_builder.commit("Initial commit")
    repo_builder.commit("feat: core api", {"core/a.py": "a"})
    repo_builder.commit("fix: api bug", {"api/b.py": "b"})
    write_config(repo_builder.path)
    return repo_builder.path


def report_files(path):
    return sorted((path / "reports").glob("build_report_*.txt"))


class TestVersionCommand:
    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.output


class TestChangelogCommand:
    """Tests for 'buildy changelog'."""

    def test_updates_changelogs_and_versions(self, project):
        result = runner.invoke(app, ["changelog", "-p", str(project)])

        assert result.exit_code == 0, result.output
        assert (project / "core" / "CHANGELOG.md").exists()
        assert (project / "reports" / "CHANGELOG.md").exists()
        data = load_written_config(project)
        assert data["version"] == "1.0.1"
        assert data["subProjects"][0]["version"] == "1.1.0"
        assert report_files(project) == []

    def test_second_run_is_noop(self, project):
        runner.invoke(app, ["changelog", "-p", str(project)])
        central = (project / "reports" / "CHANGELOG.md").read_text()

        result = runner.invoke(app, ["changelog", "-p", str(project)])

        assert result.exit_code == 0
        assert "Nothing to do" in result.output
        assert (project / "reports" / "CHANGELOG.md").read_text() == central

    def test_dry_run_writes_nothing(self, project):
        result = runner.invoke(app, ["changelog", "-p", str(project), "--dry-run"])

        assert result.exit_code == 0
        assert "Dry Run Preview" in result.output
        assert not (project / "reports" / "CHANGELOG.md").exists()
        assert load_written_config(project)["version"] == "1.0.0"

    def test_missing_config(self, tmp_path):
        result = runner.invoke(app, ["changelog", "-p", str(tmp_path)])

        assert result.exit_code == 1
        assert "Error loading config" in result.output

    def test_unresolvable_checkpoint(self, project):
        central = project / "reports" / "CHANGELOG.md"
        central.parent.mkdir()
        central.write_text(f"Commit: {'0' * 40}\n")

        result = runner.invoke(app, ["changelog", "-p", str(project)])

        assert result.exit_code == 1
        assert not (project / "core" / "CHANGELOG.md").exists()
        assert load_written_config(project)["version"] == "1.0.0"


class TestRunCommand:
    """Tests for 'buildy run'."""

    def test_build_then_update(self, project):
        write_config(project, core_cmd=["touch built.txt"])

        result = runner.invoke(app, ["run", "-p", str(project)])

        assert result.exit_code == 0, result.output
        assert (project / "core" / "built.txt").exists()
        assert (project / "core" / "CHANGELOG.md").exists()
        [report] = report_files(project)
        assert "Status: Success" in report.read_text()

    def test_build_failure_writes_no_changelog(self, project):
        write_config(project, core_cmd=["exit 1"])

        result = runner.invoke(app, ["run", "-p", str(project)])

        assert result.exit_code == 1
        assert not (project / "core" / "CHANGELOG.md").exists()
        assert not (project / "reports" / "CHANGELOG.md").exists()
        assert load_written_config(project)["version"] == "1.0.0"
        [report] = report_files(project)
        assert "Status: Failure" in report.read_text()


class TestCheckpointsCommand:
    """Tests for 'buildy checkpoints'."""

    def test_after_run(self, project):
        runner.invoke(app, ["changelog", "-p", str(project)])

        result = runner.invoke(app, ["checkpoints", "-p", str(project)])

        assert result.exit_code == 0, result.output
        assert "ok" in result.output

    def test_first_run(self, project):
        result = runner.invoke(app, ["checkpoints", "-p", str(project)])

        assert result.exit_code == 0
        assert "full history from" in result.output

    def test_broken_checkpoint(self, project):
        central = project / "reports" / "CHANGELOG.md"
        central.parent.mkdir()
        central.write_text(f"Commit: {'0' * 40}\n")

        result = runner.invoke(app, ["checkpoints", "-p", str(project)])

        assert result.exit_code == 1
        assert "Some checkpoints do not resolve" in result.output
