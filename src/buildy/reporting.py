"""Plain-text build reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from buildy.exceptions import ReportError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from buildy.build import BuildResult
    from buildy.config.models import BuildyConfig


@dataclass(frozen=True)
class SubProjectReport:
    name: str
    version: str
    status: str
    error: str | None = None


@dataclass(frozen=True)
class BuildReport:
    timestamp: datetime
    sub_projects: list[SubProjectReport] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(sp.status != "Failure" for sp in self.sub_projects)

    def render(self) -> str:
        lines = [f"Build Report - {self.timestamp.isoformat(timespec='seconds')}", ""]
        for sp in self.sub_projects:
            lines.append(f"Subproject: {sp.name}")
            lines.append(f"Version: {sp.version}")
            lines.append(f"Status: {sp.status}")
            if sp.error:
                lines.append(f"Error: {sp.error}")
            lines.append("")
        return "\n".join(lines)


def generate_build_report(
    config: BuildyConfig,
    results: Mapping[str, BuildResult],
    *,
    timestamp: datetime | None = None,
) -> BuildReport:
    """Build a report covering every configured subproject.

    Subprojects without a build result were not built and are reported as
    ``Unchanged``.
    """
    if timestamp is None:
        timestamp = datetime.now().astimezone()

    entries = []
    for sp in config.sub_projects:
        result = results.get(sp.name)
        if result is None:
            status, error = "Unchanged", None
        elif result.success:
            status, error = "Success", None
        else:
            status, error = "Failure", result.error
        entries.append(SubProjectReport(sp.name, sp.version, status, error))
    return BuildReport(timestamp=timestamp, sub_projects=entries)


def save_build_report(report: BuildReport, output_dir: Path | str) -> Path:
    """Write ``report`` to ``output_dir/build_report_<timestamp>.txt``.

    Raises:
        ReportError: If the report cannot be written
    """
    output_dir = Path(output_dir)
    path = output_dir / f"build_report_{report.timestamp:%Y%m%d%H%M%S}.txt"
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(report.render(), encoding="utf-8")
    except OSError as e:
        raise ReportError(f"Could not write build report {path}: {e}") from e
    return path
