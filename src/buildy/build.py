"""Build step runner.

Runs each subproject's configured ``buildCmd`` commands in the subproject
directory and records success or failure. A subproject without build
commands is reported as built.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from buildy.exceptions import BuildError
from buildy.graph import build_dependency_graph, build_order

if TYPE_CHECKING:
    from collections.abc import Iterable

    from buildy.config.models import BuildyConfig, SubProjectConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildResult:
    """Outcome of building one subproject."""

    name: str
    success: bool
    error: str | None = None
    skipped: bool = False


def _run_build_commands(sub_project: SubProjectConfig, root: Path) -> BuildResult:
    cwd = root / sub_project.path
    if not cwd.is_dir():
        return BuildResult(sub_project.name, False, f"Directory not found: {cwd}")

    for cmd in sub_project.build_cmd:
        logger.info("%s: running %s", sub_project.name, cmd)
        try:
            result = subprocess.run(
                cmd,
                shell=True,
                cwd=cwd,
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            error = (e.stderr or e.stdout or "").strip()
            message = f"{cmd!r} failed with exit code {e.returncode}"
            if error:
                message = f"{message}: {error}"
            logger.error("%s: %s", sub_project.name, message)
            return BuildResult(sub_project.name, False, message)
        if result.stdout:
            logger.debug("%s: %s", sub_project.name, result.stdout.strip())

    logger.info("Subproject %s built successfully", sub_project.name)
    return BuildResult(sub_project.name, True)


def run_build(
    config: BuildyConfig,
    *,
    root: Path | str = ".",
    only: Iterable[str] | None = None,
) -> dict[str, BuildResult]:
    """Build subprojects in dependency order.

    A subproject whose dependency failed is not built and is reported as
    failed.

    Args:
        config: Project configuration
        root: Repository root
        only: Names to build, defaults to every subproject

    Returns:
        Result per subproject name, in build order

    Raises:
        BuildError: If ``only`` names an unknown subproject
        ConfigValidationError: If the dependencies contain a cycle
    """
    root = Path(root)
    graph = build_dependency_graph(config.sub_projects)

    if only is not None:
        only = list(only)
        unknown = [name for name in only if name not in graph]
        if unknown:
            raise BuildError(f"Unknown subprojects: {', '.join(unknown)}")

    by_name = {sp.name: sp for sp in config.sub_projects}
    results: dict[str, BuildResult] = {}
    for name in build_order(graph, only):
        sub_project = by_name[name]

        failed_deps = [
            dep for dep in sub_project.depends_on if dep in results and not results[dep].success
        ]
        if failed_deps:
            results[name] = BuildResult(
                name,
                False,
                f"Dependency failed: {', '.join(failed_deps)}",
                skipped=True,
            )
            logger.warning("Skipping %s, dependency failed", name)
            continue

        logger.info("Building subproject: %s", name)
        results[name] = _run_build_commands(sub_project, root)
    return results


def failed_builds(results: dict[str, BuildResult]) -> list[BuildResult]:
    return [r for r in results.values() if not r.success]
