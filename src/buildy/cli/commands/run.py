"""Implementation of the 'run' and 'changelog' commands.

'run' builds the changed subprojects, then updates the changelogs and the
versions in the configuration file. 'changelog' does the same without
building.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from rich.panel import Panel
from rich.table import Table

from buildy.build import failed_builds, run_build
from buildy.config import load_config, save_config
from buildy.core.changelog import apply_plan, plan_reconciliation
from buildy.exceptions import BuildyError
from buildy.graph import build_dependency_graph, subprojects_to_build
from buildy.reporting import generate_build_report, save_build_report

if TYPE_CHECKING:
    from rich.console import Console

    from buildy.build import BuildResult
    from buildy.config import BuildyConfig
    from buildy.core.changelog import ReconcilePlan


def resolve_paths(path: str | None, config_file: Path) -> tuple[Path, Path]:
    """Return the project root and the configuration file path."""
    project_path = Path(path) if path else Path.cwd()
    if not config_file.is_absolute():
        config_file = project_path / config_file
    return project_path, config_file


def run_command(
    path: str | None,
    config_file: Path,
    dry_run: bool,
    build: bool,
    console: Console,
    err_console: Console,
) -> None:
    """Run a reconciliation, optionally building first.

    Args:
        path: Optional path to the repository root
        config_file: Configuration file, relative to the root
        dry_run: Only show what would change
        build: Build the changed subprojects before writing
        console: Console for standard output
        err_console: Console for error output
    """
    project_path, config_path = resolve_paths(path, config_file)

    # Load configuration
    try:
        config = load_config(config_path)
    except BuildyError as e:
        err_console.print(f"[red]Error loading config:[/] {e}")
        raise SystemExit(1) from e

    # Plan the run before building or writing anything
    try:
        plan = plan_reconciliation(config, root=project_path)
    except BuildyError as e:
        err_console.print(f"[red]Error reconciling changelogs:[/] {e}")
        raise SystemExit(1) from e

    if plan.is_empty:
        console.print("[yellow]No new commits since the last run. Nothing to do.[/]")
        return

    console.print(render_plan(plan))
    for name, error in plan.version_errors.items():
        err_console.print(
            f"[yellow]Warning:[/] version of [cyan]{name}[/] not incremented: {error}"
        )

    if dry_run:
        changes = [f"  • Update [cyan]{sp.changelog_path}[/]" for sp in plan.changed_subprojects]
        changes.append(f"  • Update [cyan]{plan.central.changelog_path}[/]")
        changes.append(f"  • Update versions in [cyan]{config_path}[/]")
        console.print(
            Panel(
                "[bold]Would make the following changes:[/]\n\n" + "\n".join(changes),
                title="[yellow]Dry Run Preview[/]",
                border_style="yellow",
            )
        )
        return

    results: dict[str, BuildResult] = {}
    if build:
        graph = build_dependency_graph(config.sub_projects)
        to_build = subprojects_to_build(graph, [sp.name for sp in plan.changed_subprojects])
        try:
            results = run_build(config, root=project_path, only=to_build)
        except BuildyError as e:
            err_console.print(f"[red]Error building:[/] {e}")
            raise SystemExit(1) from e

        failures = failed_builds(results)
        if failures:
            _write_report(config, results, project_path, console, err_console)
            for failure in failures:
                err_console.print(f"[red]Build failed:[/] {failure.name}: {failure.error}")
            err_console.print("[red]Changelogs and versions were not updated.[/]")
            raise SystemExit(1)

    # Actually apply changes
    try:
        written = apply_plan(plan)
    except BuildyError as e:
        err_console.print(f"[red]Error writing changelogs:[/] {e}")
        raise SystemExit(1) from e
    for changelog_path in written:
        console.print(f"  [green]✓[/] Updated {changelog_path}")

    updated = plan.updated_config()
    try:
        save_config(updated, config_path)
    except BuildyError as e:
        err_console.print(f"[red]Error saving configuration:[/] {e}")
        raise SystemExit(1) from e
    console.print(f"  [green]✓[/] Updated versions in {config_path}")

    if build:
        _write_report(updated, results, project_path, console, err_console)

    console.print(
        Panel(
            f"[green]{config.name} updated to version {updated.version}![/]",
            title="[green]Run Complete[/]",
            border_style="green",
        )
    )


def render_plan(plan: ReconcilePlan) -> Table:
    """Summarize a plan as a table."""
    table = Table(title=f"{plan.config.name} {plan.config.version} → {plan.central.new_version}")
    table.add_column("Project", style="cyan")
    table.add_column("Commits", justify="right")
    table.add_column("Increment")
    table.add_column("Version")

    for sp in plan.subprojects:
        if sp.classification is not None:
            increment = f"{sp.classification.bump} ({sp.classification.reason})"
            version = f"{sp.sub_project.version} → [green]{sp.new_version}[/]"
        else:
            increment = "[dim]-[/]"
            version = sp.sub_project.version
        table.add_row(sp.name, str(len(sp.commits)), increment, version)

    table.add_row(
        "[bold]Central Repository[/]",
        str(len(plan.central.commits)),
        str(plan.central.bump),
        f"{plan.config.version} → [green]{plan.central.new_version}[/]",
    )
    return table


def _write_report(
    config: BuildyConfig,
    results: dict[str, BuildResult],
    project_path: Path,
    console: Console,
    err_console: Console,
) -> None:
    report = generate_build_report(config, results)
    try:
        report_path = save_build_report(report, project_path / config.output_dir)
    except BuildyError as e:
        err_console.print(f"[red]Error saving build report:[/] {e}")
        raise SystemExit(1) from e
    console.print(f"  [green]✓[/] Build report written to {report_path}")
