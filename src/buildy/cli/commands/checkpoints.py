"""Implementation of the 'checkpoints' command.

Shows the checkpoints recovered from the central changelog and whether
each one still resolves in its repository.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.table import Table

from buildy.cli.commands.run import resolve_paths
from buildy.config import load_config
from buildy.core.checkpoint import read_checkpoints
from buildy.exceptions import BuildyError
from buildy.vcs import GitRepository

if TYPE_CHECKING:
    from pathlib import Path

    from rich.console import Console


def run_checkpoints(
    path: str | None,
    config_file: Path,
    console: Console,
    err_console: Console,
) -> None:
    """Print the recovered checkpoints.

    Exits with status 1 when a checkpoint cannot be recovered or does not
    resolve.
    """
    project_path, config_path = resolve_paths(path, config_file)

    try:
        config = load_config(config_path)
        checkpoints = read_checkpoints(project_path / config.central_changelog_path)
        main_repo = GitRepository(project_path)
    except BuildyError as e:
        err_console.print(f"[red]Error:[/] {e}")
        raise SystemExit(1) from e

    table = Table(title=f"Checkpoints in {config.central_changelog_path}")
    table.add_column("Project", style="cyan")
    table.add_column("Commit")
    table.add_column("Status")

    broken = False
    rows = [(sp.name, checkpoints.for_subproject(sp.name), sp.path) for sp in config.sub_projects]
    rows.append(("Central Repository", checkpoints.central, "."))
    for name, ref, sub_path in rows:
        sub_dir = project_path / sub_path
        try:
            repo = (
                GitRepository(sub_dir)
                if GitRepository.owns_repository(sub_dir)
                else main_repo
            )
            # Without a checkpoint the next run starts at the root commit
            root_commit = repo.first_commit() if ref is None else None
        except BuildyError as e:
            err_console.print(f"[red]Error:[/] {e}")
            raise SystemExit(1) from e

        if root_commit is not None:
            status = f"[yellow]full history from {root_commit.short_sha}[/]"
            table.add_row(name, "[dim]-[/]", status)
        elif repo.resolve(ref) is None:
            broken = True
            table.add_row(name, ref, "[red]not found[/]")
        else:
            table.add_row(name, ref, "[green]ok[/]")

    console.print(table)
    if broken:
        err_console.print("[red]Some checkpoints do not resolve. Repair the central changelog.[/]")
        raise SystemExit(1)
