"""Command-line entry point for buildy."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from buildy import __version__
from buildy.cli.commands.checkpoints import run_checkpoints
from buildy.cli.commands.run import run_command
from buildy.config import DEFAULT_CONFIG_FILE
from buildy.logging_config import setup_logging

app = typer.Typer(
    name="buildy",
    help="Build subprojects, bump versions and keep changelogs in sync.",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)

ConfigOption = typer.Option(
    Path(DEFAULT_CONFIG_FILE), "--config", "-c", help="Path to the configuration file"
)
PathOption = typer.Option(None, "--path", "-p", help="Repository root (default: cwd)")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Enable debug logging")


@app.command()
def run(
    config: Path = ConfigOption,
    path: str | None = PathOption,
    dry_run: bool = typer.Option(False, "--dry-run", help="Show changes without applying"),
    verbose: bool = VerboseOption,
) -> None:
    """
    Build changed subprojects, then update changelogs and versions.

    Examples:
        buildy run
        buildy run -c build-config.yaml --dry-run
    """
    setup_logging(verbose, err_console)
    run_command(path, config, dry_run, True, console, err_console)


@app.command()
def changelog(
    config: Path = ConfigOption,
    path: str | None = PathOption,
    dry_run: bool = typer.Option(False, "--dry-run", help="Show changes without applying"),
    verbose: bool = VerboseOption,
) -> None:
    """Update changelogs and versions without building."""
    setup_logging(verbose, err_console)
    run_command(path, config, dry_run, False, console, err_console)


@app.command()
def checkpoints(
    config: Path = ConfigOption,
    path: str | None = PathOption,
    verbose: bool = VerboseOption,
) -> None:
    """Show the checkpoints recovered from the central changelog."""
    setup_logging(verbose, err_console)
    run_checkpoints(path, config, console, err_console)


@app.command()
def version() -> None:
    """Show the buildy version."""
    console.print(f"buildy {__version__}")


if __name__ == "__main__":
    app()
