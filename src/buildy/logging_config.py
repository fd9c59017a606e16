"""Logging setup for the buildy CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "buildy"


def setup_logging(verbose: bool = False, console: Console | None = None) -> logging.Logger:
    """Configure the ``buildy`` logger with a rich handler.

    Args:
        verbose: Log at DEBUG instead of INFO
        console: Console to log to, defaults to stderr

    Returns:
        The configured ``buildy`` logger
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Avoid duplicate handlers when called more than once
    logger.handlers.clear()

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
