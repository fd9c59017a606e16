"""Command-line interface for buildy."""

from __future__ import annotations

from buildy.cli.main import app

__all__ = ["app"]
