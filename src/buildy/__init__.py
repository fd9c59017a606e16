"""buildy - incremental changelog and version management for multi-project repositories."""

from __future__ import annotations

__version__ = "0.3.0"
