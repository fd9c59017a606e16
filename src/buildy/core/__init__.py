"""Core business logic for buildy.

This module contains the fundamental building blocks:
- Version parsing and manipulation (MAJOR.MINOR.PATCH)
- Commit classification into version increments
- Checkpoint recovery from the central changelog
- Changelog reconciliation
"""

from __future__ import annotations

from buildy.core.changelog import (
    ReconcilePlan,
    ReconcileResult,
    apply_plan,
    plan_reconciliation,
    reconcile,
    render_central_entry,
    render_subproject_entry,
)
from buildy.core.checkpoint import Checkpoints, read_checkpoints, recover_checkpoints
from buildy.core.commits import (
    Classification,
    IncrementReason,
    classify,
    classify_commits,
    determine_increment,
    filter_skip_commits,
)
from buildy.core.version import BumpType, Version, increment_version, parse_version

__all__ = [
    # Version
    "BumpType",
    # Checkpoints
    "Checkpoints",
    # Commits
    "Classification",
    "IncrementReason",
    # Changelog
    "ReconcilePlan",
    "ReconcileResult",
    "Version",
    "apply_plan",
    "classify",
    "classify_commits",
    "determine_increment",
    "filter_skip_commits",
    "increment_version",
    "parse_version",
    "plan_reconciliation",
    "read_checkpoints",
    "reconcile",
    "recover_checkpoints",
    "render_central_entry",
    "render_subproject_entry",
]
