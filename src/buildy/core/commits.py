"""Commit message classification.

Version increments are derived from plain substring markers in commit
messages. Breaking markers win over feature markers, which win over
everything else; a range with no feature or breaking marker is a patch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from buildy.config.models import CommitsConfig
from buildy.core.version import BumpType

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from buildy.config.models import SubProjectConfig
    from buildy.vcs.git import Commit

logger = logging.getLogger(__name__)


class IncrementReason(StrEnum):
    """Why an increment was chosen."""

    BREAKING_MARKER = "breaking-marker"
    FEATURE_MARKER = "feature-marker"
    PATCH_MARKER = "patch-marker"
    BREAKING_FLAG = "breaking-flag"
    FEATURE_FLAG = "feature-flag"
    DEFAULT = "default"


@dataclass(frozen=True)
class Classification:
    """Result of classifying a commit range."""

    bump: BumpType
    reason: IncrementReason
    marker: str | None = None
    sha: str | None = None

    @property
    def is_default(self) -> bool:
        """True when no marker or flag decided the increment."""
        return self.reason == IncrementReason.DEFAULT

    @property
    def from_flags(self) -> bool:
        return self.reason in (IncrementReason.BREAKING_FLAG, IncrementReason.FEATURE_FLAG)


def _find_marker(commits: Iterable[Commit], markers: Sequence[str]) -> tuple[str, str] | None:
    for commit in commits:
        for marker in markers:
            if marker in commit.message:
                return marker, commit.sha
    return None


def classify_commits(
    commits: Sequence[Commit],
    config: CommitsConfig | None = None,
) -> Classification:
    """Classify a commit range into a version increment.

    Args:
        commits: Commits to inspect, in any order
        config: Marker configuration, defaults to :class:`CommitsConfig`

    Returns:
        Classification with the bump and the marker that decided it
    """
    if config is None:
        config = CommitsConfig()

    ordered = (
        (config.breaking_markers, BumpType.MAJOR, IncrementReason.BREAKING_MARKER),
        (config.feature_markers, BumpType.MINOR, IncrementReason.FEATURE_MARKER),
        (config.patch_markers, BumpType.PATCH, IncrementReason.PATCH_MARKER),
    )
    for markers, bump, reason in ordered:
        found = _find_marker(commits, markers)
        if found is not None:
            marker, sha = found
            return Classification(bump, reason, marker=marker, sha=sha)

    return Classification(BumpType.PATCH, IncrementReason.DEFAULT)


def classify(commits: Sequence[Commit], config: CommitsConfig | None = None) -> BumpType:
    """Return the version increment for a commit range.

    ``major`` if any message contains a breaking marker, else ``minor`` if
    any contains a feature marker, else ``patch``. Empty input is ``patch``.
    """
    return classify_commits(commits, config).bump


def determine_increment(
    sub_project: SubProjectConfig,
    commits: Sequence[Commit],
    config: CommitsConfig | None = None,
) -> Classification:
    """Decide the increment for a subproject.

    Combines the commit classification with the subproject's
    ``has_breaking_changes`` / ``has_new_features`` flags. The higher bump
    wins; on a tie the commit classification is kept.
    """
    classification = classify_commits(commits, config)

    flag: Classification | None = None
    if sub_project.has_breaking_changes:
        flag = Classification(BumpType.MAJOR, IncrementReason.BREAKING_FLAG)
    elif sub_project.has_new_features:
        flag = Classification(BumpType.MINOR, IncrementReason.FEATURE_FLAG)

    if flag is not None and flag.bump.precedence > classification.bump.precedence:
        classification = flag

    if classification.is_default:
        logger.info(
            "No increment marker found for %s in %d commits, defaulting to patch",
            sub_project.name,
            len(commits),
        )
    else:
        logger.debug(
            "Increment for %s is %s (%s%s)",
            sub_project.name,
            classification.bump,
            classification.reason,
            f" {classification.marker!r}" if classification.marker else "",
        )
    return classification


def filter_skip_commits(commits: Sequence[Commit], skip_patterns: Sequence[str]) -> list[Commit]:
    """Filter out commits that contain skip markers.

    Args:
        commits: List of commits to filter
        skip_patterns: Patterns to match (case-insensitive)

    Returns:
        Commits whose messages contain none of the patterns
    """
    if not skip_patterns:
        return list(commits)

    lowered = [p.lower() for p in skip_patterns]
    kept = []
    for commit in commits:
        message = commit.message.lower()
        if any(p in message for p in lowered):
            logger.info("Skipping commit %s (skip marker)", commit.short_sha)
            continue
        kept.append(commit)
    return kept
