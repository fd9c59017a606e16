"""Changelog reconciliation.

A run is split in two phases. :func:`plan_reconciliation` recovers the
checkpoints from the central changelog, resolves the new commit range of
every subproject and of the central repository, classifies the increments
and renders the new entries, without touching the filesystem.
:func:`apply_plan` then prepends the entries to the subproject changelogs
and finally to the central changelog.

Every checkpoint, range or repository failure is raised while planning, so
a failed run writes nothing. Writing is not transactional: a write failure
while applying leaves the subproject changelogs written before it in place.
The central changelog is written last and is therefore never advanced past
a failed subproject; restore the partially written files before re-running,
otherwise their entries are recorded twice.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING

from buildy.config.models import CENTRAL_SECTION, CentralIncrement
from buildy.core.checkpoint import VERSION_BULLET_PREFIX, Checkpoints, read_checkpoints
from buildy.core.commits import (
    Classification,
    classify_commits,
    determine_increment,
    filter_skip_commits,
)
from buildy.core.version import BumpType, Version, max_bump
from buildy.exceptions import (
    ChangelogWriteError,
    CheckpointResolutionError,
    InvalidVersionFormatError,
)
from buildy.vcs.git import Commit, GitRepository, commits_between

if TYPE_CHECKING:
    from collections.abc import Sequence

    from buildy.config.models import BuildyConfig, SubProjectConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubProjectPlan:
    """Planned changelog update for one subproject."""

    sub_project: SubProjectConfig
    changelog_path: Path
    checkpoint: str | None
    head: str
    commits: tuple[Commit, ...]
    classification: Classification | None
    new_version: str
    version_error: str | None = None
    # Every commit in the range, skipped ones included
    range_shas: frozenset[str] = frozenset()
    in_main_repository: bool = True

    @property
    def name(self) -> str:
        return self.sub_project.name

    @property
    def has_changes(self) -> bool:
        return bool(self.commits)

    @property
    def bump(self) -> BumpType:
        if self.classification is None:
            return BumpType.NONE
        return self.classification.bump

    @property
    def entry(self) -> str | None:
        if not self.has_changes:
            return None
        return render_subproject_entry(self.new_version, self.commits)


@dataclass(frozen=True)
class CentralPlan:
    """Planned update of the central changelog."""

    changelog_path: Path
    checkpoint: str | None
    head: Commit
    commits: tuple[Commit, ...]
    bump: BumpType
    new_version: str
    version_error: str | None = None


@dataclass(frozen=True)
class ReconcilePlan:
    """Everything a reconciliation run will write."""

    config: BuildyConfig
    checkpoints: Checkpoints
    subprojects: tuple[SubProjectPlan, ...]
    central: CentralPlan
    today: date

    @property
    def is_empty(self) -> bool:
        """True when there is nothing new to record."""
        return not self.central.commits and not any(sp.has_changes for sp in self.subprojects)

    @property
    def changed_subprojects(self) -> list[SubProjectPlan]:
        return [sp for sp in self.subprojects if sp.has_changes]

    @property
    def version_errors(self) -> dict[str, str]:
        """Versions that could not be incremented, keyed by project name."""
        errors = {sp.name: sp.version_error for sp in self.subprojects if sp.version_error}
        if self.central.version_error:
            errors[self.config.name] = self.central.version_error
        return errors

    @property
    def central_entry(self) -> str:
        return render_central_entry(
            version=self.central.new_version,
            today=self.today,
            sections=[(sp.name, sp.new_version, sp.head) for sp in self.subprojects],
            central_commits=self.central.commits,
            head=self.central.head,
        )

    def updated_config(self) -> BuildyConfig:
        """Return the configuration with the planned versions applied."""
        if self.is_empty:
            return self.config
        changed = self.changed_subprojects
        return self.config.with_versions(
            {sp.name: sp.new_version for sp in changed},
            self.central.new_version,
            consumed_flags=frozenset(
                sp.name for sp in changed if sp.classification and sp.classification.from_flags
            ),
        )


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of :func:`reconcile`."""

    plan: ReconcilePlan
    config: BuildyConfig
    written: list[Path] = field(default_factory=list)


def render_subproject_entry(version: str, commits: Sequence[Commit]) -> str:
    """Render a subproject changelog entry.

    Args:
        version: Version the entry is published under
        commits: Commits in oldest-first order (must not be empty); the
            entry is dated by the committer date of the newest one

    Returns:
        Entry text ending with a blank line
    """
    newest = commits[-1]
    lines = [f"## [{version}] - {newest.committed_date:%Y-%m-%d}"]
    lines.extend(f"- {commit.subject}" for commit in commits)
    return "\n".join(lines) + "\n\n"


def render_central_entry(
    version: str,
    today: date,
    sections: Sequence[tuple[str, str, str]],
    central_commits: Sequence[Commit],
    head: Commit,
) -> str:
    """Render a central changelog entry.

    Args:
        version: New central version
        today: Entry date
        sections: ``(name, version, checkpoint)`` per subproject
        central_commits: Central-only commits, oldest-first
        head: Central head commit, recorded as the central checkpoint

    Returns:
        Entry text ending with a blank line
    """
    lines = [f"## [{version}] - {today:%Y-%m-%d}", ""]
    for name, sub_version, ref in sections:
        lines.append(f"### {name}")
        lines.append(f"{VERSION_BULLET_PREFIX} {sub_version} | {ref}")

    if central_commits:
        lines.append("")
        lines.append(f"### {CENTRAL_SECTION}")
        lines.extend(f"- {commit.subject}" for commit in central_commits)

    lines.extend(
        [
            "",
            f"Commit: {head.sha}",
            f"Author: {head.author_name}",
            f"Date: {head.committed_date:%Y-%m-%d}",
            f"Message: {head.subject}",
        ]
    )
    return "\n".join(lines) + "\n\n"


def prepend_entry(path: Path, entry: str) -> None:
    """Prepend ``entry`` to the changelog at ``path``.

    The file and its parent directories are created when missing. The new
    content is written to a temporary file and moved into place.

    Raises:
        ChangelogWriteError: If the file cannot be read or written
    """
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        existing = path.read_text(encoding="utf-8") if path.exists() else ""
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(entry + existing, encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError as e:
        raise ChangelogWriteError(f"Could not write changelog {path}: {e}") from e


def _next_version(label: str, current: str, bump: BumpType) -> tuple[str, str | None]:
    try:
        return str(Version.parse(current).bump(bump)), None
    except InvalidVersionFormatError as e:
        logger.warning("Version of %s not incremented: %s", label, e)
        return current, str(e)


def _resolve_checkpoint(repo: GitRepository, ref: str | None, label: str) -> str | None:
    if ref is None:
        return None
    sha = repo.resolve(ref)
    if sha is None:
        raise CheckpointResolutionError(
            f"Checkpoint {ref} of {label} does not exist in repository {repo.root}"
        )
    return sha


def _plan_subproject(
    sub_project: SubProjectConfig,
    config: BuildyConfig,
    root: Path,
    main_repo: GitRepository,
    checkpoints: Checkpoints,
) -> SubProjectPlan:
    sub_dir = root / sub_project.path
    paths: list[str] | None = None
    if GitRepository.owns_repository(sub_dir) and sub_dir.resolve() != main_repo.path:
        repo = GitRepository(sub_dir)
    else:
        repo = main_repo
        if Path(sub_project.path) != Path("."):
            paths = [sub_project.path]

    checkpoint = _resolve_checkpoint(
        repo, checkpoints.for_subproject(sub_project.name), sub_project.name
    )
    head = repo.head_sha()
    in_range = commits_between(repo, checkpoint, head, paths=paths)
    commits = filter_skip_commits(in_range, config.commits.skip_patterns)

    logger.info(
        "%s: %d new commits since %s",
        sub_project.name,
        len(commits),
        checkpoint[:7] if checkpoint else "repository root",
    )

    classification = None
    new_version = sub_project.version
    version_error = None
    if commits:
        classification = determine_increment(sub_project, commits, config.commits)
        new_version, version_error = _next_version(
            sub_project.name, sub_project.version, classification.bump
        )

    return SubProjectPlan(
        sub_project=sub_project,
        changelog_path=sub_dir / config.changelog_file,
        checkpoint=checkpoint,
        head=head,
        commits=tuple(commits),
        classification=classification,
        new_version=new_version,
        version_error=version_error,
        range_shas=frozenset(c.sha for c in in_range),
        in_main_repository=repo is main_repo,
    )


def _central_bump(
    config: BuildyConfig,
    subprojects: Sequence[SubProjectPlan],
    central_commits: Sequence[Commit],
) -> BumpType:
    if config.central_increment != CentralIncrement.AUTO:
        return BumpType(config.central_increment.value)

    bumps = [sp.bump for sp in subprojects]
    if central_commits:
        bumps.append(classify_commits(central_commits, config.commits).bump)
    return max_bump(*bumps)


def plan_reconciliation(
    config: BuildyConfig,
    *,
    root: Path | str = ".",
    today: date | None = None,
) -> ReconcilePlan:
    """Compute a reconciliation run without writing anything.

    Args:
        config: Project configuration
        root: Repository root; relative config paths are resolved from it
        today: Date of the central entry, defaults to the current date

    Returns:
        The plan of the run

    Raises:
        RepositoryOpenError: If a repository cannot be opened
        CheckpointFormatError: If the central changelog is malformed
        CheckpointResolutionError: If a checkpoint names an unknown commit
        RangeNotFoundError: If a checkpoint is not reachable from its head
    """
    root = Path(root)
    if today is None:
        today = date.today()

    main_repo = GitRepository(root)
    central_path = root / config.central_changelog_path
    checkpoints = read_checkpoints(central_path)

    subprojects = tuple(
        _plan_subproject(sp, config, root, main_repo, checkpoints) for sp in config.sub_projects
    )

    central_checkpoint = _resolve_checkpoint(main_repo, checkpoints.central, config.name)
    head = main_repo.get_commit(main_repo.head_sha())
    central_range = commits_between(main_repo, central_checkpoint, head.sha)

    attributed: set[str] = set()
    for sp in subprojects:
        if sp.in_main_repository:
            attributed |= sp.range_shas
    central_commits = filter_skip_commits(
        [c for c in central_range if c.sha not in attributed],
        config.commits.skip_patterns,
    )
    logger.info("%s: %d new central commits", config.name, len(central_commits))

    bump = _central_bump(config, subprojects, central_commits)
    new_version, version_error = _next_version(config.name, config.version, bump)

    central = CentralPlan(
        changelog_path=central_path,
        checkpoint=central_checkpoint,
        head=head,
        commits=tuple(central_commits),
        bump=bump,
        new_version=new_version,
        version_error=version_error,
    )
    return ReconcilePlan(
        config=config,
        checkpoints=checkpoints,
        subprojects=subprojects,
        central=central,
        today=today,
    )


def apply_plan(plan: ReconcilePlan) -> list[Path]:
    """Write the changelog entries of a plan.

    Subproject changelogs are written first, the central changelog last.

    Returns:
        Paths of the files written

    Raises:
        ChangelogWriteError: If a file cannot be written
    """
    if plan.is_empty:
        logger.info("No new commits, changelogs unchanged")
        return []

    written = []
    for sp in plan.subprojects:
        entry = sp.entry
        if entry is None:
            continue
        prepend_entry(sp.changelog_path, entry)
        logger.info("%s: changelog updated to %s", sp.name, sp.new_version)
        written.append(sp.changelog_path)

    prepend_entry(plan.central.changelog_path, plan.central_entry)
    logger.info("%s: central changelog updated to %s", plan.config.name, plan.central.new_version)
    written.append(plan.central.changelog_path)
    return written


def reconcile(
    config: BuildyConfig,
    *,
    root: Path | str = ".",
    today: date | None = None,
) -> ReconcileResult:
    """Run a full reconciliation: plan, write, and return updated versions.

    The given configuration is not modified; the returned result carries
    the configuration with the new versions for the caller to persist.
    """
    plan = plan_reconciliation(config, root=root, today=today)
    written = apply_plan(plan)
    return ReconcileResult(plan=plan, config=plan.updated_config(), written=written)
