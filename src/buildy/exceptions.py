"""Exception hierarchy for buildy.

Exception Hierarchy:
-------------------
BuildyError (base)
├── ConfigError
│   ├── ConfigNotFoundError         # Config file missing
│   └── ConfigValidationError       # YAML or model validation failed
├── GitError
│   ├── RepositoryOpenError         # Not a repository, git unavailable
│   └── RangeNotFoundError          # Checkpoint not reachable from head
├── VersionError
│   └── InvalidVersionFormatError   # Not MAJOR.MINOR.PATCH
├── ChangelogError
│   ├── CheckpointError
│   │   ├── CheckpointFormatError       # Unparseable checkpoint line
│   │   └── CheckpointResolutionError   # Checkpoint sha unknown to repository
│   └── ChangelogWriteError         # Filesystem write failed
├── BuildError
└── ReportError

Every error propagates to the CLI, which aborts the run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class BuildyError(Exception):
    """Base exception for all buildy errors."""


class ConfigError(BuildyError):
    """Raised when the configuration cannot be loaded or saved."""


class ConfigNotFoundError(ConfigError):
    """Raised when the configuration file does not exist."""


class ConfigValidationError(ConfigError):
    """Raised when the configuration content is invalid."""


class GitError(BuildyError):
    """Raised when a git command fails."""

    def __init__(self, message: str, stderr: str | None = None) -> None:
        super().__init__(message)
        self.stderr = stderr

    def __str__(self) -> str:
        message = super().__str__()
        if self.stderr:
            return f"{message}: {self.stderr.strip()}"
        return message


class RepositoryOpenError(GitError):
    """Raised when a repository cannot be opened."""


class RangeNotFoundError(GitError):
    """Raised when no commit range exists between two references."""


class VersionError(BuildyError):
    """Raised for version handling errors."""


class InvalidVersionFormatError(VersionError):
    """Raised when a version string is not MAJOR.MINOR.PATCH."""


class ChangelogError(BuildyError):
    """Raised when changelog reconciliation fails."""


class CheckpointError(ChangelogError):
    """Raised when checkpoints cannot be recovered from a changelog."""


class CheckpointFormatError(CheckpointError):
    """Raised when a checkpoint line in a changelog is malformed."""

    def __init__(
        self,
        message: str,
        line_number: int | None = None,
        path: Path | None = None,
    ) -> None:
        super().__init__(message)
        self.line_number = line_number
        self.path = path

    def __str__(self) -> str:
        message = super().__str__()
        if self.path is not None and self.line_number is not None:
            return f"{self.path}:{self.line_number}: {message}"
        if self.path is not None:
            return f"{self.path}: {message}"
        if self.line_number is not None:
            return f"line {self.line_number}: {message}"
        return message


class CheckpointResolutionError(CheckpointError):
    """Raised when a recovered checkpoint does not name a known commit."""


class ChangelogWriteError(ChangelogError):
    """Raised when a changelog file cannot be written."""


class BuildError(BuildyError):
    """Raised when the build runner cannot run."""


class ReportError(BuildyError):
    """Raised when a build report cannot be written."""
