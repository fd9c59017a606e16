"""Configuration models for buildy.

The configuration file is YAML with camelCase keys. Every model accepts
both the camelCase alias and the Python field name.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

CENTRAL_SECTION = "Central Repository"

# Characters that would break the changelog line grammar
_VERSION_FORBIDDEN = ("|", "]", "\n", "\r")


def _check_version_text(value: str) -> str:
    """Reject version strings the changelog could not record.

    Versions are not required to be MAJOR.MINOR.PATCH here; a malformed
    version is reported when it is incremented.
    """
    bad = [c for c in _VERSION_FORBIDDEN if c in value]
    if bad:
        raise ValueError(f"version must not contain {bad[0]!r}: {value!r}")
    return value


class _Model(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class CentralIncrement(StrEnum):
    """How the central project version is incremented."""

    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"
    AUTO = "auto"


class CommitsConfig(_Model):
    """Commit message markers used to classify version increments."""

    breaking_markers: list[str] = Field(default_factory=lambda: ["BREAKING CHANGE", "!:"])
    feature_markers: list[str] = Field(default_factory=lambda: ["feat:", "feature:"])
    patch_markers: list[str] = Field(default_factory=lambda: ["fix:", "perf:"])
    skip_patterns: list[str] = Field(
        default_factory=lambda: ["[skip changelog]", "[skip release]"]
    )


class SubProjectConfig(_Model):
    """A subproject of the central repository."""

    name: str
    version: str
    path: str = "."
    build_cmd: list[str] = Field(default_factory=list)
    dockerfile: str | None = None
    depends_on: list[str] = Field(default_factory=list)
    has_breaking_changes: bool = False
    has_new_features: bool = False

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("subproject name must not be empty")
        if "\n" in value or "\r" in value:
            raise ValueError("subproject name must be a single line")
        if value == CENTRAL_SECTION:
            raise ValueError(f"subproject name {CENTRAL_SECTION!r} is reserved")
        return value

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        return _check_version_text(value)

    @field_validator("path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        if Path(value).is_absolute():
            raise ValueError(f"subproject path must be relative: {value}")
        return value


class BuildyConfig(_Model):
    """Root configuration."""

    name: str
    version: str = "0.1.0"
    sub_projects: list[SubProjectConfig] = Field(default_factory=list)
    output_dir: Path = Path("reports")
    changelog_file: str = "CHANGELOG.md"
    central_increment: CentralIncrement = CentralIncrement.PATCH
    commits: CommitsConfig = Field(default_factory=CommitsConfig)

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        return _check_version_text(value)

    @model_validator(mode="after")
    def _check_sub_projects(self) -> BuildyConfig:
        names = [sp.name for sp in self.sub_projects]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate subproject names: {', '.join(duplicates)}")

        known = set(names)
        for sp in self.sub_projects:
            unknown = [dep for dep in sp.depends_on if dep not in known]
            if unknown:
                raise ValueError(
                    f"subproject {sp.name!r} depends on unknown subprojects: "
                    f"{', '.join(unknown)}"
                )
        return self

    @property
    def central_changelog_path(self) -> Path:
        return self.output_dir / self.changelog_file

    def get_sub_project(self, name: str) -> SubProjectConfig | None:
        for sp in self.sub_projects:
            if sp.name == name:
                return sp
        return None

    def with_versions(
        self,
        versions: Mapping[str, str],
        central_version: str | None = None,
        *,
        consumed_flags: frozenset[str] = frozenset(),
    ) -> BuildyConfig:
        """Return a copy with updated versions.

        Args:
            versions: New version per subproject name
            central_version: New central version, if changed
            consumed_flags: Subprojects whose change flags were applied
                and should be reset

        Returns:
            Updated configuration; ``self`` is not modified
        """
        sub_projects = []
        for sp in self.sub_projects:
            update: dict[str, object] = {}
            if sp.name in versions:
                update["version"] = versions[sp.name]
            if sp.name in consumed_flags:
                update["has_breaking_changes"] = False
                update["has_new_features"] = False
            sub_projects.append(sp.model_copy(update=update))

        update = {"sub_projects": sub_projects}
        if central_version is not None:
            update["version"] = central_version
        return self.model_copy(update=update)
