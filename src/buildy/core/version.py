"""Semantic version parsing and manipulation.

Versions are plain three-part ``MAJOR.MINOR.PATCH`` strings. Pre-release
and build metadata are not supported; anything that does not split into
exactly three non-negative integers is rejected.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from buildy.exceptions import InvalidVersionFormatError

_PART_RE = re.compile(r"0|[1-9]\d*")


class BumpType(StrEnum):
    """Kind of version increment."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    NONE = "none"

    @property
    def precedence(self) -> int:
        return _PRECEDENCE[self]


_PRECEDENCE = {
    BumpType.NONE: 0,
    BumpType.PATCH: 1,
    BumpType.MINOR: 2,
    BumpType.MAJOR: 3,
}


def max_bump(*bumps: BumpType) -> BumpType:
    """Return the highest of the given bumps (NONE when empty)."""
    return max(bumps, key=lambda b: b.precedence, default=BumpType.NONE)


@dataclass(frozen=True, order=True)
class Version:
    """A MAJOR.MINOR.PATCH version."""

    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, value: str) -> Version:
        """Parse a version string.

        Args:
            value: Version string such as ``"1.2.3"``

        Returns:
            Parsed Version

        Raises:
            InvalidVersionFormatError: If the string is not three
                dot-separated non-negative integers
        """
        if not isinstance(value, str):
            raise InvalidVersionFormatError(f"Invalid version: {value!r}")

        parts = value.strip().split(".")
        if len(parts) != 3 or not all(_PART_RE.fullmatch(part) for part in parts):
            raise InvalidVersionFormatError(
                f"Invalid version format: {value!r}. Expected MAJOR.MINOR.PATCH."
            )

        major, minor, patch = (int(part) for part in parts)
        return cls(major, minor, patch)

    def bump(self, kind: BumpType | str) -> Version:
        """Return the version incremented by ``kind``.

        Unrecognized kinds (including ``none``) leave the version unchanged.
        """
        if kind == BumpType.MAJOR:
            return Version(self.major + 1, 0, 0)
        if kind == BumpType.MINOR:
            return Version(self.major, self.minor + 1, 0)
        if kind == BumpType.PATCH:
            return Version(self.major, self.minor, self.patch + 1)
        return self

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def parse_version(value: str) -> Version:
    """Parse a version string (see :meth:`Version.parse`)."""
    return Version.parse(value)


def increment_version(value: str, kind: BumpType | str) -> str:
    """Parse ``value``, apply ``kind`` and render the result.

    Raises:
        InvalidVersionFormatError: If ``value`` is malformed
    """
    return str(Version.parse(value).bump(kind))
