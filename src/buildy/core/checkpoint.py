"""Checkpoint recovery from the central changelog.

The central changelog is the only record of what has already been
processed. Each entry lists every subproject with the commit its changelog
was advanced to, and ends with a commit-info block naming the central head::

    ## [1.4.0] - 2024-05-01

    ### api
    - Updated to version 2.1.0 | 3f2a...
    ### web
    - Updated to version 0.9.3 | 3f2a...

    ### Central Repository
    - Bump shared tooling

    Commit: 3f2a...
    Author: Jane Doe
    Date: 2024-05-01
    Message: Bump shared tooling

Entries are prepended, so the first occurrence of a line in the file is the
most recent one. Recovery tokenizes the text line by line and keeps the
first checkpoint seen per subproject and the first ``Commit:`` line.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from buildy.config.models import CENTRAL_SECTION
from buildy.exceptions import ChangelogError, CheckpointFormatError
from buildy.vcs.git import is_valid_sha

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

logger = logging.getLogger(__name__)

VERSION_BULLET_PREFIX = "- Updated to version"
COMMIT_INFO_PREFIX = "Commit:"

_ENTRY_HEADER_RE = re.compile(r"^## \[(?P<version>[^\]]*)\] - (?P<date>\d{4}-\d{2}-\d{2})$")
_SECTION_HEADER_RE = re.compile(r"^### (?P<name>.+)$")
# The version runs up to the last " | ", so a stored version that is not
# MAJOR.MINOR.PATCH still reads back
_VERSION_BULLET_RE = re.compile(r"^- Updated to version (?P<version>.*) \| (?P<ref>\S+)$")
_COMMIT_INFO_RE = re.compile(r"^Commit: (?P<ref>\S+)$")
_INFO_RE = re.compile(r"^(?P<key>Author|Date|Message): ?(?P<value>.*)$")


class TokenKind(Enum):
    ENTRY_HEADER = "entry-header"
    SECTION_HEADER = "section-header"
    CENTRAL_HEADER = "central-header"
    VERSION_BULLET = "version-bullet"
    COMMIT_BULLET = "commit-bullet"
    COMMIT_INFO = "commit-info"
    INFO = "info"
    BLANK = "blank"
    TEXT = "text"


@dataclass(frozen=True)
class Token:
    """A classified changelog line."""

    kind: TokenKind
    line_number: int
    text: str
    name: str | None = None
    version: str | None = None
    ref: str | None = None


@dataclass(frozen=True)
class Checkpoints:
    """Last processed commit per subproject and for the central repository."""

    subprojects: dict[str, str] = field(default_factory=dict)
    central: str | None = None

    def for_subproject(self, name: str) -> str | None:
        return self.subprojects.get(name)


def _check_ref(ref: str, line_number: int) -> str:
    if not is_valid_sha(ref):
        raise CheckpointFormatError(f"Invalid commit reference {ref!r}", line_number)
    return ref


def tokenize(text: str) -> Iterator[Token]:
    """Split changelog text into typed tokens.

    Bullets inside a Central Repository section are always commit bullets,
    so commit messages can never be read as checkpoint lines.

    Raises:
        CheckpointFormatError: If a checkpoint line is malformed
    """
    in_central = False
    for line_number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()

        if not line:
            yield Token(TokenKind.BLANK, line_number, line)
            continue

        if match := _ENTRY_HEADER_RE.match(line):
            in_central = False
            yield Token(
                TokenKind.ENTRY_HEADER, line_number, line, version=match.group("version")
            )
            continue

        if match := _SECTION_HEADER_RE.match(line):
            name = match.group("name").strip()
            in_central = name == CENTRAL_SECTION
            kind = TokenKind.CENTRAL_HEADER if in_central else TokenKind.SECTION_HEADER
            yield Token(kind, line_number, line, name=name)
            continue

        if line.startswith("- "):
            if not in_central and line.startswith(VERSION_BULLET_PREFIX):
                match = _VERSION_BULLET_RE.match(line)
                if match is None:
                    raise CheckpointFormatError(
                        f"Malformed version line, expected '{VERSION_BULLET_PREFIX} V | REF': {line!r}",
                        line_number,
                    )
                yield Token(
                    TokenKind.VERSION_BULLET,
                    line_number,
                    line,
                    version=match.group("version"),
                    ref=_check_ref(match.group("ref"), line_number),
                )
            else:
                yield Token(TokenKind.COMMIT_BULLET, line_number, line)
            continue

        if line.startswith(COMMIT_INFO_PREFIX):
            in_central = False
            match = _COMMIT_INFO_RE.match(line)
            if match is None:
                raise CheckpointFormatError(f"Malformed commit line: {line!r}", line_number)
            yield Token(
                TokenKind.COMMIT_INFO,
                line_number,
                line,
                ref=_check_ref(match.group("ref"), line_number),
            )
            continue

        if match := _INFO_RE.match(line):
            yield Token(TokenKind.INFO, line_number, line, name=match.group("key"))
            continue

        yield Token(TokenKind.TEXT, line_number, line)


def recover_checkpoints(text: str | None) -> Checkpoints:
    """Recover checkpoints from central changelog text.

    Args:
        text: Changelog content, or None when there is no changelog

    Returns:
        Checkpoints; keys without a recognizable line are absent/None

    Raises:
        CheckpointFormatError: If a checkpoint line is malformed or a
            version line appears outside a subproject section
    """
    if not text:
        return Checkpoints()

    subprojects: dict[str, str] = {}
    central: str | None = None
    section: str | None = None

    for token in tokenize(text):
        if token.kind == TokenKind.ENTRY_HEADER:
            section = None
        elif token.kind == TokenKind.SECTION_HEADER:
            section = token.name
        elif token.kind == TokenKind.CENTRAL_HEADER:
            section = None
        elif token.kind == TokenKind.VERSION_BULLET:
            if section is None:
                raise CheckpointFormatError(
                    "Version line outside of a subproject section", token.line_number
                )
            if section not in subprojects:
                subprojects[section] = token.ref
        elif token.kind == TokenKind.COMMIT_INFO:
            section = None
            if central is None:
                central = token.ref

    return Checkpoints(subprojects=subprojects, central=central)


def read_checkpoints(path: Path) -> Checkpoints:
    """Recover checkpoints from a changelog file.

    A missing file yields empty checkpoints (first run).

    Raises:
        ChangelogError: If the file exists but cannot be read
        CheckpointFormatError: If a checkpoint line is malformed
    """
    if not path.exists():
        logger.info("No changelog at %s, starting from full history", path)
        return Checkpoints()

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ChangelogError(f"Could not read changelog {path}: {e}") from e

    try:
        checkpoints = recover_checkpoints(text)
    except CheckpointFormatError as e:
        raise CheckpointFormatError(e.args[0], e.line_number, path=path) from e

    logger.debug(
        "Recovered %d subproject checkpoints from %s (central: %s)",
        len(checkpoints.subprojects),
        path,
        checkpoints.central or "none",
    )
    return checkpoints
