"""Discovery of change-units (migration files) on disk."""

from __future__ import annotations

import logging
import re
import sqlite3
from dataclasses import dataclass
from pathlib import Path

from .errors import MalformedIdentifier
from .versions import EXTENSION, filename_for, parse_filename, version_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeUnit:
    """One versioned batch of schema/data statements."""

    version: str  # Fixed-width identifier, e.g. "002"
    description: str  # snake_case slug, e.g. "create_tasks_table"
    statements: tuple[str, ...]
    source_path: Path | None = None

    @property
    def number(self) -> int:
        return version_number(self.version)

    @property
    def display_name(self) -> str:
        """File-style name for logs ("V002_create_tasks_table")."""
        return filename_for(self.version, self.description).removesuffix(EXTENSION)


# Scanned left to right so a comment marker inside a string or inside the
# other comment style is not mistaken for a comment start.
_SQL_TOKENS = re.compile(
    r"""'(?:[^']|'')*'|"(?:[^"]|"")*"|--[^\n]*|/\*.*?(?:\*/|$)""",
    re.DOTALL,
)


def _strip_comments(chunk: str) -> str:
    return _SQL_TOKENS.sub(lambda m: "" if m.group().startswith(("--", "/*")) else m.group(), chunk)


def _is_comment_only(chunk: str) -> bool:
    """True when nothing but comments, whitespace and semicolons remain."""
    return not _strip_comments(chunk).replace(";", "").strip()


def split_statements(sql: str) -> tuple[str, ...]:
    """Split a SQL script into individual statements.

    The script is cut at each semicolon where sqlite3.complete_statement
    reports a finished statement, so several statements on one line are
    separated while semicolons inside string literals, comments and trigger
    bodies don't end a statement early. Chunks that are only comments or
    whitespace are dropped; a trailing statement without a semicolon is kept.
    """
    statements: list[str] = []
    buffer = ""
    pieces = sql.split(";")
    for index, piece in enumerate(pieces):
        buffer += piece
        if index == len(pieces) - 1:
            break
        buffer += ";"
        if sqlite3.complete_statement(buffer):
            if not _is_comment_only(buffer):
                statements.append(buffer.strip())
            buffer = ""
    if buffer.strip() and not _is_comment_only(buffer):
        statements.append(buffer.strip())
    return tuple(statements)


def load_change_unit(path: Path) -> ChangeUnit:
    """Read a single change-unit file.

    Raises:
        MalformedIdentifier: If the file name breaks the naming contract.
    """
    parsed = parse_filename(path.name)
    if parsed is None:
        raise MalformedIdentifier([path.name])
    version, description = parsed
    return ChangeUnit(
        version=version,
        description=description,
        statements=split_statements(path.read_text(encoding="utf-8")),
        source_path=path,
    )


def discover(source: Path) -> list[ChangeUnit]:
    """Discover every change-unit in a directory, sorted ascending by version.

    Every ``*.sql`` file must match the naming contract; names that don't are
    reported together in a single MalformedIdentifier rather than skipped.
    Other files (README, notes) are ignored. An empty or missing directory
    yields an empty list.

    Args:
        source: Directory holding the change-unit files.

    Returns:
        Change-units ordered by version. Duplicate versions are kept (they are
        reported by validation, not here).

    Raises:
        MalformedIdentifier: If any ``.sql`` file name is malformed.
    """
    source = Path(source)
    if not source.is_dir():
        logger.info("Migrations directory %s does not exist; nothing to discover", source)
        return []

    candidates = sorted(p for p in source.iterdir() if p.is_file() and p.suffix.lower() == EXTENSION)
    malformed = [p.name for p in candidates if parse_filename(p.name) is None]
    if malformed:
        raise MalformedIdentifier(malformed)

    units = [load_change_unit(path) for path in candidates]
    units.sort(key=lambda unit: (unit.number, unit.description))
    logger.info("Discovered %d change-unit(s) in %s", len(units), source)
    return units
