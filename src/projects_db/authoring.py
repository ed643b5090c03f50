"""Scaffolding for new change-unit files."""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

from .discovery import discover
from .validation import DEFAULT_ORIGIN
from .versions import filename_for, format_version, sanitize_description

logger = logging.getLogger(__name__)

AUTHOR = "Projects API Team"

TEMPLATE = """\
-- =============================================================================
-- Migration: {name}
-- Description: {title}
-- Author: {author}
-- Date: {today}
-- =============================================================================

-- Statements must be safe to run again on a store where they already ran:
-- use CREATE TABLE IF NOT EXISTS, CREATE INDEX IF NOT EXISTS and upserts.
-- The ledger records this change-unit itself; do not insert into
-- schema_migrations here.

-- Example: Creating a table
-- CREATE TABLE IF NOT EXISTS example_table (
--     id INTEGER PRIMARY KEY AUTOINCREMENT,
--     name VARCHAR(255) NOT NULL,
--     created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
-- );

-- Example: Creating an index
-- CREATE INDEX IF NOT EXISTS idx_example_table_name ON example_table(name);
"""


def next_version(migrations_dir: Path, origin: int = DEFAULT_ORIGIN) -> str:
    units = discover(migrations_dir)
    if not units:
        return format_version(origin)
    return format_version(max(unit.number for unit in units) + 1)


def new_change_unit(
    migrations_dir: Path,
    name: str,
    origin: int = DEFAULT_ORIGIN,
    today: date | None = None,
) -> Path:
    """Create the next change-unit file from the template.

    Args:
        migrations_dir: Directory holding the change-units.
        name: Free-text description, sanitized to snake_case.
        origin: Version used when the directory has no change-units yet.
        today: Date written in the header (defaults to today).

    Returns:
        Path to the created file. The file holds only comments, so it fails
        validation as empty until statements are added.
    """
    description = sanitize_description(name)
    version = next_version(migrations_dir, origin)
    filename = filename_for(version, description)
    path = Path(migrations_dir) / filename
    if path.exists():
        raise FileExistsError(f"Change-unit already exists: {path}")

    content = TEMPLATE.format(
        name=filename.removesuffix(".sql"),
        title=description.replace("_", " ").capitalize(),
        author=AUTHOR,
        today=(today or date.today()).isoformat(),
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info("Created change-unit %s", path)
    return path
