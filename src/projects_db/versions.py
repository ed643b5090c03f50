"""Version identifiers and the change-unit file naming contract.

Change-unit files are named ``V###_description.sql``:

- ``V`` followed by a three digit, zero-padded version (``V000``..``V999``)
- a single underscore separator
- a lowercase snake_case description (``create_tasks_table``)
- the ``.sql`` extension

Versions are stored in the ledger without the ``V`` prefix (``"001"``).
"""

from __future__ import annotations

import re

VERSION_WIDTH = 3
EXTENSION = ".sql"
PREFIX = "V"

FILENAME_PATTERN = re.compile(
    rf"^{PREFIX}(?P<version>\d{{{VERSION_WIDTH}}})_(?P<description>[a-z0-9]+(?:_[a-z0-9]+)*)\.sql$"
)


def parse_filename(name: str) -> tuple[str, str] | None:
    """Split a change-unit file name into (version, description).

    Returns None if the name does not follow the naming contract.
    """
    match = FILENAME_PATTERN.match(name)
    if match is None:
        return None
    return match.group("version"), match.group("description")


def format_version(number: int) -> str:
    """Format a version number as a fixed-width identifier ("7" -> "007")."""
    if number < 0 or number >= 10**VERSION_WIDTH:
        raise ValueError(f"Version {number} does not fit in {VERSION_WIDTH} digits")
    return f"{number:0{VERSION_WIDTH}d}"


def version_number(version: str) -> int:
    """Numeric value of a version identifier, used for ordering and gap checks."""
    return int(version)


def filename_for(version: str, description: str) -> str:
    return f"{PREFIX}{version}_{description}{EXTENSION}"


def sanitize_description(name: str) -> str:
    """Turn free text into a snake_case description ("Add Budget!" -> "add_budget")."""
    slug = re.sub(r"[^a-z0-9_]", "_", name.lower())
    slug = re.sub(r"_+", "_", slug).strip("_")
    if not slug:
        raise ValueError(f"Cannot build a description from {name!r}")
    return slug
