"""Database schema reference.

This module documents the projects schema (V000→V003) and checks that a
migrated store has the expected shape. The authoritative definitions are the
change-units in ``projects_db/migrations/``.

Schema versions:
- V000: schema_migrations ledger table
- V001: projects (unique project_code)
- V002: tasks (unique project_id + task_code, cascades with its project)
- V003: project_members (unique project_id + user_id, cascades with its project)

User columns (``created_by``, ``updated_by``, ``assigned_to``, ``user_id``)
hold identifiers of users owned by another service. They carry no foreign
key here; the owning API is responsible for validating them.
"""

from __future__ import annotations

from typing import NewType

from .store import TargetStore

# Identifier of an entity in a store this service does not own
ExternalRef = NewType("ExternalRef", int)

EXPECTED_TABLES = ("schema_migrations", "projects", "tasks", "project_members")

# child table -> (parent table, child column)
CASCADES: dict[str, tuple[str, str]] = {
    "tasks": ("projects", "project_id"),
    "project_members": ("projects", "project_id"),
}

# Columns holding ExternalRef values, never backed by a local foreign key
EXTERNAL_REFS: dict[str, tuple[str, ...]] = {
    "projects": ("created_by", "updated_by"),
    "tasks": ("assigned_to", "created_by", "updated_by"),
    "project_members": ("user_id",),
}


def verify_schema(store: TargetStore) -> list[str]:
    """Check tables and cascade foreign keys. Returns a list of problems."""
    problems: list[str] = []
    present = set(store.tables())

    for table in EXPECTED_TABLES:
        if table not in present:
            problems.append(f"Missing table: {table}")

    for child, (parent, column) in CASCADES.items():
        if child not in present:
            continue
        # PRAGMA foreign_key_list: id, seq, table, from, to, on_update, on_delete, match
        fks = store.query(f"PRAGMA foreign_key_list({child})")
        matching = [fk for fk in fks if fk[2] == parent and fk[3] == column]
        if not matching:
            problems.append(f"{child}.{column} has no foreign key to {parent}")
        elif matching[0][6].upper() != "CASCADE":
            problems.append(f"{child}.{column} does not cascade on delete (got {matching[0][6]})")

    for table, columns in EXTERNAL_REFS.items():
        if table not in present:
            continue
        local_fk_columns = {fk[3] for fk in store.query(f"PRAGMA foreign_key_list({table})")}
        for column in columns:
            if column in local_fk_columns:
                problems.append(f"{table}.{column} is an external reference but has a local foreign key")

    return problems
