"""Ledger repositories: read and write the schema_migrations tracking table."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from .store import TargetStore

LEDGER_TABLE = "schema_migrations"

# Same shape as V000_create_schema_migrations_table.sql
LEDGER_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version VARCHAR(50) PRIMARY KEY,
    description VARCHAR(255) NOT NULL,
    applied_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
)
"""
LEDGER_INDEX_DDL = (
    "CREATE INDEX IF NOT EXISTS idx_schema_migrations_applied_at ON schema_migrations(applied_at)"
)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


@dataclass(frozen=True)
class LedgerEntry:
    version: str
    description: str
    applied_at: datetime


def format_timestamp(value: datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    # Rows written by CURRENT_TIMESTAMP have no fractional part
    if "." in value:
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    return datetime.strptime(value, "%Y-%m-%d %H:%M:%S")


class LedgerRepository(Protocol):
    """Storage for ledger entries of one target store."""

    def ensure_table(self) -> None: ...

    def applied_versions(self) -> set[str]: ...

    def entries(self) -> list[LedgerEntry]: ...

    def get(self, version: str) -> LedgerEntry | None: ...

    def record(self, version: str, description: str, applied_at: datetime) -> bool:
        """Insert or refresh an entry. Returns True if a new row was created."""
        ...


class SqliteLedgerRepository:
    """Ledger entries kept in the target store itself.

    Shares the store's connection, so a record() issued inside
    ``store.transaction()`` commits or rolls back with the statements it
    describes.
    """

    def __init__(self, store: TargetStore):
        self.store = store

    def ensure_table(self) -> None:
        self.store.execute(LEDGER_TABLE_DDL)
        self.store.execute(LEDGER_INDEX_DDL)

    def applied_versions(self) -> set[str]:
        if not self.store.table_exists(LEDGER_TABLE):
            return set()
        return {row[0] for row in self.store.query("SELECT version FROM schema_migrations")}

    def entries(self) -> list[LedgerEntry]:
        if not self.store.table_exists(LEDGER_TABLE):
            return []
        rows = self.store.query(
            "SELECT version, description, applied_at FROM schema_migrations ORDER BY version"
        )
        return [LedgerEntry(v, d, parse_timestamp(a)) for v, d, a in rows]

    def get(self, version: str) -> LedgerEntry | None:
        if not self.store.table_exists(LEDGER_TABLE):
            return None
        row = self.store.execute(
            "SELECT version, description, applied_at FROM schema_migrations WHERE version = ?",
            (version,),
        ).fetchone()
        if row is None:
            return None
        return LedgerEntry(row[0], row[1], parse_timestamp(row[2]))

    def record(self, version: str, description: str, applied_at: datetime) -> bool:
        self.ensure_table()
        existed = self.get(version) is not None
        self.store.execute(
            """
            INSERT INTO schema_migrations (version, description, applied_at)
            VALUES (?, ?, ?)
            ON CONFLICT(version) DO UPDATE SET applied_at = excluded.applied_at
            """,
            (version, description, format_timestamp(applied_at)),
        )
        return not existed


class InMemoryLedgerRepository:
    """Dict-backed ledger for tests and dry runs."""

    def __init__(self) -> None:
        self._entries: dict[str, LedgerEntry] = {}

    def ensure_table(self) -> None:
        pass

    def applied_versions(self) -> set[str]:
        return set(self._entries)

    def entries(self) -> list[LedgerEntry]:
        return [self._entries[v] for v in sorted(self._entries)]

    def get(self, version: str) -> LedgerEntry | None:
        return self._entries.get(version)

    def record(self, version: str, description: str, applied_at: datetime) -> bool:
        existing = self._entries.get(version)
        if existing is not None:
            self._entries[version] = LedgerEntry(version, existing.description, applied_at)
            return False
        self._entries[version] = LedgerEntry(version, description, applied_at)
        return True
