"""SQLite target store: connection ownership and explicit transactions."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Sequence

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


class TargetStore:
    """A relational database being evolved by the ledger.

    The connection runs with ``isolation_level=None`` so that transactions are
    opened and closed only through :meth:`transaction`. Foreign keys are
    enabled on connect; without them SQLite ignores ON DELETE CASCADE.
    """

    def __init__(self, conn: sqlite3.Connection, location: str = MEMORY):
        self.conn = conn
        self.location = location
        self._in_transaction = False

    @classmethod
    def connect(cls, path: str | Path = MEMORY, timeout: float = 5.0) -> TargetStore:
        location = str(path)
        if location != MEMORY:
            Path(location).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(location, timeout=timeout, isolation_level=None)
        conn.execute("PRAGMA foreign_keys = ON")
        logger.debug("Connected to target store %s", location)
        return cls(conn, location)

    def __enter__(self) -> TargetStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self.conn.close()

    @contextmanager
    def transaction(self) -> Iterator[TargetStore]:
        """Run a block atomically; roll back and re-raise on any exception.

        Nested calls join the outer transaction.
        """
        if self._in_transaction:
            yield self
            return

        self.conn.execute("BEGIN")
        self._in_transaction = True
        try:
            yield self
        except BaseException:
            self.conn.execute("ROLLBACK")
            raise
        else:
            self.conn.execute("COMMIT")
        finally:
            self._in_transaction = False

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        return self.conn.execute(sql, params)

    def query(self, sql: str, params: Sequence[Any] = ()) -> list[tuple]:
        return self.conn.execute(sql, params).fetchall()

    def table_exists(self, name: str) -> bool:
        row = self.conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
        ).fetchone()
        return row is not None

    def tables(self) -> list[str]:
        rows = self.conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        ).fetchall()
        return [row[0] for row in rows]

    def backup_to(self, target: Path) -> None:
        """Write a compact copy of the database with VACUUM INTO."""
        if target.exists():
            raise FileExistsError(f"Backup already exists: {target}")
        target.parent.mkdir(parents=True, exist_ok=True)
        self.conn.execute("VACUUM INTO ?", (str(target),))
