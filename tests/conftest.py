"""Pytest fixtures for the projects-db tests.

Provides:
- Temporary change-unit directories with a helper to write units
- In-memory target stores
- A ledger with a controllable clock
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterator

import pytest

from projects_db.discovery import ChangeUnit
from projects_db.ledger import MigrationLedger
from projects_db.paths import MIGRATIONS_DIR
from projects_db.store import TargetStore


class UnitDir:
    """Helper to create change-unit files in a temporary directory."""

    __test__ = False

    def __init__(self, path: Path):
        self.path = path

    def write(self, name: str, sql: str = "CREATE TABLE IF NOT EXISTS t (id INTEGER);") -> Path:
        """Write a change-unit file and return its path."""
        file = self.path / name
        file.write_text(sql, encoding="utf-8")
        return file

    def write_run(self, count: int, start: int = 0) -> list[Path]:
        """Write ``count`` contiguous units, each creating its own table."""
        return [
            self.write(f"V{n:03d}_create_table_{n}.sql", f"CREATE TABLE IF NOT EXISTS table_{n} (id INTEGER);")
            for n in range(start, start + count)
        ]


class FakeClock:
    """Deterministic clock advancing one second per call."""

    __test__ = False

    def __init__(self, start: datetime = datetime(2025, 12, 23, 9, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(seconds=1)
        return current


def make_unit(version: str, description: str = "change", statements: tuple[str, ...] | None = None) -> ChangeUnit:
    """Build an in-memory change-unit without touching disk."""
    if statements is None:
        statements = (f"CREATE TABLE IF NOT EXISTS t_{version} (id INTEGER)",)
    return ChangeUnit(version=version, description=description, statements=statements)


@pytest.fixture
def unit_dir(tmp_path: Path) -> UnitDir:
    path = tmp_path / "migrations"
    path.mkdir()
    return UnitDir(path)


@pytest.fixture
def store() -> Iterator[TargetStore]:
    with TargetStore.connect() as s:
        yield s


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger(store: TargetStore, clock: FakeClock) -> MigrationLedger:
    return MigrationLedger.for_store(store, clock=clock)


@pytest.fixture
def shipped_migrations() -> Path:
    """The change-units shipped with the package (V000..V003)."""
    return MIGRATIONS_DIR
