"""The migration ledger: apply change-units and track what has been applied.

Per change-unit and target store there are two states: unknown (no ledger
entry) and applied. A successful apply moves unknown -> applied; applying
again refreshes the entry's timestamp. A failed apply writes nothing, so the
unit stays unknown and can be completed by running it again.

The ledger never checks whether a unit was already applied before executing
it. Every statement must therefore be idempotent (CREATE ... IF NOT EXISTS,
upserts), which is what makes re-application safe.
"""

from __future__ import annotations

import enum
import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Callable, Sequence

from .discovery import ChangeUnit
from .errors import ExecutionError
from .repository import LedgerEntry, LedgerRepository, SqliteLedgerRepository
from .store import TargetStore
from .validation import OrphanedEntry

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Naive UTC timestamp, the form stored in applied_at."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ApplyOutcome(str, enum.Enum):
    APPLIED = "applied"
    REAPPLIED = "reapplied"


class MigrationLedger:
    """Applies change-units to a target store and records them.

    Args:
        repository: Where ledger entries live. For real runs this is a
            SqliteLedgerRepository on the same store the statements run
            against, so the entry commits atomically with the statements.
        clock: Source of applied_at timestamps.
    """

    def __init__(self, repository: LedgerRepository, clock: Clock = utc_now):
        self.repository = repository
        self.clock = clock

    @classmethod
    def for_store(cls, store: TargetStore, clock: Clock = utc_now) -> MigrationLedger:
        return cls(SqliteLedgerRepository(store), clock=clock)

    def _next_timestamp(self, previous: LedgerEntry | None) -> datetime:
        now = self.clock()
        if previous is not None and now <= previous.applied_at:
            now = previous.applied_at + timedelta(microseconds=1)
        return now

    def apply(self, unit: ChangeUnit, store: TargetStore) -> ApplyOutcome:
        """Execute a change-unit and write or refresh its ledger entry atomically.

        Raises:
            ExecutionError: If any statement (or the ledger write) fails. The
                transaction is rolled back and no entry is written.
        """
        logger.info("Applying %s (%d statement(s))", unit.display_name, len(unit.statements))
        statement: str | None = None
        try:
            with store.transaction():
                for statement in unit.statements:
                    store.execute(statement)
                statement = None
                applied_at = self._next_timestamp(self.repository.get(unit.version))
                created = self.repository.record(unit.version, unit.description, applied_at)
        except sqlite3.Error as e:
            logger.error("Failed to apply %s: %s", unit.display_name, e)
            raise ExecutionError(unit.version, e, statement) from e

        outcome = ApplyOutcome.APPLIED if created else ApplyOutcome.REAPPLIED
        logger.info("%s %s", outcome.value.capitalize(), unit.display_name)
        return outcome

    def applied_versions(self) -> set[str]:
        return self.repository.applied_versions()

    def entries(self) -> list[LedgerEntry]:
        return self.repository.entries()

    def pending(self, units: Sequence[ChangeUnit]) -> list[ChangeUnit]:
        """Units with no ledger entry, in version order."""
        applied = self.applied_versions()
        return sorted(
            (unit for unit in units if unit.version not in applied),
            key=lambda unit: unit.number,
        )

    def orphaned(self, units: Sequence[ChangeUnit]) -> list[OrphanedEntry]:
        """Ledger entries whose change-unit no longer exists on disk."""
        known = {unit.version for unit in units}
        orphans = [
            OrphanedEntry(entry.version, entry.description)
            for entry in self.entries()
            if entry.version not in known
        ]
        for orphan in orphans:
            logger.warning(orphan.message)
        return orphans
