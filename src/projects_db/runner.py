"""Migration runner: discover, validate, and apply change-units in order.

The ledger applies one unit at a time; the runner owns batch policy (what is
pending, whether to stop after a failure) and returns structured results
instead of exit codes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from .discovery import ChangeUnit, discover
from .errors import ExecutionError, ValidationFailed
from .ledger import ApplyOutcome, MigrationLedger
from .store import TargetStore
from .validation import DEFAULT_ORIGIN, ValidationReport, validate

logger = logging.getLogger(__name__)

# Called as (unit, outcome_or_error) after each attempted unit
ProgressCallback = Callable[[ChangeUnit, "ApplyOutcome | ExecutionError"], None]


@dataclass
class RunPlan:
    units: list[ChangeUnit]
    pending: list[ChangeUnit]
    report: ValidationReport

    @property
    def applied_count(self) -> int:
        return len(self.units) - len(self.pending)

    @property
    def is_current(self) -> bool:
        return not self.pending


@dataclass
class FailedUnit:
    version: str
    message: str


@dataclass
class RunResult:
    applied: list[str] = field(default_factory=list)
    reapplied: list[str] = field(default_factory=list)
    failed: list[FailedUnit] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


@dataclass
class IdempotencyResult:
    """Outcome of running every change-unit twice against a scratch store."""

    first_pass: RunResult
    not_idempotent: list[FailedUnit] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.first_pass.ok and not self.not_idempotent


class MigrationRunner:
    """Runs the change-units in ``migrations_dir`` against one target store."""

    def __init__(
        self,
        ledger: MigrationLedger,
        store: TargetStore,
        migrations_dir: Path,
        origin: int = DEFAULT_ORIGIN,
    ):
        self.ledger = ledger
        self.store = store
        self.migrations_dir = Path(migrations_dir)
        self.origin = origin

    def check(self) -> tuple[list[ChangeUnit], ValidationReport]:
        """Discover and validate without raising on findings.

        Orphaned ledger entries are attached to the report as warnings.
        """
        units = discover(self.migrations_dir)
        report = validate(units, self.origin)
        report.warnings.extend(self.ledger.orphaned(units))
        return units, report

    def plan(self) -> RunPlan:
        """Discover, validate, and compute the pending set.

        Raises:
            MalformedIdentifier: If a change-unit file name is malformed.
            ValidationFailed: If the change-units have structural problems.
        """
        units, report = self.check()
        if not report.clean:
            raise ValidationFailed(report)
        return RunPlan(units=units, pending=self.ledger.pending(units), report=report)

    def run(
        self,
        halt_on_error: bool = True,
        reapply: bool = False,
        on_progress: ProgressCallback | None = None,
    ) -> RunResult:
        """Apply pending change-units in version order.

        Args:
            halt_on_error: Stop at the first failed unit (remaining units are
                reported as skipped). When False, failures are recorded and the
                run continues with the next unit.
            reapply: Apply every unit, not only the pending ones.
            on_progress: Optional callback invoked after each attempted unit.
        """
        plan = self.plan()
        todo = plan.units if reapply else plan.pending
        result = RunResult()

        if not todo:
            logger.info("Schema is up to date (%d change-unit(s) applied)", plan.applied_count)
            return result

        for index, unit in enumerate(todo):
            try:
                outcome = self.ledger.apply(unit, self.store)
            except ExecutionError as e:
                result.failed.append(FailedUnit(unit.version, str(e.cause)))
                if on_progress:
                    on_progress(unit, e)
                if halt_on_error:
                    result.skipped = [u.version for u in todo[index + 1 :]]
                    logger.error(
                        "Stopping after V%s; %d change-unit(s) not attempted",
                        unit.version,
                        len(result.skipped),
                    )
                    break
                continue

            if outcome is ApplyOutcome.APPLIED:
                result.applied.append(unit.version)
            else:
                result.reapplied.append(unit.version)
            if on_progress:
                on_progress(unit, outcome)

        logger.info(
            "Run finished: %d applied, %d reapplied, %d failed, %d skipped",
            len(result.applied),
            len(result.reapplied),
            len(result.failed),
            len(result.skipped),
        )
        return result


def verify_idempotency(migrations_dir: Path, origin: int = DEFAULT_ORIGIN) -> IdempotencyResult:
    """Apply every change-unit twice to a scratch in-memory store.

    The second pass must succeed for every unit; units that raise on it are
    reported as not idempotent.
    """
    with TargetStore.connect() as scratch:
        ledger = MigrationLedger.for_store(scratch)
        runner = MigrationRunner(ledger, scratch, migrations_dir, origin)
        first = runner.run(halt_on_error=True)
        result = IdempotencyResult(first_pass=first)
        if not first.ok:
            return result

        for unit in runner.plan().units:
            try:
                ledger.apply(unit, scratch)
            except ExecutionError as e:
                logger.warning("V%s is not idempotent: %s", unit.version, e.cause)
                result.not_idempotent.append(FailedUnit(unit.version, str(e.cause)))
    return result
