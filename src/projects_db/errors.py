"""Exceptions raised by the migration ledger and runner."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from .validation import ValidationReport


class LedgerError(Exception):
    """Base class for every error the ledger surfaces to callers."""


class MalformedIdentifier(LedgerError):
    """One or more change-unit file names do not match the naming contract."""

    def __init__(self, names: Iterable[str]):
        self.names = sorted(names)
        listed = ", ".join(self.names)
        super().__init__(
            f"Malformed change-unit name(s): {listed}. "
            f"Expected V###_lowercase_description.sql (e.g. V004_add_budget_column.sql)"
        )


class ValidationFailed(LedgerError):
    """The discovered change-units have structural problems."""

    def __init__(self, report: ValidationReport):
        self.report = report
        count = len(report.errors)
        summary = "; ".join(finding.message for finding in report.errors)
        super().__init__(f"Validation failed with {count} finding(s): {summary}")


class ExecutionError(LedgerError):
    """The target store rejected a change-unit's statement batch."""

    def __init__(self, version: str, cause: BaseException, statement: str | None = None):
        self.version = version
        self.cause = cause
        self.statement = statement
        super().__init__(f"V{version} failed: {cause}")


class StoreNotReady(LedgerError):
    """The target store is missing schema required by the requested operation."""
