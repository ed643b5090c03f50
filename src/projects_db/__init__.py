"""Schema migrations, ledger and seed data for the projects database."""

from .cli import cli
from .discovery import ChangeUnit, discover
from .ledger import ApplyOutcome, MigrationLedger
from .repository import InMemoryLedgerRepository, LedgerEntry, LedgerRepository, SqliteLedgerRepository
from .runner import MigrationRunner, RunResult
from .store import TargetStore
from .validation import ValidationReport, validate

__all__ = [
    "ApplyOutcome",
    "ChangeUnit",
    "InMemoryLedgerRepository",
    "LedgerEntry",
    "LedgerRepository",
    "MigrationLedger",
    "MigrationRunner",
    "RunResult",
    "SqliteLedgerRepository",
    "TargetStore",
    "ValidationReport",
    "cli",
    "discover",
    "main",
    "validate",
]


def main() -> None:
    """Entry point for the projects-db CLI."""
    cli()
