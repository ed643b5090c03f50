"""Command-line interface for the projects database."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

import click

from .authoring import new_change_unit
from .config import Settings, load_settings, set_database_override
from .errors import ExecutionError, LedgerError, MalformedIdentifier, ValidationFailed
from .fixtures import load_seed_data
from .ledger import ApplyOutcome, MigrationLedger
from .paths import CONFIG_TOML, DEFAULT_DB
from .runner import MigrationRunner, verify_idempotency
from .schema import verify_schema
from .store import MEMORY, TargetStore
from .validation import ValidationReport


@contextmanager
def _open_runner(settings: Settings, create: bool = False) -> Iterator[MigrationRunner]:
    """Connect to the configured store and yield a runner for it.

    Unless ``create`` is set, a database that does not exist yet is read as an
    empty in-memory store so inspection commands leave no file behind.
    """
    location = settings.database if create or Path(settings.database).exists() else MEMORY
    with TargetStore.connect(location) as store:
        ledger = MigrationLedger.for_store(store)
        yield MigrationRunner(ledger, store, settings.migrations_dir, settings.origin)


def _require_database(settings: Settings) -> None:
    if not Path(settings.database).exists():
        raise click.ClickException(f"Database not found: {settings.database}")


def _echo_report(report: ValidationReport) -> None:
    for finding in report.errors:
        click.echo(click.style(f"  ✗ {finding.message}", fg="red"))
    for warning in report.warnings:
        click.echo(click.style(f"  ! {warning.message}", fg="yellow"))


@click.group()
@click.version_option(package_name="projects-db")
@click.option(
    "--db",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Target database (default: config.toml, .env, then data/projects.db).",
)
@click.option(
    "--migrations-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding V###_description.sql change-units.",
)
@click.option(
    "--backups-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Where backups are written (default: data/backups).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=CONFIG_TOML,
    show_default=True,
    help="Settings file to read.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log ledger activity.")
@click.pass_context
def cli(
    ctx: click.Context,
    db: Path | None,
    migrations_dir: Path | None,
    backups_dir: Path | None,
    config_path: Path,
    verbose: bool,
) -> None:
    """Schema migrations and seed data for the projects database.

    Applies versioned change-units in order, records each one in the
    schema_migrations ledger, and loads development seed data.
    """
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )
    try:
        settings = load_settings(config_path=config_path)
    except ValueError as e:
        raise click.ClickException(f"Invalid settings in {config_path}: {e}") from e
    if db is not None:
        settings.database = db
    if migrations_dir is not None:
        settings.migrations_dir = migrations_dir
    if backups_dir is not None:
        settings.backups_dir = backups_dir
    ctx.obj = settings


@cli.command()
@click.pass_obj
def status(settings: Settings) -> None:
    """Show applied and pending change-units."""
    try:
        with _open_runner(settings) as runner:
            units, report = runner.check()
            applied = runner.ledger.applied_versions()
    except MalformedIdentifier as e:
        raise click.ClickException(str(e)) from e

    pending = [u for u in units if u.version not in applied]
    click.echo(f"Database:   {settings.database}")
    click.echo(f"Migrations: {settings.migrations_dir}")
    click.echo(f"Applied:    {len(applied)} change-unit(s)")
    click.echo(f"Pending:    {len(pending)} change-unit(s)")

    if pending:
        click.echo()
        click.echo(click.style("Pending:", bold=True))
        for unit in pending:
            click.echo(f"  {unit.display_name}")

    if not report.clean or report.warnings:
        click.echo()
        click.echo(click.style("Problems:", bold=True))
        _echo_report(report)

    click.echo()
    if pending:
        click.echo(click.style("Database is OUT OF DATE", fg="yellow"))
    else:
        click.echo(click.style("Database is current", fg="green"))


@cli.command()
@click.pass_obj
def pending(settings: Settings) -> None:
    """List change-units not yet applied."""
    try:
        with _open_runner(settings) as runner:
            plan = runner.plan()
    except LedgerError as e:
        raise click.ClickException(str(e)) from e

    if plan.is_current:
        click.echo("No pending change-units - database is current")
        return
    for unit in plan.pending:
        click.echo(unit.display_name)


@cli.command()
@click.pass_obj
def validate(settings: Settings) -> None:
    """Check change-unit naming, duplicates, gaps and empty files.

    Reports every problem in one pass. Exits non-zero when any error is found.
    """
    try:
        with _open_runner(settings) as runner:
            units, report = runner.check()
    except MalformedIdentifier as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Found {len(units)} change-unit(s) in {settings.migrations_dir}")
    _echo_report(report)

    if not report.clean:
        raise click.ClickException(f"Validation failed with {len(report.errors)} error(s)")
    click.echo(click.style("✓ All validations passed!", fg="green"))


@cli.command()
@click.option(
    "--continue-on-error",
    is_flag=True,
    help="Keep applying later change-units after a failure.",
)
@click.option("--reapply", is_flag=True, help="Apply every change-unit, not only pending ones.")
@click.option("--backup", "make_backup", is_flag=True, help="Back up the database first.")
@click.pass_obj
def migrate(settings: Settings, continue_on_error: bool, reapply: bool, make_backup: bool) -> None:
    """Apply pending change-units in version order.

    Examples:

        projects-db migrate

        projects-db --db data/test.db migrate --reapply
    """
    def progress(unit, outcome) -> None:
        if isinstance(outcome, ExecutionError):
            click.echo(f"  {unit.display_name} ... " + click.style("FAIL", fg="red"))
            click.echo(f"    {outcome.cause}")
        elif outcome is ApplyOutcome.APPLIED:
            click.echo(f"  {unit.display_name} ... " + click.style("OK", fg="green"))
        else:
            click.echo(f"  {unit.display_name} ... " + click.style("REAPPLIED", fg="cyan"))

    existed = Path(settings.database).exists()
    try:
        with _open_runner(settings, create=True) as runner:
            if make_backup and existed:
                backup_path = _backup_path(settings, None, label="pre_migrate")
                runner.store.backup_to(backup_path)
                click.echo(f"Backup: {backup_path}")
            result = runner.run(
                halt_on_error=not continue_on_error,
                reapply=reapply,
                on_progress=progress,
            )
    except ValidationFailed as e:
        _echo_report(e.report)
        raise click.ClickException("Refusing to migrate: fix the problems above first") from e
    except (LedgerError, FileExistsError) as e:
        raise click.ClickException(str(e)) from e

    click.echo()
    click.echo(
        f"Applied: {len(result.applied)}  Reapplied: {len(result.reapplied)}  "
        f"Failed: {len(result.failed)}  Skipped: {len(result.skipped)}"
    )
    if not result.ok:
        raise click.ClickException("Some change-units failed")
    if not result.applied and not result.reapplied:
        click.echo("No change-units to apply")
    else:
        click.echo(click.style("✓ Migrations applied successfully!", fg="green"))


@cli.command()
@click.pass_obj
def history(settings: Settings) -> None:
    """Show the schema_migrations ledger."""
    _require_database(settings)
    with TargetStore.connect(settings.database) as store:
        entries = MigrationLedger.for_store(store).entries()

    if not entries:
        click.echo("(no change-units applied)")
        return
    for entry in entries:
        click.echo(f"  V{entry.version}  {entry.applied_at:%Y-%m-%d %H:%M:%S}  {entry.description}")


@cli.command()
@click.argument("name")
@click.pass_obj
def new(settings: Settings, name: str) -> None:
    """Create the next change-unit file from the template.

    Example:

        projects-db new "add budget currency"
    """
    try:
        path = new_change_unit(settings.migrations_dir, name, settings.origin)
    except (LedgerError, ValueError, FileExistsError) as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Created change-unit: {path}")
    click.echo("Edit the file to add idempotent SQL statements")


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.pass_obj
def seed(settings: Settings, yes: bool) -> None:
    """Load development sample data (projects, tasks, members)."""
    if not yes:
        click.echo(click.style("WARNING: This will insert data into the database", fg="yellow"))
        if not click.confirm("Continue?"):
            click.echo("Aborted.")
            return

    try:
        with _open_runner(settings) as runner:
            plan = runner.plan()
            if not plan.is_current:
                raise click.ClickException(
                    f"{len(plan.pending)} change-unit(s) pending. Run 'projects-db migrate' first."
                )
            counts = load_seed_data(runner.store)
    except LedgerError as e:
        raise click.ClickException(str(e)) from e

    for table, count in counts.items():
        click.echo(f"  {table}: {count} row(s)")
    click.echo(click.style("✓ Seed data loaded", fg="green"))


@cli.command()
@click.pass_obj
def verify(settings: Settings) -> None:
    """Check tables and cascade rules of the migrated database."""
    _require_database(settings)
    with TargetStore.connect(settings.database) as store:
        problems = verify_schema(store)

    if problems:
        for problem in problems:
            click.echo(click.style(f"  ✗ {problem}", fg="red"))
        raise click.ClickException(f"Schema check failed with {len(problems)} problem(s)")
    click.echo(click.style("✓ Schema matches the expected layout", fg="green"))


@cli.command("check-idempotency")
@click.pass_obj
def check_idempotency(settings: Settings) -> None:
    """Apply every change-unit twice to a scratch database.

    The target database is not touched.
    """
    try:
        result = verify_idempotency(settings.migrations_dir, settings.origin)
    except ValidationFailed as e:
        _echo_report(e.report)
        raise click.ClickException("Fix validation problems first") from e
    except LedgerError as e:
        raise click.ClickException(str(e)) from e

    for failed in result.first_pass.failed:
        click.echo(click.style(f"  ✗ V{failed.version} failed on first pass: {failed.message}", fg="red"))
    for failed in result.not_idempotent:
        click.echo(click.style(f"  ✗ V{failed.version} is not idempotent: {failed.message}", fg="red"))

    if not result.ok:
        raise click.ClickException("Idempotency check failed")
    click.echo(click.style("✓ All change-units are idempotent", fg="green"))


def _backup_path(settings: Settings, name: str | None, label: str | None = None) -> Path:
    """Backup file for ``name``, or a fresh timestamped one when no name is given."""
    if name:
        return settings.backups_dir / f"{name}.db"

    stem = f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_{label or Path(settings.database).stem}"
    path = settings.backups_dir / f"{stem}.db"
    counter = 1
    while path.exists():
        path = settings.backups_dir / f"{stem}_{counter}.db"
        counter += 1
    return path


@cli.command()
@click.option(
    "--name",
    "-n",
    type=str,
    default=None,
    help="Custom backup name (default: timestamp).",
)
@click.pass_obj
def backup(settings: Settings, name: str | None) -> None:
    """Create a backup of the current database.

    Uses SQLite VACUUM INTO for a clean, compact copy in data/backups/.
    """
    _require_database(settings)

    backup_path = _backup_path(settings, name)
    if backup_path.exists():
        raise click.ClickException(f"Backup already exists: {backup_path}")

    click.echo(f"Backing up: {settings.database}")
    click.echo(f"       To: {backup_path}")
    with TargetStore.connect(settings.database) as store:
        store.backup_to(backup_path)

    size_mb = backup_path.stat().st_size / (1024 * 1024)
    click.echo(click.style("Backup created successfully!", fg="green"))
    click.echo(f"Size: {size_mb:.2f} MB")


@cli.command()
@click.argument("target")
def use(target: str) -> None:
    """Switch the default target database.

    Updates config.toml. Use 'default' to go back to data/projects.db.

    Examples:

        projects-db use data/scratch.db

        projects-db use default
    """
    if target == "default":
        set_database_override(None)
        click.echo(click.style(f"Switched to default database: {DEFAULT_DB}", fg="green"))
        return

    set_database_override(Path(target).resolve())
    click.echo(click.style(f"Switched to: {target}", fg="green"))
