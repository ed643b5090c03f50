"""Tests for the migration runner: planning, batch policy, resumability."""

import pytest

from projects_db.errors import ExecutionError, MalformedIdentifier, ValidationFailed
from projects_db.ledger import ApplyOutcome
from projects_db.runner import MigrationRunner, verify_idempotency
from projects_db.validation import VersionGap


@pytest.fixture
def runner(ledger, store, unit_dir):
    return MigrationRunner(ledger, store, unit_dir.path)


class TestPlan:
    def test_empty_directory_is_current(self, runner):
        plan = runner.plan()
        assert plan.units == []
        assert plan.is_current

    def test_all_pending_on_fresh_store(self, runner, unit_dir):
        unit_dir.write_run(3)
        plan = runner.plan()
        assert [u.version for u in plan.pending] == ["000", "001", "002"]
        assert plan.applied_count == 0

    def test_validation_failure_blocks_plan(self, runner, unit_dir, store):
        unit_dir.write("V000_a.sql")
        unit_dir.write("V002_c.sql")

        with pytest.raises(ValidationFailed) as exc_info:
            runner.plan()

        assert isinstance(exc_info.value.report.errors[0], VersionGap)
        assert store.tables() == []

    def test_malformed_name_blocks_plan(self, runner, unit_dir, store):
        unit_dir.write("V000_a.sql")
        unit_dir.write("V001__b.sql")

        with pytest.raises(MalformedIdentifier):
            runner.plan()

    def test_orphans_are_warnings(self, runner, unit_dir, ledger, store):
        paths = unit_dir.write_run(2)
        runner.run()
        paths[1].unlink()
        unit_dir.write("V001_replacement.sql")

        units, report = runner.check()

        assert report.clean
        assert report.warnings == []  # V001 still has a file (content differs)

        (unit_dir.path / "V001_replacement.sql").unlink()
        units, report = runner.check()
        assert report.clean
        assert [w.version for w in report.warnings] == ["001"]


class TestRun:
    def test_applies_in_order(self, runner, unit_dir, ledger):
        unit_dir.write_run(4)
        seen = []

        result = runner.run(on_progress=lambda unit, outcome: seen.append((unit.version, outcome)))

        assert result.applied == ["000", "001", "002", "003"]
        assert result.ok
        assert seen == [(v, ApplyOutcome.APPLIED) for v in ["000", "001", "002", "003"]]
        assert ledger.applied_versions() == {"000", "001", "002", "003"}

    def test_second_run_is_noop(self, runner, unit_dir):
        unit_dir.write_run(2)
        runner.run()

        result = runner.run()

        assert result.applied == [] and result.reapplied == []

    def test_reapply_all(self, runner, unit_dir):
        unit_dir.write_run(2)
        runner.run()

        result = runner.run(reapply=True)

        assert result.reapplied == ["000", "001"]
        assert result.applied == []

    def test_halt_on_error_skips_rest(self, runner, unit_dir, ledger):
        unit_dir.write_run(2)
        unit_dir.write("V002_broken.sql", "CREATE TABLE oops (;")
        unit_dir.write("V003_after.sql")

        result = runner.run(halt_on_error=True)

        assert result.applied == ["000", "001"]
        assert [f.version for f in result.failed] == ["002"]
        assert result.skipped == ["003"]
        assert ledger.applied_versions() == {"000", "001"}

    def test_continue_on_error(self, runner, unit_dir, ledger):
        unit_dir.write_run(2)
        unit_dir.write("V002_broken.sql", "CREATE TABLE oops (;")
        unit_dir.write("V003_after.sql", "CREATE TABLE IF NOT EXISTS after (id INTEGER);")
        errors = []

        result = runner.run(
            halt_on_error=False,
            on_progress=lambda u, o: errors.append(o) if isinstance(o, ExecutionError) else None,
        )

        assert result.applied == ["000", "001", "003"]
        assert [f.version for f in result.failed] == ["002"]
        assert result.skipped == []
        assert len(errors) == 1 and errors[0].version == "002"
        assert ledger.applied_versions() == {"000", "001", "003"}

    def test_resumes_after_fix(self, runner, unit_dir, ledger):
        unit_dir.write_run(2)
        broken = unit_dir.write("V002_fixable.sql", "CREATE TABLE oops (;")
        unit_dir.write("V003_after.sql")
        runner.run()

        broken.write_text("CREATE TABLE IF NOT EXISTS fixed (id INTEGER);")
        assert [u.version for u in runner.plan().pending] == ["002", "003"]

        result = runner.run()

        assert result.applied == ["002", "003"]
        assert ledger.applied_versions() == {"000", "001", "002", "003"}

    def test_pending_matches_resume_property(self, runner, unit_dir, ledger, store):
        unit_dir.write_run(5)
        for unit in runner.plan().units[:3]:
            ledger.apply(unit, store)

        assert [u.version for u in runner.plan().pending] == ["003", "004"]


class TestIdempotencyCheck:
    def test_shipped_migrations_are_idempotent(self, shipped_migrations):
        result = verify_idempotency(shipped_migrations)
        assert result.ok
        assert result.first_pass.applied == ["000", "001", "002", "003"]

    def test_detects_non_idempotent_unit(self, unit_dir):
        unit_dir.write("V000_ok.sql")
        unit_dir.write("V001_plain_create.sql", "CREATE TABLE plain (id INTEGER);")

        result = verify_idempotency(unit_dir.path)

        assert not result.ok
        assert [f.version for f in result.not_idempotent] == ["001"]
