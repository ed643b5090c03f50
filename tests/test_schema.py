"""End-to-end tests: the shipped change-units build the projects schema.

Covers the fresh-store scenario (V000..V003), cascade deletes from projects
to tasks and project_members, schema verification and seed loading.
"""

import sqlite3

import pytest

from projects_db.errors import StoreNotReady
from projects_db.fixtures import (
    SAMPLE_MEMBERS,
    SAMPLE_PROJECTS,
    SAMPLE_TASKS,
    SEED_COUNTS,
    load_seed_data,
    verify_seed_data,
)
from projects_db.runner import MigrationRunner
from projects_db.schema import EXPECTED_TABLES, verify_schema


@pytest.fixture
def migrated(ledger, store, shipped_migrations):
    """A fresh store with every shipped change-unit applied."""
    result = MigrationRunner(ledger, store, shipped_migrations).run()
    assert result.ok
    return store


def count(store, table: str) -> int:
    return store.query(f"SELECT COUNT(*) FROM {table}")[0][0]


class TestFreshStore:
    def test_four_tables_and_four_ledger_rows(self, migrated, ledger):
        assert sorted(migrated.tables()) == sorted(EXPECTED_TABLES)
        assert ledger.applied_versions() == {"000", "001", "002", "003"}
        assert count(migrated, "schema_migrations") == 4

    def test_ledger_descriptions(self, migrated, ledger):
        assert [(e.version, e.description) for e in ledger.entries()] == [
            ("000", "create_schema_migrations_table"),
            ("001", "create_projects_table"),
            ("002", "create_tasks_table"),
            ("003", "create_project_members_table"),
        ]

    def test_verify_schema_clean(self, migrated):
        assert verify_schema(migrated) == []

    def test_verify_schema_on_empty_store(self, store):
        problems = verify_schema(store)
        assert "Missing table: projects" in problems
        assert len(problems) == len(EXPECTED_TABLES)

    def test_verify_schema_flags_missing_cascade(self, store):
        store.execute("CREATE TABLE projects (id INTEGER PRIMARY KEY)")
        store.execute("CREATE TABLE tasks (id INTEGER, project_id INTEGER REFERENCES projects(id))")

        problems = verify_schema(store)

        assert any("does not cascade" in p for p in problems)


class TestCascadeDelete:
    def test_deleting_project_removes_tasks_and_members(self, migrated):
        migrated.execute("INSERT INTO projects (project_code, name) VALUES ('P-1', 'One')")
        migrated.execute("INSERT INTO projects (project_code, name) VALUES ('P-2', 'Two')")
        p1, p2 = [row[0] for row in migrated.query("SELECT id FROM projects ORDER BY project_code")]
        for pid in (p1, p2):
            migrated.execute("INSERT INTO tasks (project_id, task_code, title) VALUES (?, 'T-1', 'Task')", (pid,))
            migrated.execute("INSERT INTO project_members (project_id, user_id) VALUES (?, 42)", (pid,))

        migrated.execute("DELETE FROM projects WHERE id = ?", (p1,))

        assert migrated.query("SELECT project_id FROM tasks") == [(p2,)]
        assert migrated.query("SELECT project_id FROM project_members") == [(p2,)]

    def test_task_code_unique_per_project(self, migrated):
        migrated.execute("INSERT INTO projects (project_code, name) VALUES ('P-1', 'One')")
        migrated.execute("INSERT INTO tasks (project_id, task_code, title) VALUES (1, 'T-1', 'a')")

        with pytest.raises(sqlite3.IntegrityError):
            migrated.execute("INSERT INTO tasks (project_id, task_code, title) VALUES (1, 'T-1', 'b')")

    def test_membership_unique_per_project(self, migrated):
        migrated.execute("INSERT INTO projects (project_code, name) VALUES ('P-1', 'One')")
        migrated.execute("INSERT INTO project_members (project_id, user_id) VALUES (1, 7)")

        with pytest.raises(sqlite3.IntegrityError):
            migrated.execute("INSERT INTO project_members (project_id, user_id, role) VALUES (1, 7, 'owner')")

    def test_user_references_have_no_local_foreign_key(self, migrated):
        # user 999 does not exist anywhere locally; the owning API validates it
        migrated.execute("INSERT INTO projects (project_code, name, created_by) VALUES ('P-1', 'One', 999)")
        assert count(migrated, "projects") == 1

    def test_status_constraint(self, migrated):
        with pytest.raises(sqlite3.IntegrityError):
            migrated.execute("INSERT INTO projects (project_code, name, status) VALUES ('P-1', 'x', 'bogus')")


class TestSeedData:
    def test_fixture_counts(self):
        assert verify_seed_data()
        assert len(SAMPLE_PROJECTS) == SEED_COUNTS["projects"]
        assert len(SAMPLE_TASKS) == SEED_COUNTS["tasks"]
        assert len(SAMPLE_MEMBERS) == SEED_COUNTS["project_members"]

    def test_load_populates_tables(self, migrated):
        counts = load_seed_data(migrated)

        assert counts == SEED_COUNTS
        for table, expected in SEED_COUNTS.items():
            assert count(migrated, table) == expected

    def test_load_is_idempotent(self, migrated):
        load_seed_data(migrated)
        load_seed_data(migrated)

        for table, expected in SEED_COUNTS.items():
            assert count(migrated, table) == expected

    def test_requires_migrated_store(self, store):
        with pytest.raises(StoreNotReady):
            load_seed_data(store)

    def test_seeded_project_cascade(self, migrated):
        load_seed_data(migrated)

        migrated.execute("DELETE FROM projects WHERE project_code = 'PROJ-001'")

        assert count(migrated, "tasks") == SEED_COUNTS["tasks"] - 5
        assert count(migrated, "project_members") == SEED_COUNTS["project_members"] - 5
