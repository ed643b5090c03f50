"""Development seed data for the projects schema.

Sample projects, tasks and team memberships for local development and tests.
WARNING: Do not load into production.

Rows reference their project by ``project_code`` rather than by id, so the
seeds load correctly whatever ids the store assigns. Loading is an upsert and
can be repeated safely.
"""

from __future__ import annotations

from typing import TypedDict

from .errors import StoreNotReady
from .schema import EXPECTED_TABLES, ExternalRef
from .store import TargetStore


class ProjectData(TypedDict):
    """Project row matching the projects table."""
    project_code: str
    name: str
    description: str | None
    status: str
    priority: str
    start_date: str | None
    end_date: str | None
    budget: float | None
    created_by: ExternalRef


class TaskData(TypedDict):
    """Task row matching the tasks table (project by code)."""
    project_code: str
    task_code: str
    title: str
    description: str | None
    status: str
    priority: str
    assigned_to: ExternalRef | None
    estimated_hours: float | None
    actual_hours: float | None
    due_date: str | None
    created_by: ExternalRef


class MemberData(TypedDict):
    project_code: str
    user_id: ExternalRef
    role: str


def _project(
    code: str,
    name: str,
    desc: str,
    status: str,
    priority: str,
    start: str | None,
    end: str | None,
    budget: float,
    owner: int,
) -> ProjectData:
    return {
        "project_code": code,
        "name": name,
        "description": desc,
        "status": status,
        "priority": priority,
        "start_date": start,
        "end_date": end,
        "budget": budget,
        "created_by": ExternalRef(owner),
    }


def _task(
    project: str,
    code: str,
    title: str,
    desc: str,
    status: str,
    priority: str,
    assignee: int,
    estimate: float,
    actual: float | None,
    due: str,
    author: int,
) -> TaskData:
    return {
        "project_code": project,
        "task_code": code,
        "title": title,
        "description": desc,
        "status": status,
        "priority": priority,
        "assigned_to": ExternalRef(assignee),
        "estimated_hours": estimate,
        "actual_hours": actual,
        "due_date": due,
        "created_by": ExternalRef(author),
    }


SAMPLE_PROJECTS: list[ProjectData] = [
    _project("PROJ-001", "ERP System Development", "Development of the main ERP system modules",
             "active", "critical", "2025-01-01", "2025-12-31", 500000.00, 1),
    _project("PROJ-002", "Mobile App Development", "iOS and Android mobile applications for ERP",
             "active", "high", "2025-02-01", "2025-08-31", 150000.00, 1),
    _project("PROJ-003", "Database Migration", "Migration from legacy database to new schema",
             "completed", "high", "2024-06-01", "2024-12-31", 75000.00, 2),
    _project("PROJ-004", "Security Audit", "Comprehensive security audit of all systems",
             "on_hold", "medium", "2025-03-01", "2025-05-31", 50000.00, 2),
    _project("PROJ-005", "UI/UX Redesign", "Redesign of user interface and user experience",
             "draft", "medium", None, None, 80000.00, 3),
]


def _build_sample_tasks() -> list[TaskData]:
    tasks: list[TaskData] = []

    # PROJ-001
    tasks += [
        _task("PROJ-001", "TASK-001", "Setup development environment",
              "Configure development servers and tools", "done", "high", 1, 16.00, 18.00, "2025-01-15", 1),
        _task("PROJ-001", "TASK-002", "Design database schema",
              "Create ER diagrams and schema design", "done", "critical", 2, 40.00, 42.00, "2025-01-20", 1),
        _task("PROJ-001", "TASK-003", "Implement authentication module",
              "JWT-based authentication system", "in_progress", "critical", 1, 80.00, 45.00, "2025-02-15", 1),
        _task("PROJ-001", "TASK-004", "Create REST API endpoints",
              "RESTful API for all modules", "in_progress", "high", 3, 120.00, 60.00, "2025-03-01", 1),
        _task("PROJ-001", "TASK-005", "Write unit tests",
              "Comprehensive unit test coverage", "todo", "medium", 2, 60.00, None, "2025-03-15", 1),
    ]

    # PROJ-002
    tasks += [
        _task("PROJ-002", "TASK-001", "Setup React Native project",
              "Initialize mobile app project structure", "done", "high", 3, 8.00, 10.00, "2025-02-05", 1),
        _task("PROJ-002", "TASK-002", "Design mobile UI mockups",
              "Create UI designs for all screens", "in_progress", "high", 4, 40.00, 25.00, "2025-02-28", 1),
        _task("PROJ-002", "TASK-003", "Implement login screen",
              "Mobile login interface and logic", "todo", "high", 3, 16.00, None, "2025-03-10", 1),
    ]

    # PROJ-003
    tasks += [
        _task("PROJ-003", "TASK-001", "Analyze legacy schema",
              "Document existing database structure", "done", "critical", 2, 24.00, 20.00, "2024-06-15", 2),
        _task("PROJ-003", "TASK-002", "Create migration scripts",
              "Write data migration scripts", "done", "critical", 2, 80.00, 95.00, "2024-09-30", 2),
        _task("PROJ-003", "TASK-003", "Execute migration",
              "Run migration in production", "done", "critical", 2, 16.00, 22.00, "2024-12-15", 2),
    ]

    return tasks


def _build_sample_members() -> list[MemberData]:
    teams = {
        "PROJ-001": [(1, "owner"), (2, "manager"), (3, "developer"), (4, "developer"), (5, "viewer")],
        "PROJ-002": [(1, "owner"), (3, "manager"), (4, "developer"), (6, "developer")],
        "PROJ-003": [(2, "owner"), (1, "manager")],
        "PROJ-004": [(2, "owner"), (7, "developer")],
        "PROJ-005": [(3, "owner"), (4, "developer"), (5, "developer")],
    }
    return [
        {"project_code": code, "user_id": ExternalRef(user), "role": role}
        for code, members in teams.items()
        for user, role in members
    ]


SAMPLE_TASKS: list[TaskData] = _build_sample_tasks()
SAMPLE_MEMBERS: list[MemberData] = _build_sample_members()

# Row counts for verification
SEED_COUNTS = {
    "projects": 5,
    "tasks": 11,  # 5 + 3 + 3
    "project_members": 16,  # 5 + 4 + 2 + 2 + 3
}


def verify_seed_data() -> bool:
    """Verify the fixture lists match the expected counts."""
    actual = {
        "projects": len(SAMPLE_PROJECTS),
        "tasks": len(SAMPLE_TASKS),
        "project_members": len(SAMPLE_MEMBERS),
    }
    return actual == SEED_COUNTS


def _project_ids(store: TargetStore) -> dict[str, int]:
    return {code: pid for pid, code in store.query("SELECT id, project_code FROM projects")}


def load_seed_data(store: TargetStore) -> dict[str, int]:
    """Upsert every sample row in one transaction.

    Returns:
        Number of rows written per table.

    Raises:
        StoreNotReady: If the schema tables have not been migrated yet.
    """
    missing = [t for t in EXPECTED_TABLES if not store.table_exists(t)]
    if missing:
        raise StoreNotReady(f"Run migrations first; missing table(s): {', '.join(missing)}")

    with store.transaction():
        for p in SAMPLE_PROJECTS:
            store.execute(
                """
                INSERT INTO projects (project_code, name, description, status, priority,
                                      start_date, end_date, budget, created_by, updated_by)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(project_code) DO UPDATE SET
                    name = excluded.name,
                    description = excluded.description,
                    status = excluded.status,
                    priority = excluded.priority,
                    start_date = excluded.start_date,
                    end_date = excluded.end_date,
                    budget = excluded.budget
                """,
                (p["project_code"], p["name"], p["description"], p["status"], p["priority"],
                 p["start_date"], p["end_date"], p["budget"], p["created_by"], p["created_by"]),
            )

        ids = _project_ids(store)

        for t in SAMPLE_TASKS:
            store.execute(
                """
                INSERT INTO tasks (project_id, task_code, title, description, status, priority,
                                   assigned_to, estimated_hours, actual_hours, due_date,
                                   created_by, updated_by)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(project_id, task_code) DO UPDATE SET
                    title = excluded.title,
                    description = excluded.description,
                    status = excluded.status,
                    priority = excluded.priority
                """,
                (ids[t["project_code"]], t["task_code"], t["title"], t["description"], t["status"],
                 t["priority"], t["assigned_to"], t["estimated_hours"], t["actual_hours"],
                 t["due_date"], t["created_by"], t["created_by"]),
            )

        for m in SAMPLE_MEMBERS:
            store.execute(
                """
                INSERT INTO project_members (project_id, user_id, role)
                VALUES (?, ?, ?)
                ON CONFLICT(project_id, user_id) DO UPDATE SET role = excluded.role
                """,
                (ids[m["project_code"]], m["user_id"], m["role"]),
            )

    return {
        "projects": len(SAMPLE_PROJECTS),
        "tasks": len(SAMPLE_TASKS),
        "project_members": len(SAMPLE_MEMBERS),
    }


if __name__ == "__main__":
    # Quick verification when run directly
    print(f"Projects: {len(SAMPLE_PROJECTS)}")
    print(f"Tasks: {len(SAMPLE_TASKS)}")
    print(f"Members: {len(SAMPLE_MEMBERS)}")

    if verify_seed_data():
        print("Verification passed!")
    else:
        print("Verification FAILED!")
