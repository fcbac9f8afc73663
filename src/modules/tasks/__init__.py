"""Tasks module for RACI task templates and their instances."""

from typing import TYPE_CHECKING

from src.core.module import ScheduledJob


if TYPE_CHECKING:
    from fastapi import APIRouter


class TasksModule:
    """Tasks module for RACI task tracking.

    Provides:
    - Task template CRUD (soft delete only)
    - Task instances with a status lifecycle and optimistic versioning
    - Status and outcome audit logs
    - Due-date policy and derived notifications
    - Dashboards and instance statistics
    - Scheduled generation of instances for recurring templates
    """

    @property
    def name(self) -> str:
        """Module name (unique identifier)."""
        return "tasks"

    @property
    def description(self) -> str:
        """Module description (human-readable)."""
        return "RACI task templates, instance lifecycle, audit logs, and dashboards"

    def get_table_schemas(self) -> dict[str, str]:
        """Return table schemas for this module."""
        return {
            "tasks": """CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S+00:00', 'now')),
        updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S+00:00', 'now')),
        title TEXT NOT NULL,
        description TEXT,
        primary_responsible_user_id TEXT NOT NULL,
        accountable_user_id TEXT NOT NULL,
        backup_responsible_user_id TEXT,
        sop_id INTEGER REFERENCES sops(id),
        process_identifier TEXT,
        is_recurring INTEGER NOT NULL DEFAULT 0,
        recurring_schedule TEXT CHECK (recurring_schedule IN ('daily', 'weekly', 'monthly')),
        deadline_type TEXT CHECK (deadline_type IN ('days', 'weeks', 'months')),
        deadline_value TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_by TEXT
    )""",
            "task_instances": """CREATE TABLE IF NOT EXISTS task_instances (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S+00:00', 'now')),
        updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S+00:00', 'now')),
        task_template_id INTEGER NOT NULL REFERENCES tasks(id),
        status TEXT NOT NULL DEFAULT 'assigned'
            CHECK (status IN ('assigned', 'in-progress', 'completed', 'blocked', 'failed')),
        due_date TEXT,
        instance_identifier TEXT,
        version INTEGER NOT NULL DEFAULT 1
    )""",
            "task_status_log": """CREATE TABLE IF NOT EXISTS task_status_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        task_instance_id INTEGER NOT NULL REFERENCES task_instances(id),
        old_status TEXT,
        new_status TEXT NOT NULL,
        user_id TEXT,
        comments TEXT,
        change_time TEXT NOT NULL
    )""",
            "task_outcome_log": """CREATE TABLE IF NOT EXISTS task_outcome_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        task_instance_id INTEGER NOT NULL UNIQUE REFERENCES task_instances(id),
        outcome TEXT NOT NULL CHECK (outcome IN ('completed', 'failed')),
        completed_by_user_id TEXT,
        comments TEXT,
        completion_time TEXT NOT NULL,
        logged_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S+00:00', 'now'))
    )""",
        }

    def get_indexes(self) -> list[str]:
        """Return indexes for this module's tables."""
        return [
            "CREATE INDEX IF NOT EXISTS idx_tasks_primary_responsible ON tasks (primary_responsible_user_id)",
            "CREATE INDEX IF NOT EXISTS idx_tasks_accountable ON tasks (accountable_user_id)",
            "CREATE INDEX IF NOT EXISTS idx_tasks_backup_responsible ON tasks (backup_responsible_user_id)",
            "CREATE INDEX IF NOT EXISTS idx_task_instances_template_id ON task_instances (task_template_id)",
            "CREATE INDEX IF NOT EXISTS idx_task_instances_status ON task_instances (status)",
            "CREATE INDEX IF NOT EXISTS idx_task_instances_due_date ON task_instances (due_date)",
            (
                "CREATE UNIQUE INDEX IF NOT EXISTS idx_task_instances_identifier "
                "ON task_instances (task_template_id, instance_identifier)"
            ),
            "CREATE INDEX IF NOT EXISTS idx_task_status_log_instance_id ON task_status_log (task_instance_id)",
        ]

    def get_seed_statements(self) -> list[str]:
        """Return seed statements for this module."""
        return []

    def get_routers(self) -> list["APIRouter"]:
        """Return the HTTP routers this module exposes."""
        from src.interface.dashboard_router import router as dashboard_router
        from src.interface.instances_router import router as instances_router
        from src.interface.tasks_router import router as tasks_router

        return [tasks_router, instances_router, dashboard_router]

    def get_scheduled_jobs(self) -> list[ScheduledJob]:
        """Return scheduled jobs for this module."""
        import src.modules.tasks.scheduler_jobs

        return src.modules.tasks.scheduler_jobs.get_scheduled_jobs()
