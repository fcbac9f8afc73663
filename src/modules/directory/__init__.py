"""Directory module: user profiles, roles, teams, and SOPs."""

from typing import TYPE_CHECKING

from src.core.module import ScheduledJob
from src.domain.user import UserRole


if TYPE_CHECKING:
    from fastapi import APIRouter


class DirectoryModule:
    """Directory module for people and reference data.

    Provides:
    - User profiles keyed by the identity provider's user id
    - Role grants (admin, manager, team_member)
    - Teams with an optional manager
    - SOP links referenced by task templates
    """

    @property
    def name(self) -> str:
        """Module name (unique identifier)."""
        return "directory"

    @property
    def description(self) -> str:
        """Module description (human-readable)."""
        return "Users, roles, teams, and standard operating procedures"

    def get_table_schemas(self) -> dict[str, str]:
        """Return table schemas for this module."""
        return {
            "teams": """CREATE TABLE IF NOT EXISTS teams (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S+00:00', 'now')),
        updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S+00:00', 'now')),
        name TEXT NOT NULL UNIQUE,
        manager_id TEXT
    )""",
            "user_profiles": """CREATE TABLE IF NOT EXISTS user_profiles (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S+00:00', 'now')),
        updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S+00:00', 'now')),
        user_id TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        team_id INTEGER REFERENCES teams(id),
        is_active INTEGER NOT NULL DEFAULT 1
    )""",
            "roles": """CREATE TABLE IF NOT EXISTS roles (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE
    )""",
            "user_roles": """CREATE TABLE IF NOT EXISTS user_roles (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        role_id INTEGER NOT NULL REFERENCES roles(id),
        assigned_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S+00:00', 'now')),
        UNIQUE(user_id, role_id)
    )""",
            "sops": """CREATE TABLE IF NOT EXISTS sops (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S+00:00', 'now')),
        updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S+00:00', 'now')),
        title TEXT NOT NULL,
        link TEXT NOT NULL
    )""",
        }

    def get_indexes(self) -> list[str]:
        """Return indexes for this module's tables."""
        return [
            "CREATE INDEX IF NOT EXISTS idx_user_profiles_team_id ON user_profiles (team_id)",
            "CREATE INDEX IF NOT EXISTS idx_user_roles_user_id ON user_roles (user_id)",
        ]

    def get_seed_statements(self) -> list[str]:
        """Seed the fixed role names."""
        return [f"INSERT OR IGNORE INTO roles (name) VALUES ('{role.value}')" for role in UserRole]

    def get_routers(self) -> list["APIRouter"]:
        """Return the HTTP routers this module exposes."""
        from src.interface.directory_router import router

        return [router]

    def get_scheduled_jobs(self) -> list[ScheduledJob]:
        """Return scheduled jobs for this module."""
        return []
