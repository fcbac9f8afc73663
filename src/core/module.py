"""Module Protocol defining the plugin interface for modular architecture."""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Protocol

from pydantic import BaseModel


if TYPE_CHECKING:
    from fastapi import APIRouter


class ScheduledJob(BaseModel):
    """Scheduled job definition."""

    id: str
    name: str
    interval_minutes: int
    func: Callable[[], Awaitable[None]]


class Module(Protocol):
    """Protocol defining the interface for feature modules. Self-contained plugins with schemas, routes, and jobs."""

    @property
    def name(self) -> str:
        """Module name (unique identifier)."""
        ...

    @property
    def description(self) -> str:
        """Module description (human-readable)."""
        ...

    def get_table_schemas(self) -> dict[str, str]:
        """Return table schemas for this module.

        Returns:
            Dictionary mapping table names to CREATE TABLE SQL statements
        """
        ...

    def get_indexes(self) -> list[str]:
        """Return indexes for this module's tables.

        Returns:
            List of CREATE INDEX SQL statements
        """
        ...

    def get_seed_statements(self) -> list[str]:
        """Return idempotent INSERT statements run after the tables exist."""
        ...

    def get_routers(self) -> list["APIRouter"]:
        """Return the HTTP routers this module exposes."""
        ...

    def get_scheduled_jobs(self) -> list[ScheduledJob]:
        """Return scheduled jobs for this module.

        Returns:
            List of ScheduledJob definitions
        """
        ...
