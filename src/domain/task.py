"""Task template and task instance domain models and enums."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class TaskStatus(StrEnum):
    """Task instance lifecycle status."""

    ASSIGNED = "assigned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"
    FAILED = "failed"


# Statuses that write an outcome log entry
TERMINAL_STATUSES: frozenset[TaskStatus] = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED})


class DeadlineUnit(StrEnum):
    """Unit of a template's deadline specification."""

    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"


class RecurrencePattern(StrEnum):
    """How often a recurring template spawns instances."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class TaskTemplate(BaseModel):
    """Task template data transfer object."""

    id: str = Field(..., description="Unique task ID from database")
    title: str = Field(..., description="Task title")
    description: str | None = Field(default=None, description="Detailed task description")
    primary_responsible_user_id: str = Field(..., description="Primary responsible user")
    accountable_user_id: str = Field(..., description="Accountable user")
    backup_responsible_user_id: str | None = Field(default=None, description="Backup responsible user")
    sop_id: str | None = Field(default=None, description="Linked SOP ID")
    process_identifier: str | None = Field(default=None, description="Human-readable process code")
    is_recurring: bool = Field(default=False, description="Whether the template spawns instances on a schedule")
    recurring_schedule: RecurrencePattern | None = Field(default=None, description="Recurrence pattern")
    deadline_type: DeadlineUnit | None = Field(default=None, description="Deadline unit")
    deadline_value: str | None = Field(default=None, description="Deadline magnitude")
    is_active: bool = Field(default=True, description="Soft-delete marker")
    created_by: str | None = Field(default=None, description="Creator user ID")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last update timestamp")

    @property
    def participant_ids(self) -> set[str]:
        """User ids holding a RACI role on this template."""
        ids = {self.primary_responsible_user_id, self.accountable_user_id}
        if self.backup_responsible_user_id:
            ids.add(self.backup_responsible_user_id)
        return ids


class TaskInstance(BaseModel):
    """Task instance data transfer object."""

    id: str = Field(..., description="Unique instance ID from database")
    task_template_id: str = Field(..., description="Template this instance was created from")
    status: TaskStatus = Field(default=TaskStatus.ASSIGNED, description="Current lifecycle status")
    due_date: datetime | None = Field(default=None, description="When the instance is due")
    instance_identifier: str | None = Field(default=None, description="Human-readable identifier")
    version: int = Field(default=1, description="Optimistic concurrency token")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last update timestamp")
