"""Log domain models for audit trail."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.domain.task import TaskStatus


class StatusLogEntry(BaseModel):
    """Status log entry data transfer object for audit trail."""

    id: str = Field(..., description="Unique log ID from database")
    task_instance_id: str = Field(..., description="Instance this entry belongs to")
    old_status: TaskStatus | None = Field(default=None, description="Previous status (None means created)")
    new_status: TaskStatus = Field(..., description="Status after the change")
    user_id: str | None = Field(default=None, description="User who made the change")
    comments: str | None = Field(default=None, description="Free-text comment")
    change_time: datetime = Field(..., description="When the change happened")


class OutcomeLogEntry(BaseModel):
    """Terminal outcome record, at most one per instance."""

    id: str = Field(..., description="Unique outcome ID from database")
    task_instance_id: str = Field(..., description="Instance this outcome belongs to")
    outcome: TaskStatus = Field(..., description="completed or failed")
    completed_by_user_id: str | None = Field(default=None, description="User who reached the outcome")
    comments: str | None = Field(default=None, description="Free-text comment")
    completion_time: datetime = Field(..., description="When the outcome was reached")
    logged_at: datetime | None = Field(default=None, description="When the row was written")
