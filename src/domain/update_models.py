"""Update models for database operations."""

from pydantic import BaseModel, Field, field_validator

from src.core.config import constants
from src.domain.task import DeadlineUnit, RecurrencePattern
from src.domain.user import UserRole


class TaskTemplateUpdate(BaseModel):
    """Partial update payload for a task template. Unset fields are left alone."""

    title: str | None = None
    description: str | None = None
    primary_responsible_user_id: str | None = None
    accountable_user_id: str | None = None
    backup_responsible_user_id: str | None = None
    sop_id: str | None = None
    process_identifier: str | None = None
    is_recurring: bool | None = None
    recurring_schedule: RecurrencePattern | None = None
    deadline_type: DeadlineUnit | None = None
    deadline_value: str | None = None
    is_active: bool | None = None

    @field_validator("title")
    @classmethod
    def validate_title_length(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not constants.MIN_TITLE_LENGTH <= len(v) <= constants.MAX_TITLE_LENGTH:
            msg = f"Title must be {constants.MIN_TITLE_LENGTH}-{constants.MAX_TITLE_LENGTH} characters"
            raise ValueError(msg)
        return v

    @field_validator("deadline_value", mode="before")
    @classmethod
    def coerce_deadline_value(cls, v: object) -> str | None:
        if v is None:
            return None
        return str(v)


class StatusChangeRequest(BaseModel):
    """Request to move an instance to a new status."""

    status: str = Field(..., description="Requested status")
    comment: str | None = Field(default=None, description="Optional comment for the audit trail")
    expected_version: int | None = Field(default=None, description="Version the caller last read")


class TeamUpdate(BaseModel):
    """Update payload for a team."""

    name: str | None = None
    manager_id: str | None = None


class UserProfileUpdate(BaseModel):
    """Update payload for a user profile."""

    name: str | None = None
    team_id: str | None = None
    is_active: bool | None = None


class RoleAssignment(BaseModel):
    """Replace a user's roles."""

    roles: list[UserRole] = Field(..., description="Full set of roles to grant")
