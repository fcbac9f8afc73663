"""Pydantic models for creating records in database."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from src.core.config import constants
from src.domain.task import DeadlineUnit, RecurrencePattern
from src.domain.user import MAX_NAME_LENGTH, UserRole


class TaskTemplateCreate(BaseModel):
    """Pydantic model for creating a task template record."""

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

    @field_validator("title")
    @classmethod
    def validate_title_length(cls, v: str) -> str:
        """Validate title is between the configured bounds."""
        v = v.strip()
        if len(v) < constants.MIN_TITLE_LENGTH:
            msg = f"Title must be at least {constants.MIN_TITLE_LENGTH} characters"
            raise ValueError(msg)
        if len(v) > constants.MAX_TITLE_LENGTH:
            msg = f"Title too long (max {constants.MAX_TITLE_LENGTH} characters)"
            raise ValueError(msg)
        return v

    @field_validator("deadline_value", mode="before")
    @classmethod
    def coerce_deadline_value(cls, v: object) -> str | None:
        """Accept numeric magnitudes and store them as text."""
        if v is None:
            return None
        return str(v)

    @model_validator(mode="after")
    def validate_recurrence(self) -> "TaskTemplateCreate":
        """Recurring templates need a pattern."""
        if self.is_recurring and self.recurring_schedule is None:
            msg = "Recurring tasks require a recurring_schedule"
            raise ValueError(msg)
        if not self.is_recurring:
            self.recurring_schedule = None
        return self


class TaskInstanceCreate(BaseModel):
    """Pydantic model for creating a task instance record."""

    task_template_id: str = Field(..., description="Template to instantiate")
    due_date: datetime | None = Field(default=None, description="Explicit due date, overrides the policy")
    instance_identifier: str | None = Field(default=None, description="Human-readable identifier")


class TeamCreate(BaseModel):
    """Pydantic model for creating a team record."""

    name: str = Field(..., description="Team name")
    manager_id: str | None = Field(default=None, description="User ID of the team manager")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is non-empty."""
        v = v.strip()
        if not v:
            msg = "Team name cannot be empty"
            raise ValueError(msg)
        return v


class SopCreate(BaseModel):
    """Pydantic model for creating an SOP record."""

    title: str = Field(..., description="SOP title")
    link: str = Field(..., description="Where the SOP document lives")

    @field_validator("title", "link")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Validate fields are non-empty."""
        v = v.strip()
        if not v:
            msg = "Value cannot be empty"
            raise ValueError(msg)
        return v


class UserProfileCreate(BaseModel):
    """Pydantic model for registering a user profile."""

    user_id: str = Field(..., description="External identity provider user ID")
    name: str = Field(..., description="Display name of the user")
    team_id: str | None = Field(default=None, description="Team the user belongs to")
    roles: list[UserRole] = Field(default_factory=lambda: [UserRole.TEAM_MEMBER], description="Initial roles")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is non-empty and not too long."""
        v = v.strip()
        if not v:
            msg = "Name cannot be empty"
            raise ValueError(msg)
        if len(v) > MAX_NAME_LENGTH:
            msg = f"Name too long (max {MAX_NAME_LENGTH} characters)"
            raise ValueError(msg)
        return v
