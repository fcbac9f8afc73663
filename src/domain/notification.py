"""Notification domain models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class NotificationType(StrEnum):
    """Kind of derived task notification."""

    DUE_SOON = "due_soon"
    OVERDUE = "overdue"


class Notification(BaseModel):
    """A derived, read-only alert about a task instance."""

    id: str = Field(..., description="Stable id: '<type>_<instance id>'")
    title: str = Field(..., description="Human-readable alert text")
    type: NotificationType = Field(..., description="Alert kind")
    task_instance_id: str = Field(..., description="Instance the alert refers to")
    timestamp: datetime = Field(..., description="When the alert was derived")
