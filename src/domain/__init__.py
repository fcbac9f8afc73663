"""Domain models and DTOs."""

from src.domain.create_models import (
    SopCreate,
    TaskInstanceCreate,
    TaskTemplateCreate,
    TeamCreate,
    UserProfileCreate,
)
from src.domain.log import OutcomeLogEntry, StatusLogEntry
from src.domain.notification import Notification, NotificationType
from src.domain.task import (
    TERMINAL_STATUSES,
    DeadlineUnit,
    RecurrencePattern,
    TaskInstance,
    TaskStatus,
    TaskTemplate,
)
from src.domain.team import Sop, Team
from src.domain.update_models import (
    RoleAssignment,
    StatusChangeRequest,
    TaskTemplateUpdate,
    TeamUpdate,
    UserProfileUpdate,
)
from src.domain.user import Actor, UserProfile, UserRole, has_any_role


__all__ = [
    "TERMINAL_STATUSES",
    "Actor",
    "DeadlineUnit",
    "Notification",
    "NotificationType",
    "OutcomeLogEntry",
    "RecurrencePattern",
    "RoleAssignment",
    "Sop",
    "SopCreate",
    "StatusChangeRequest",
    "StatusLogEntry",
    "TaskInstance",
    "TaskInstanceCreate",
    "TaskStatus",
    "TaskTemplate",
    "TaskTemplateCreate",
    "TaskTemplateUpdate",
    "Team",
    "TeamCreate",
    "TeamUpdate",
    "UserProfile",
    "UserProfileCreate",
    "UserProfileUpdate",
    "UserRole",
    "has_any_role",
]
