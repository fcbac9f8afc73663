"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, converting database
dictionaries into typed objects with validation.
"""

from pydantic import BaseModel, Field

from src.domain.log import OutcomeLogEntry, StatusLogEntry
from src.domain.task import TaskInstance, TaskStatus, TaskTemplate
from src.domain.team import Team
from src.domain.user import UserProfile, UserRole


class AuditRecord(BaseModel):
    """Ids of the audit rows written for one status change."""

    status_log_id: str
    outcome_log_id: str | None = None

    @property
    def rows_written(self) -> int:
        return 1 if self.outcome_log_id is None else 2


class TransitionResult(BaseModel):
    """Outcome of a successful status change."""

    instance: TaskInstance
    old_status: TaskStatus
    new_status: TaskStatus
    audit: AuditRecord


class InstanceDetail(BaseModel):
    """A task instance with its template and audit trail."""

    instance: TaskInstance
    template: TaskTemplate
    status_logs: list[StatusLogEntry] = Field(default_factory=list)
    outcome: OutcomeLogEntry | None = None


class TaskStats(BaseModel):
    """Instance counts shown on the admin dashboard."""

    total: int
    completed: int
    in_progress: int
    overdue: int


class UserWithRoles(BaseModel):
    """User profile with the roles granted to it."""

    profile: UserProfile
    roles: list[UserRole]


class TeamWithMemberCount(BaseModel):
    """Team with the number of users assigned to it."""

    team: Team
    member_count: int


class AdminDashboard(BaseModel):
    """Organisation-wide overview for admins and managers."""

    users: list[UserWithRoles]
    role_counts: dict[str, int]
    teams: list[TeamWithMemberCount]
    task_stats: TaskStats


class PersonalDashboard(BaseModel):
    """What a single user is responsible for right now."""

    user_id: str
    tasks: list[TaskTemplate]
    instances: list[TaskInstance]
    today: list[TaskInstance]
    status_counts: dict[str, int]
    notification_count: int


class CreatedTask(BaseModel):
    """A newly created template and, for one-off templates, its first instance."""

    template: TaskTemplate
    instance: TaskInstance | None = None
