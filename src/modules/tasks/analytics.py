"""Dashboard aggregations for admins, managers, and individual users.

Key Concepts:
- Overdue: an instance whose due date has passed and that is not completed.
  Failed instances still count as overdue.
- Personal dashboard: templates the user holds a RACI role on, their
  instances, and what is due today.
"""

import logging
from collections import Counter
from collections.abc import Iterable
from datetime import UTC, datetime

from src.core.logging import span
from src.domain.task import TaskInstance, TaskStatus
from src.domain.user import UserRole
from src.models.service_models import AdminDashboard, PersonalDashboard, TaskStats
from src.modules.directory import service as directory_service
from src.modules.tasks import service as task_service


logger = logging.getLogger(__name__)


def compute_task_stats(instances: Iterable[TaskInstance], now: datetime) -> TaskStats:
    """Count instances by headline status, plus overdue ones."""
    total = completed = in_progress = overdue = 0
    for instance in instances:
        total += 1
        if instance.status == TaskStatus.COMPLETED:
            completed += 1
        elif instance.status == TaskStatus.IN_PROGRESS:
            in_progress += 1
        if instance.due_date is not None and instance.due_date < now and instance.status != TaskStatus.COMPLETED:
            overdue += 1
    return TaskStats(total=total, completed=completed, in_progress=in_progress, overdue=overdue)


async def get_admin_dashboard(now: datetime | None = None) -> AdminDashboard:
    """Build the organisation-wide dashboard."""
    with span("analytics.get_admin_dashboard"):
        now = now or datetime.now(UTC)
        users = await directory_service.list_users()
        teams = await directory_service.list_teams()
        instances = await task_service.list_instances()

        role_counts = {role.value: 0 for role in UserRole}
        for user in users:
            for role in user.roles:
                role_counts[role.value] += 1

        stats = compute_task_stats(instances, now)
        logger.info("Built admin dashboard", extra={"users": len(users), "instances": stats.total})
        return AdminDashboard(users=users, role_counts=role_counts, teams=teams, task_stats=stats)


async def get_personal_dashboard(user_id: str, now: datetime | None = None) -> PersonalDashboard:
    """Build one user's dashboard."""
    with span("analytics.get_personal_dashboard"):
        now = now or datetime.now(UTC)
        tasks = await task_service.get_user_tasks(user_id)
        instances = await task_service.get_user_instances(user_id)
        today = await task_service.get_today_instances(user_id, now)
        notifications = await task_service.get_user_notifications(user_id, now)

        status_counts = {status.value: 0 for status in TaskStatus}
        status_counts.update(Counter(instance.status.value for instance in instances))

        return PersonalDashboard(
            user_id=user_id,
            tasks=tasks,
            instances=instances,
            today=today,
            status_counts=status_counts,
            notification_count=len(notifications),
        )
