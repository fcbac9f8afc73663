"""Derive due-soon and overdue notifications from task instances."""

from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta

from src.domain.notification import Notification, NotificationType
from src.domain.task import TaskInstance, TaskStatus


DEFAULT_WINDOW = timedelta(hours=24)


def derive_notifications(
    instances: Iterable[TaskInstance],
    now: datetime,
    window: timedelta = DEFAULT_WINDOW,
    *,
    titles: Mapping[str, str] | None = None,
) -> list[Notification]:
    """Build the notification list for a set of instances.

    Instances without a due date, and completed instances, never notify.
    A due date within ``window`` from ``now`` is due soon; one in the past is
    overdue. The result is most recently derived first.

    Args:
        instances: Instances to inspect (not modified)
        now: Reference instant
        window: How far ahead counts as due soon
        titles: Template title by template id, used in the notification text
    """
    titles = titles or {}
    derived: list[Notification] = []

    for instance in instances:
        if instance.due_date is None or instance.status == TaskStatus.COMPLETED:
            continue

        remaining = instance.due_date - now
        title = titles.get(instance.task_template_id, "Unknown task")

        if timedelta(0) < remaining <= window:
            kind, text = NotificationType.DUE_SOON, f"Task due soon: {title}"
        elif remaining < timedelta(0):
            kind, text = NotificationType.OVERDUE, f"Overdue task: {title}"
        else:
            continue

        derived.append(
            Notification(
                id=f"{kind.value}_{instance.id}",
                title=text,
                type=kind,
                task_instance_id=instance.id,
                timestamp=now,
            )
        )

    derived.reverse()
    return derived
