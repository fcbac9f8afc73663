"""Pure status transition rules for the task instance lifecycle."""

import logging

from src.core.config import settings
from src.core.errors import ValidationError
from src.domain.task import TaskStatus
from src.domain.user import Actor


logger = logging.getLogger(__name__)

_ALL = frozenset(TaskStatus)

# Any status may move to any other status, including reopening completed/failed
TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {status: _ALL - {status} for status in TaskStatus}

# Terminal statuses are final
LOCKED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.ASSIGNED: _ALL - {TaskStatus.ASSIGNED},
    TaskStatus.IN_PROGRESS: _ALL - {TaskStatus.IN_PROGRESS},
    TaskStatus.BLOCKED: _ALL - {TaskStatus.BLOCKED},
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
}


def get_transitions(*, lock_terminal: bool | None = None) -> dict[TaskStatus, frozenset[TaskStatus]]:
    """Get the allowed transition table, honouring the lock_terminal_statuses setting."""
    if lock_terminal is None:
        lock_terminal = settings.lock_terminal_statuses
    return LOCKED_TRANSITIONS if lock_terminal else TRANSITIONS


def parse_status(value: str) -> TaskStatus:
    """Coerce a raw status string into a TaskStatus.

    Raises:
        ValidationError: If the value is not a known status
    """
    try:
        return TaskStatus(value)
    except ValueError:
        allowed = ", ".join(status.value for status in TaskStatus)
        msg = f"Unknown status '{value}'. Use one of: {allowed}"
        raise ValidationError(msg) from None


def validate_transition(
    current: TaskStatus | str,
    requested: TaskStatus | str,
    actor: Actor | None = None,
    *,
    lock_terminal: bool | None = None,
) -> TaskStatus:
    """Decide whether ``current`` may move to ``requested``.

    Args:
        current: The instance's stored status
        requested: The status asked for
        actor: Who is asking (recorded in the log line only)
        lock_terminal: Override the lock_terminal_statuses setting

    Returns:
        The accepted status

    Raises:
        ValidationError: Unknown status, a no-op request, or a disallowed edge
    """
    current_status = parse_status(current)
    requested_status = parse_status(requested)

    if requested_status == current_status:
        msg = f"Task is already {current_status.value}"
        raise ValidationError(msg)

    if requested_status not in get_transitions(lock_terminal=lock_terminal)[current_status]:
        msg = f"Invalid status transition from {current_status.value} to {requested_status.value}"
        raise ValidationError(msg)

    logger.debug(
        "Transition accepted",
        extra={
            "from_status": current_status.value,
            "to_status": requested_status.value,
            "user_id": actor.user_id if actor else None,
        },
    )
    return requested_status
