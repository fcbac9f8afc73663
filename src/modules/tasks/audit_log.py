"""Audit trail writer and readers for task instance status changes."""

import logging
from datetime import datetime

from src.core import db_client
from src.core.db_client import Transaction, sanitize_param
from src.domain.log import OutcomeLogEntry, StatusLogEntry
from src.domain.task import TERMINAL_STATUSES, TaskStatus
from src.models.service_models import AuditRecord


logger = logging.getLogger(__name__)


async def record_transition(
    tx: Transaction,
    *,
    instance_id: str,
    old_status: TaskStatus | None,
    new_status: TaskStatus,
    actor_id: str | None,
    comment: str | None,
    changed_at: datetime,
) -> AuditRecord:
    """Append the status log row and, for terminal outcomes, the outcome row.

    Runs on the caller's transaction. The instance's own status column is
    not touched here.

    Args:
        tx: Open transaction the rows are written on
        instance_id: Instance whose status changed
        old_status: Previous status, None for the creation entry
        new_status: Status after the change
        actor_id: User who made the change
        comment: Optional free text
        changed_at: Instant of the change, shared by both rows

    Returns:
        Ids of the rows written
    """
    status_row = await tx.create_record(
        collection="task_status_log",
        data={
            "task_instance_id": instance_id,
            "old_status": old_status.value if old_status else None,
            "new_status": new_status.value,
            "user_id": actor_id,
            "comments": comment,
            "change_time": changed_at,
        },
    )

    outcome_id: str | None = None
    if new_status in TERMINAL_STATUSES:
        # One outcome per instance; reaching a terminal status again replaces it
        outcome_row = await tx.upsert_record(
            collection="task_outcome_log",
            data={
                "task_instance_id": instance_id,
                "outcome": new_status.value,
                "completed_by_user_id": actor_id,
                "comments": comment,
                "completion_time": changed_at,
                "logged_at": changed_at,
            },
            conflict_columns=["task_instance_id"],
        )
        outcome_id = outcome_row["id"]

    logger.debug(
        "Recorded status change",
        extra={"instance_id": instance_id, "new_status": new_status.value, "outcome_id": outcome_id},
    )
    return AuditRecord(status_log_id=status_row["id"], outcome_log_id=outcome_id)


async def get_status_logs(instance_id: str) -> list[StatusLogEntry]:
    """Get an instance's status history, newest first."""
    records = await db_client.list_all_records(
        collection="task_status_log",
        filter_query=f'task_instance_id = "{sanitize_param(instance_id)}"',
        sort="-change_time",
    )
    return [StatusLogEntry(**record) for record in records]


async def get_outcome(instance_id: str) -> OutcomeLogEntry | None:
    """Get an instance's outcome row, if it ever reached a terminal status."""
    record = await db_client.get_first_record(
        collection="task_outcome_log",
        filter_query=f'task_instance_id = "{sanitize_param(instance_id)}"',
    )
    return OutcomeLogEntry(**record) if record else None
