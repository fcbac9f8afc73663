"""Scheduled jobs for tasks module.

This module provides scheduled jobs for:
- Generating instances of recurring task templates
"""

import logging
from datetime import UTC, datetime

from src.core import db_client
from src.core.config import constants, settings
from src.core.db_client import sanitize_param
from src.core.errors import WriteError
from src.core.module import ScheduledJob
from src.core.recurrence import latest_tick
from src.domain.task import TaskInstance, TaskTemplate
from src.modules.tasks import service
from src.modules.tasks.due_dates import compute_due_date


logger = logging.getLogger(__name__)


def instance_identifier_for(template_id: str, tick: datetime) -> str:
    """Identifier of the instance generated for ``tick``."""
    return f"{template_id}-{tick:%Y%m%d}"


async def _generate_for_template(template: TaskTemplate, now: datetime) -> TaskInstance | None:
    """Create the instance for the template's latest due tick, if it does not exist yet."""
    assert template.recurring_schedule is not None

    existing = await db_client.list_records(
        collection="task_instances",
        filter_query=f'task_template_id = "{sanitize_param(template.id)}"',
        sort="-created_at",
        per_page=1,
    )
    anchor = TaskInstance(**existing[0]).created_at if existing else template.created_at
    if anchor is None:
        anchor = now

    tick = latest_tick(template.recurring_schedule, after=anchor, now=now)
    if tick is None:
        return None

    identifier = instance_identifier_for(template.id, tick)
    due_date = compute_due_date(template.deadline_type, template.deadline_value, tick)

    async with db_client.transaction() as tx:
        duplicate = await tx.list_records(
            collection="task_instances",
            filter_query=(
                f'task_template_id = "{sanitize_param(template.id)}" '
                f'&& instance_identifier = "{sanitize_param(identifier)}"'
            ),
        )
        if duplicate:
            return None
        return await service.insert_instance(
            tx,
            template_id=template.id,
            due_date=due_date,
            instance_identifier=identifier,
            actor_id=None,
            created_at=now,
        )


async def generate_recurring_instances(now: datetime | None = None) -> list[TaskInstance]:
    """Create one instance per active recurring template whose schedule has ticked.

    Ticks missed while the service was down collapse into the latest one,
    and an identifier that already exists is never created twice.

    Returns:
        The instances created by this run
    """
    now = now or datetime.now(UTC)
    templates = await db_client.list_all_records(
        collection="tasks",
        filter_query='is_active = "true" && is_recurring = "true"',
    )

    created: list[TaskInstance] = []
    failures = 0
    for record in templates:
        template = TaskTemplate(**record)
        try:
            instance = await _generate_for_template(template, now)
        except (WriteError, db_client.DatabaseError) as e:
            failures += 1
            logger.error("Failed to generate recurring instance", extra={"task_id": template.id, "error": str(e)})
            continue
        if instance is not None:
            created.append(instance)
            logger.info(
                "Generated recurring instance",
                extra={"task_id": template.id, "instance_id": instance.id, "identifier": instance.instance_identifier},
            )

    logger.info("Recurring generation finished", extra={"created": len(created), "templates": len(templates)})
    if failures:
        msg = f"{failures} recurring template(s) failed to generate"
        raise WriteError(msg, stage="recurring_generation")
    return created


async def run_recurring_generation() -> None:
    """Scheduler entry point for recurring generation."""
    await generate_recurring_instances()


def get_scheduled_jobs() -> list[ScheduledJob]:
    """Return scheduled jobs for tasks module.

    Returns:
        List of ScheduledJob definitions (empty when generation is disabled)
    """
    if not settings.enable_recurring_generation:
        return []

    return [
        ScheduledJob(
            id=constants.RECURRING_INSTANCES_JOB,
            name="Generate Recurring Task Instances",
            interval_minutes=settings.recurring_generation_interval_minutes,
            func=run_recurring_generation,
        ),
    ]
