"""Task service for templates, instances, and the status lifecycle."""

import logging
from datetime import UTC, datetime, timedelta

from src.core import db_client
from src.core.config import settings
from src.core.db_client import Transaction, sanitize_param, write_stage
from src.core.errors import ConflictError, NotFoundError, ValidationError, WriteError
from src.core.logging import log_with_user_context, span
from src.domain.create_models import TaskInstanceCreate, TaskTemplateCreate
from src.domain.notification import Notification
from src.domain.task import TaskInstance, TaskStatus, TaskTemplate
from src.domain.update_models import TaskTemplateUpdate
from src.domain.user import Actor, UserRole
from src.models.service_models import CreatedTask, InstanceDetail, TransitionResult
from src.modules.tasks import audit_log, state_machine
from src.modules.tasks.due_dates import compute_due_date
from src.modules.tasks.notifications import derive_notifications


logger = logging.getLogger(__name__)

_PRIVILEGED_ROLES = (UserRole.ADMIN, UserRole.MANAGER)
_REQUIRED_TEMPLATE_FIELDS = ("title", "primary_responsible_user_id", "accountable_user_id", "is_recurring", "is_active")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _ensure_record_id(record_id: str, kind: str) -> None:
    if not str(record_id).isdigit():
        raise NotFoundError(f"{kind} not found: {record_id}")


def _resolve_due_date(template: TaskTemplate | TaskTemplateCreate, reference: datetime) -> datetime | None:
    """Apply the due-date policy, rejecting a deadline spec that cannot be applied."""
    if template.deadline_type is None and template.deadline_value is None:
        return None
    due_date = compute_due_date(template.deadline_type, template.deadline_value, reference)
    if due_date is None:
        msg = f"Invalid deadline: {template.deadline_value!r} {template.deadline_type or ''}".rstrip()
        raise ValidationError(msg)
    return due_date


def can_edit_template(template: TaskTemplate, actor: Actor) -> bool:
    """Creator, accountable user, or an admin/manager may edit a template."""
    if actor.has_any_role(_PRIVILEGED_ROLES):
        return True
    return actor.user_id in {template.created_by, template.accountable_user_id}


def can_work_on_template(template: TaskTemplate, actor: Actor) -> bool:
    """RACI participants, or an admin/manager, may create instances and change their status."""
    return actor.has_any_role(_PRIVILEGED_ROLES) or actor.user_id in template.participant_ids


async def _ensure_users_exist(user_ids: list[str | None]) -> None:
    for user_id in user_ids:
        if not user_id:
            continue
        profile = await db_client.get_first_record(
            collection="user_profiles",
            filter_query=f'user_id = "{sanitize_param(user_id)}" && is_active = "true"',
        )
        if profile is None:
            msg = f"Unknown or inactive user: {user_id}"
            raise ValidationError(msg)


async def _ensure_sop_exists(sop_id: str | None) -> None:
    if not sop_id:
        return
    try:
        await db_client.get_record(collection="sops", record_id=sop_id)
    except db_client.RecordNotFoundError:
        msg = f"Unknown SOP: {sop_id}"
        raise ValidationError(msg) from None


async def insert_instance(
    tx: Transaction,
    *,
    template_id: str,
    due_date: datetime | None,
    instance_identifier: str | None,
    actor_id: str | None,
    created_at: datetime,
) -> TaskInstance:
    """Insert an ``assigned`` instance and its creation log row on ``tx``."""
    with write_stage("insert_instance"):
        record = await tx.create_record(
            collection="task_instances",
            data={
                "task_template_id": template_id,
                "status": TaskStatus.ASSIGNED.value,
                "due_date": due_date,
                "instance_identifier": instance_identifier,
                "version": 1,
                "created_at": created_at,
                "updated_at": created_at,
            },
        )
    with write_stage("status_log"):
        await audit_log.record_transition(
            tx,
            instance_id=record["id"],
            old_status=None,
            new_status=TaskStatus.ASSIGNED,
            actor_id=actor_id,
            comment=None,
            changed_at=created_at,
        )
    return TaskInstance(**record)


async def create_task(data: TaskTemplateCreate, actor: Actor, now: datetime | None = None) -> CreatedTask:
    """Create a task template, and for one-off templates its first instance.

    Args:
        data: Validated template fields
        actor: Creating user
        now: Reference instant for the first instance's due date

    Returns:
        The template and the instance created with it (None for recurring templates)

    Raises:
        ValidationError: Unknown users or SOP, or a deadline spec that cannot be applied
        WriteError: If any insert fails (nothing is persisted)
    """
    with span("task_service.create_task"):
        now = now or _utcnow()
        await _ensure_users_exist(
            [data.primary_responsible_user_id, data.accountable_user_id, data.backup_responsible_user_id]
        )
        await _ensure_sop_exists(data.sop_id)
        due_date = _resolve_due_date(data, now)

        try:
            async with db_client.transaction() as tx:
                with write_stage("insert_template"):
                    template_record = await tx.create_record(
                        collection="tasks",
                        data={
                            **data.model_dump(mode="json"),
                            "is_active": True,
                            "created_by": actor.user_id,
                            "created_at": now,
                            "updated_at": now,
                        },
                    )
                instance = None
                if not data.is_recurring:
                    instance = await insert_instance(
                        tx,
                        template_id=template_record["id"],
                        due_date=due_date,
                        instance_identifier=None,
                        actor_id=actor.user_id,
                        created_at=now,
                    )
        except TimeoutError as e:
            raise WriteError("Timed out creating task", stage="transaction") from e

        log_with_user_context(
            logger,
            "info",
            "Created task",
            user_id=actor.user_id,
            task_id=template_record["id"],
            instance_id=instance.id if instance else None,
        )
        return CreatedTask(template=TaskTemplate(**template_record), instance=instance)


async def get_task(template_id: str) -> TaskTemplate:
    """Get a template by id (active or not)."""
    _ensure_record_id(template_id, "Task")
    try:
        record = await db_client.get_record(collection="tasks", record_id=template_id)
    except db_client.RecordNotFoundError as e:
        raise NotFoundError(f"Task not found: {template_id}") from e
    return TaskTemplate(**record)


async def list_tasks() -> list[TaskTemplate]:
    """List active templates, newest first."""
    with span("task_service.list_tasks"):
        records = await db_client.list_all_records(
            collection="tasks",
            filter_query='is_active = "true"',
            sort="-created_at",
        )
        return [TaskTemplate(**record) for record in records]


async def get_user_tasks(user_id: str) -> list[TaskTemplate]:
    """List active templates where the user is primary, accountable, or backup."""
    with span("task_service.get_user_tasks"):
        uid = sanitize_param(user_id)
        records = await db_client.list_all_records(
            collection="tasks",
            filter_query=(
                f'is_active = "true" && (primary_responsible_user_id = "{uid}" '
                f'|| accountable_user_id = "{uid}" || backup_responsible_user_id = "{uid}")'
            ),
            sort="-created_at",
        )
        return [TaskTemplate(**record) for record in records]


async def update_task(template_id: str, updates: TaskTemplateUpdate, actor: Actor) -> TaskTemplate:
    """Apply a partial update to a template.

    Raises:
        NotFoundError: If the template does not exist
        PermissionError: If the actor may not edit the template
        ValidationError: If the merged template would be invalid
    """
    with span("task_service.update_task"):
        template = await get_task(template_id)
        if not can_edit_template(template, actor):
            msg = "Only the creator, the accountable user, or an admin/manager can edit this task"
            raise PermissionError(msg)

        data = updates.model_dump(exclude_unset=True, mode="json")
        if not data:
            return template
        for field in _REQUIRED_TEMPLATE_FIELDS:
            if field in data and data[field] is None:
                msg = f"{field} cannot be null"
                raise ValidationError(msg)

        merged = template.model_copy(update=updates.model_dump(exclude_unset=True))
        if merged.is_recurring and merged.recurring_schedule is None:
            msg = "Recurring tasks require a recurring_schedule"
            raise ValidationError(msg)
        if not merged.is_recurring and merged.recurring_schedule is not None:
            data["recurring_schedule"] = None
        if "deadline_type" in data or "deadline_value" in data:
            _resolve_due_date(merged, _utcnow())

        await _ensure_users_exist(
            [
                data.get("primary_responsible_user_id"),
                data.get("accountable_user_id"),
                data.get("backup_responsible_user_id"),
            ]
        )
        if "sop_id" in data:
            await _ensure_sop_exists(data["sop_id"])

        data["updated_at"] = _utcnow()
        try:
            record = await db_client.update_record(collection="tasks", record_id=template_id, data=data)
        except db_client.DatabaseError as e:
            raise WriteError(f"Failed to update task: {e}", stage="update_template") from e

        log_with_user_context(logger, "info", "Updated task", user_id=actor.user_id, task_id=template_id)
        return TaskTemplate(**record)


async def deactivate_task(template_id: str, actor: Actor) -> TaskTemplate:
    """Soft-delete a template; its instances and logs are kept."""
    with span("task_service.deactivate_task"):
        return await update_task(template_id, TaskTemplateUpdate(is_active=False), actor)


async def create_instance(data: TaskInstanceCreate, actor: Actor, now: datetime | None = None) -> TaskInstance:
    """Create an instance of an active template.

    The due date defaults to the template's deadline policy applied to ``now``.

    Raises:
        NotFoundError: If the template does not exist
        PermissionError: If the actor is not a participant or admin/manager
        ValidationError: Inactive template or duplicate identifier
    """
    with span("task_service.create_instance"):
        now = now or _utcnow()
        template = await get_task(data.task_template_id)
        if not template.is_active:
            msg = f"Task {template.id} is inactive"
            raise ValidationError(msg)
        if not can_work_on_template(template, actor):
            msg = "Only task participants or an admin/manager can create instances"
            raise PermissionError(msg)

        due_date = data.due_date if data.due_date is not None else _resolve_due_date(template, now)

        try:
            async with db_client.transaction() as tx:
                if data.instance_identifier:
                    with write_stage("read_instances"):
                        existing = await tx.list_records(
                            collection="task_instances",
                            filter_query=(
                                f'task_template_id = "{sanitize_param(template.id)}" '
                                f'&& instance_identifier = "{sanitize_param(data.instance_identifier)}"'
                            ),
                        )
                    if existing:
                        msg = f"Instance {data.instance_identifier} already exists for task {template.id}"
                        raise ValidationError(msg)
                instance = await insert_instance(
                    tx,
                    template_id=template.id,
                    due_date=due_date,
                    instance_identifier=data.instance_identifier,
                    actor_id=actor.user_id,
                    created_at=now,
                )
        except TimeoutError as e:
            raise WriteError("Timed out creating instance", stage="transaction") from e

        log_with_user_context(
            logger, "info", "Created task instance", user_id=actor.user_id, task_id=template.id, instance_id=instance.id
        )
        return instance


async def get_instance(instance_id: str) -> TaskInstance:
    """Get an instance by id."""
    _ensure_record_id(instance_id, "Task instance")
    try:
        record = await db_client.get_record(collection="task_instances", record_id=instance_id)
    except db_client.RecordNotFoundError as e:
        raise NotFoundError(f"Task instance not found: {instance_id}") from e
    return TaskInstance(**record)


async def get_instance_detail(instance_id: str) -> InstanceDetail:
    """Get an instance with its template, status history (newest first), and outcome."""
    with span("task_service.get_instance_detail"):
        instance = await get_instance(instance_id)
        template = await get_task(instance.task_template_id)
        return InstanceDetail(
            instance=instance,
            template=template,
            status_logs=await audit_log.get_status_logs(instance_id),
            outcome=await audit_log.get_outcome(instance_id),
        )


async def list_instances(status: TaskStatus | None = None) -> list[TaskInstance]:
    """List all instances, newest first, optionally filtered by status."""
    with span("task_service.list_instances"):
        filter_query = f'status = "{status.value}"' if status else ""
        records = await db_client.list_all_records(
            collection="task_instances",
            filter_query=filter_query,
            sort="-created_at",
        )
        return [TaskInstance(**record) for record in records]


async def _list_instances_for_templates(template_ids: list[str]) -> list[TaskInstance]:
    if not template_ids:
        return []
    clauses = " || ".join(f'task_template_id = "{sanitize_param(tid)}"' for tid in template_ids)
    records = await db_client.list_all_records(
        collection="task_instances",
        filter_query=f"({clauses})",
        sort="-created_at",
    )
    return [TaskInstance(**record) for record in records]


async def get_user_instances(user_id: str) -> list[TaskInstance]:
    """List instances of the templates the user participates in."""
    with span("task_service.get_user_instances"):
        templates = await get_user_tasks(user_id)
        return await _list_instances_for_templates([template.id for template in templates])


async def get_today_instances(user_id: str, now: datetime | None = None) -> list[TaskInstance]:
    """List the user's instances due on the same UTC calendar day as ``now``."""
    today = (now or _utcnow()).astimezone(UTC).date()
    return [
        instance
        for instance in await get_user_instances(user_id)
        if instance.due_date is not None and instance.due_date.astimezone(UTC).date() == today
    ]


async def get_user_notifications(user_id: str, now: datetime | None = None) -> list[Notification]:
    """Derive due-soon and overdue notifications for the user's instances."""
    with span("task_service.get_user_notifications"):
        now = now or _utcnow()
        templates = await get_user_tasks(user_id)
        instances = await _list_instances_for_templates([template.id for template in templates])
        titles = {template.id: template.title for template in templates}
        return derive_notifications(
            instances,
            now,
            window=timedelta(hours=settings.due_soon_window_hours),
            titles=titles,
        )


async def change_status(
    *,
    instance_id: str,
    requested_status: TaskStatus | str,
    actor: Actor,
    comment: str | None = None,
    expected_version: int | None = None,
) -> TransitionResult:
    """Move an instance to a new status and write its audit trail atomically.

    Reading, validating, the compare-and-set update, and the log rows all
    happen in one transaction; nothing is persisted unless every step succeeds.

    Args:
        instance_id: Instance to change
        requested_status: Target status
        actor: Who is making the change
        comment: Optional comment stored on the log rows
        expected_version: Version the caller last saw; a mismatch is a conflict

    Returns:
        The updated instance with the audit rows written

    Raises:
        NotFoundError: If the instance does not exist
        PermissionError: If the actor is not a participant or admin/manager
        ValidationError: Unknown status, no-op, or disallowed transition
        ConflictError: Stale expected_version or a lost compare-and-set
        WriteError: If a write fails (the transaction is rolled back)
    """
    with span("task_service.change_status"):
        _ensure_record_id(instance_id, "Task instance")
        try:
            async with db_client.transaction() as tx:
                with write_stage("read_instance"):
                    try:
                        record = await tx.get_record(collection="task_instances", record_id=instance_id)
                    except db_client.RecordNotFoundError as e:
                        raise NotFoundError(f"Task instance not found: {instance_id}") from e
                    instance = TaskInstance(**record)

                if expected_version is not None and expected_version != instance.version:
                    msg = (
                        f"Task instance {instance_id} was modified concurrently "
                        f"(expected version {expected_version}, found {instance.version})"
                    )
                    raise ConflictError(msg, current_version=instance.version)

                with write_stage("read_template"):
                    try:
                        template_record = await tx.get_record(collection="tasks", record_id=instance.task_template_id)
                    except db_client.RecordNotFoundError as e:
                        raise NotFoundError(f"Task template not found: {instance.task_template_id}") from e
                template = TaskTemplate(**template_record)
                if not can_work_on_template(template, actor):
                    msg = "Only task participants or an admin/manager can change this task's status"
                    raise PermissionError(msg)

                new_status = state_machine.validate_transition(instance.status, requested_status, actor)
                changed_at = _utcnow()

                with write_stage("update_status"):
                    updated = await tx.update_record(
                        collection="task_instances",
                        record_id=instance_id,
                        data={"status": new_status.value, "version": instance.version + 1, "updated_at": changed_at},
                        match={"version": instance.version},
                    )
                if updated == 0:
                    msg = f"Task instance {instance_id} was modified concurrently"
                    raise ConflictError(msg, current_version=None)

                with write_stage("audit_log"):
                    audit = await audit_log.record_transition(
                        tx,
                        instance_id=instance_id,
                        old_status=instance.status,
                        new_status=new_status,
                        actor_id=actor.user_id,
                        comment=comment,
                        changed_at=changed_at,
                    )
        except TimeoutError as e:
            raise WriteError(f"Timed out changing status of {instance_id}", stage="transaction") from e

        result = TransitionResult(
            instance=instance.model_copy(
                update={"status": new_status, "version": instance.version + 1, "updated_at": changed_at}
            ),
            old_status=instance.status,
            new_status=new_status,
            audit=audit,
        )
        log_with_user_context(
            logger,
            "info",
            "Changed task status",
            user_id=actor.user_id,
            instance_id=instance_id,
            old_status=instance.status.value,
            new_status=new_status.value,
            version=result.instance.version,
        )
        return result
