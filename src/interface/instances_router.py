"""HTTP routes for task instances, status changes, and notifications."""

import logging

from fastapi import APIRouter, Depends, status

from src.domain.create_models import TaskInstanceCreate
from src.domain.notification import Notification
from src.domain.task import TaskInstance, TaskStatus
from src.domain.update_models import StatusChangeRequest
from src.domain.user import Actor
from src.interface.auth import get_current_actor
from src.models.service_models import InstanceDetail, TransitionResult
from src.modules.tasks import service
from src.modules.tasks.state_machine import parse_status


logger = logging.getLogger(__name__)

router = APIRouter(tags=["instances"])


@router.get("/instances")
async def list_instances(
    status_filter: str | None = None,
    _actor: Actor = Depends(get_current_actor),
) -> list[TaskInstance]:
    """List all instances, optionally filtered by ``status_filter``."""
    wanted: TaskStatus | None = parse_status(status_filter) if status_filter else None
    return await service.list_instances(wanted)


@router.get("/instances/mine")
async def list_my_instances(actor: Actor = Depends(get_current_actor)) -> list[TaskInstance]:
    """List instances of the caller's templates."""
    return await service.get_user_instances(actor.user_id)


@router.get("/instances/today")
async def list_today_instances(actor: Actor = Depends(get_current_actor)) -> list[TaskInstance]:
    """List the caller's instances due today (UTC)."""
    return await service.get_today_instances(actor.user_id)


@router.post("/instances", status_code=status.HTTP_201_CREATED)
async def create_instance(data: TaskInstanceCreate, actor: Actor = Depends(get_current_actor)) -> TaskInstance:
    """Create an instance of a task template."""
    return await service.create_instance(data, actor)


@router.get("/instances/{instance_id}")
async def get_instance(instance_id: str, _actor: Actor = Depends(get_current_actor)) -> InstanceDetail:
    """Get an instance with its template, status history, and outcome."""
    return await service.get_instance_detail(instance_id)


@router.post("/instances/{instance_id}/status")
async def change_status(
    instance_id: str,
    request: StatusChangeRequest,
    actor: Actor = Depends(get_current_actor),
) -> TransitionResult:
    """Change an instance's status and record it in the audit log."""
    return await service.change_status(
        instance_id=instance_id,
        requested_status=request.status,
        actor=actor,
        comment=request.comment,
        expected_version=request.expected_version,
    )


@router.get("/notifications")
async def list_notifications(actor: Actor = Depends(get_current_actor)) -> list[Notification]:
    """Due-soon and overdue alerts for the caller's instances."""
    return await service.get_user_notifications(actor.user_id)
