"""HTTP routes for task templates."""

import logging

from fastapi import APIRouter, Depends, status

from src.domain.create_models import TaskTemplateCreate
from src.domain.task import TaskTemplate
from src.domain.update_models import TaskTemplateUpdate
from src.domain.user import Actor
from src.interface.auth import get_current_actor
from src.models.service_models import CreatedTask
from src.modules.tasks import service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(data: TaskTemplateCreate, actor: Actor = Depends(get_current_actor)) -> CreatedTask:
    """Create a task template (and its first instance for one-off tasks)."""
    return await service.create_task(data, actor)


@router.get("")
async def list_tasks(_actor: Actor = Depends(get_current_actor)) -> list[TaskTemplate]:
    """List active task templates."""
    return await service.list_tasks()


@router.get("/mine")
async def list_my_tasks(actor: Actor = Depends(get_current_actor)) -> list[TaskTemplate]:
    """List active templates the caller is primary, accountable, or backup on."""
    return await service.get_user_tasks(actor.user_id)


@router.get("/{task_id}")
async def get_task(task_id: str, _actor: Actor = Depends(get_current_actor)) -> TaskTemplate:
    """Get one task template."""
    return await service.get_task(task_id)


@router.patch("/{task_id}")
async def update_task(
    task_id: str,
    updates: TaskTemplateUpdate,
    actor: Actor = Depends(get_current_actor),
) -> TaskTemplate:
    """Update a task template (creator, accountable user, or admin/manager)."""
    return await service.update_task(task_id, updates, actor)


@router.delete("/{task_id}")
async def deactivate_task(task_id: str, actor: Actor = Depends(get_current_actor)) -> TaskTemplate:
    """Deactivate a task template. Instances and logs are kept."""
    return await service.deactivate_task(task_id, actor)
