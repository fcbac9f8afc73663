"""HTTP routes for dashboards."""

from fastapi import APIRouter, Depends

from src.domain.user import Actor, UserRole
from src.interface.auth import get_current_actor, require_roles
from src.models.service_models import AdminDashboard, PersonalDashboard
from src.modules.tasks import analytics


router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("")
async def personal_dashboard(actor: Actor = Depends(get_current_actor)) -> PersonalDashboard:
    """The caller's templates, instances, and today's work."""
    return await analytics.get_personal_dashboard(actor.user_id)


@router.get("/admin")
async def admin_dashboard(
    _actor: Actor = Depends(require_roles(UserRole.ADMIN, UserRole.MANAGER)),
) -> AdminDashboard:
    """Users, teams, and instance statistics for admins and managers."""
    return await analytics.get_admin_dashboard()
