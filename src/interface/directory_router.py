"""HTTP routes for users, roles, teams, and SOPs."""

from fastapi import APIRouter, Depends, status

from src.domain.create_models import SopCreate, TeamCreate, UserProfileCreate
from src.domain.team import Sop, Team
from src.domain.update_models import RoleAssignment, TeamUpdate, UserProfileUpdate
from src.domain.user import Actor, UserProfile, UserRole
from src.interface.auth import get_current_actor, require_roles
from src.models.service_models import TeamWithMemberCount, UserWithRoles
from src.modules.directory import service


router = APIRouter(tags=["directory"])

_require_admin = require_roles(UserRole.ADMIN)
_require_team_manager = require_roles(UserRole.ADMIN, UserRole.MANAGER)


@router.get("/teams")
async def list_teams(_actor: Actor = Depends(get_current_actor)) -> list[TeamWithMemberCount]:
    """List teams with member counts."""
    return await service.list_teams()


@router.post("/teams", status_code=status.HTTP_201_CREATED)
async def create_team(data: TeamCreate, actor: Actor = Depends(_require_team_manager)) -> Team:
    """Create a team (admin or manager)."""
    return await service.create_team(data, actor)


@router.patch("/teams/{team_id}")
async def update_team(team_id: str, updates: TeamUpdate, actor: Actor = Depends(_require_team_manager)) -> Team:
    """Update a team (admin or manager)."""
    return await service.update_team(team_id, updates, actor)


@router.get("/sops")
async def list_sops(_actor: Actor = Depends(get_current_actor)) -> list[Sop]:
    """List SOPs."""
    return await service.list_sops()


@router.post("/sops", status_code=status.HTTP_201_CREATED)
async def create_sop(data: SopCreate, actor: Actor = Depends(_require_team_manager)) -> Sop:
    """Create an SOP reference (admin or manager)."""
    return await service.create_sop(data, actor)


@router.get("/users")
async def list_users(_actor: Actor = Depends(_require_team_manager)) -> list[UserWithRoles]:
    """List users with their roles (admin or manager)."""
    return await service.list_users()


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def register_user(data: UserProfileCreate, _actor: Actor = Depends(_require_admin)) -> UserWithRoles:
    """Register a user profile (admin only)."""
    return await service.register_user(data)


@router.patch("/users/{user_id}")
async def update_user(
    user_id: str,
    updates: UserProfileUpdate,
    _actor: Actor = Depends(_require_admin),
) -> UserProfile:
    """Update a user profile (admin only)."""
    return await service.update_user_profile(user_id, updates)


@router.post("/users/{user_id}/roles")
async def set_user_roles(
    user_id: str,
    assignment: RoleAssignment,
    _actor: Actor = Depends(_require_admin),
) -> list[UserRole]:
    """Replace a user's roles (admin only)."""
    return await service.set_user_roles(user_id, assignment.roles)


@router.put("/users/{user_id}/roles/{role}")
async def grant_user_role(user_id: str, role: UserRole, _actor: Actor = Depends(_require_admin)) -> list[UserRole]:
    """Grant one role to a user, keeping the others (admin only)."""
    return await service.assign_role(user_id, role)
