"""Directory service for user profiles, roles, teams, and SOPs."""

import logging
from collections import Counter
from datetime import UTC, datetime
from typing import Any

from src.core import db_client
from src.core.db_client import sanitize_param
from src.core.errors import NotFoundError, ValidationError
from src.core.logging import span
from src.domain.create_models import SopCreate, TeamCreate, UserProfileCreate
from src.domain.team import Sop, Team
from src.domain.update_models import TeamUpdate, UserProfileUpdate
from src.domain.user import Actor, UserProfile, UserRole
from src.models.service_models import TeamWithMemberCount, UserWithRoles


logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(UTC).isoformat()


async def _role_ids() -> dict[str, str]:
    """Map role name to role row id."""
    records = await db_client.list_all_records(collection="roles")
    return {record["name"]: record["id"] for record in records}


async def _get_profile_record(user_id: str) -> dict[str, Any]:
    record = await db_client.get_first_record(
        collection="user_profiles",
        filter_query=f'user_id = "{sanitize_param(user_id)}"',
    )
    if record is None:
        raise NotFoundError(f"User not found: {user_id}")
    return record


async def register_user(data: UserProfileCreate) -> UserWithRoles:
    """Create a user profile and grant its initial roles.

    Args:
        data: Profile fields; roles default to team_member

    Returns:
        The created profile with its roles

    Raises:
        ValidationError: If a profile already exists for the user id
    """
    with span("directory_service.register_user"):
        existing = await db_client.get_first_record(
            collection="user_profiles",
            filter_query=f'user_id = "{sanitize_param(data.user_id)}"',
        )
        if existing is not None:
            msg = f"User {data.user_id} is already registered"
            raise ValidationError(msg)

        role_ids = await _role_ids()
        async with db_client.transaction() as tx:
            record = await tx.create_record(
                collection="user_profiles",
                data={"user_id": data.user_id, "name": data.name, "team_id": data.team_id, "is_active": True},
            )
            for role in dict.fromkeys(data.roles):
                await tx.create_record(
                    collection="user_roles",
                    data={"user_id": data.user_id, "role_id": role_ids[role], "assigned_at": _now()},
                )

        logger.info("Registered user", extra={"user_id": data.user_id, "roles": [str(r) for r in data.roles]})
        return UserWithRoles(profile=UserProfile(**record), roles=list(dict.fromkeys(data.roles)))


async def get_user_profile(user_id: str) -> UserProfile:
    """Get a user's profile by identity provider id."""
    return UserProfile(**await _get_profile_record(user_id))


async def get_user_roles(user_id: str) -> list[UserRole]:
    """Get the roles granted to a user (empty if none)."""
    grants = await db_client.list_all_records(
        collection="user_roles",
        filter_query=f'user_id = "{sanitize_param(user_id)}"',
    )
    names_by_id = {role_id: name for name, role_id in (await _role_ids()).items()}
    return [UserRole(names_by_id[grant["role_id"]]) for grant in grants if grant["role_id"] in names_by_id]


async def get_actor(user_id: str) -> Actor:
    """Build the acting-user context for a user id.

    Unregistered users get an actor with no roles.
    """
    try:
        profile = await get_user_profile(user_id)
    except NotFoundError:
        return Actor(user_id=user_id)
    roles = await get_user_roles(user_id)
    return Actor(user_id=user_id, name=profile.name, roles=frozenset(roles))


async def list_users() -> list[UserWithRoles]:
    """List all user profiles with their roles."""
    with span("directory_service.list_users"):
        profiles = await db_client.list_all_records(collection="user_profiles", sort="name")
        grants = await db_client.list_all_records(collection="user_roles")
        names_by_id = {role_id: name for name, role_id in (await _role_ids()).items()}

        roles_by_user: dict[str, list[UserRole]] = {}
        for grant in grants:
            if grant["role_id"] in names_by_id:
                roles_by_user.setdefault(grant["user_id"], []).append(UserRole(names_by_id[grant["role_id"]]))

        return [
            UserWithRoles(profile=UserProfile(**profile), roles=roles_by_user.get(profile["user_id"], []))
            for profile in profiles
        ]


async def update_user_profile(user_id: str, updates: UserProfileUpdate) -> UserProfile:
    """Update a user's profile fields."""
    with span("directory_service.update_user_profile"):
        record = await _get_profile_record(user_id)
        data = updates.model_dump(exclude_unset=True)
        if not data:
            return UserProfile(**record)
        data["updated_at"] = _now()
        updated = await db_client.update_record(collection="user_profiles", record_id=record["id"], data=data)
        logger.info("Updated user profile", extra={"user_id": user_id, "fields": list(data)})
        return UserProfile(**updated)


async def assign_role(user_id: str, role: UserRole) -> list[UserRole]:
    """Grant one role to a user (no-op if already granted). Returns the user's roles."""
    with span("directory_service.assign_role"):
        await _get_profile_record(user_id)
        current = await get_user_roles(user_id)
        if role not in current:
            role_ids = await _role_ids()
            await db_client.create_record(
                collection="user_roles",
                data={"user_id": user_id, "role_id": role_ids[role], "assigned_at": _now()},
            )
            logger.info("Assigned role", extra={"user_id": user_id, "role": str(role)})
        return await get_user_roles(user_id)


async def set_user_roles(user_id: str, roles: list[UserRole]) -> list[UserRole]:
    """Replace a user's roles with exactly ``roles``."""
    with span("directory_service.set_user_roles"):
        await _get_profile_record(user_id)
        role_ids = await _role_ids()
        wanted = list(dict.fromkeys(roles))
        async with db_client.transaction() as tx:
            grants = await tx.list_records(
                collection="user_roles", filter_query=f'user_id = "{sanitize_param(user_id)}"'
            )
            for grant in grants:
                await tx.delete_record(collection="user_roles", record_id=grant["id"])
            for role in wanted:
                await tx.create_record(
                    collection="user_roles",
                    data={"user_id": user_id, "role_id": role_ids[role], "assigned_at": _now()},
                )
        logger.info("Replaced user roles", extra={"user_id": user_id, "roles": [str(r) for r in wanted]})
        return wanted


async def list_teams() -> list[TeamWithMemberCount]:
    """List teams with the number of profiles assigned to each."""
    with span("directory_service.list_teams"):
        teams = await db_client.list_all_records(collection="teams", sort="name")
        profiles = await db_client.list_all_records(collection="user_profiles")
        counts = Counter(profile["team_id"] for profile in profiles if profile.get("team_id"))
        return [TeamWithMemberCount(team=Team(**team), member_count=counts.get(team["id"], 0)) for team in teams]


async def create_team(data: TeamCreate, actor: Actor) -> Team:
    """Create a team."""
    with span("directory_service.create_team"):
        record = await db_client.create_record(collection="teams", data=data.model_dump())
        logger.info("Created team", extra={"team_id": record["id"], "user_id": actor.user_id})
        return Team(**record)


async def update_team(team_id: str, updates: TeamUpdate, actor: Actor) -> Team:
    """Update a team's name or manager."""
    with span("directory_service.update_team"):
        data = updates.model_dump(exclude_unset=True)
        try:
            if not data:
                return Team(**await db_client.get_record(collection="teams", record_id=team_id))
            data["updated_at"] = _now()
            record = await db_client.update_record(collection="teams", record_id=team_id, data=data)
        except db_client.RecordNotFoundError as e:
            raise NotFoundError(f"Team not found: {team_id}") from e
        logger.info("Updated team", extra={"team_id": team_id, "user_id": actor.user_id})
        return Team(**record)


async def list_sops() -> list[Sop]:
    """List all SOPs by title."""
    records = await db_client.list_all_records(collection="sops", sort="title")
    return [Sop(**record) for record in records]


async def create_sop(data: SopCreate, actor: Actor) -> Sop:
    """Create an SOP reference."""
    with span("directory_service.create_sop"):
        record = await db_client.create_record(collection="sops", data=data.model_dump())
        logger.info("Created SOP", extra={"sop_id": record["id"], "user_id": actor.user_id})
        return Sop(**record)
