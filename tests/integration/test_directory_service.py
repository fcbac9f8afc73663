"""Integration tests for users, roles, teams, and SOPs."""

import pytest

from src.core.config import constants
from src.core.errors import NotFoundError, ValidationError
from src.domain.create_models import SopCreate, TeamCreate, UserProfileCreate
from src.domain.update_models import TeamUpdate, UserProfileUpdate
from src.domain.user import UserRole
from src.modules.directory import service


@pytest.mark.integration
async def test_register_user_defaults_to_team_member(db):
    registered = await service.register_user(UserProfileCreate(user_id="dave", name="  Dave  "))

    assert registered.profile.name == "Dave"
    assert registered.profile.is_active is True
    assert registered.roles == [UserRole.TEAM_MEMBER]
    assert await service.get_user_roles("dave") == [UserRole.TEAM_MEMBER]


@pytest.mark.integration
async def test_register_user_twice_is_rejected(actors):
    with pytest.raises(ValidationError, match="already registered"):
        await service.register_user(UserProfileCreate(user_id="alice", name="Alice Again"))


@pytest.mark.integration
async def test_get_actor(actors):
    admin = await service.get_actor("admin-1")
    assert admin.is_admin
    assert admin.name == "Ada Admin"

    stranger = await service.get_actor("nobody")
    assert stranger.roles == frozenset()
    assert not stranger.is_admin


@pytest.mark.integration
async def test_missing_profile(db):
    with pytest.raises(NotFoundError):
        await service.get_user_profile("nobody")


@pytest.mark.integration
async def test_assign_and_replace_roles(actors):
    roles = await service.assign_role("carol", UserRole.MANAGER)
    assert set(roles) == {UserRole.TEAM_MEMBER, UserRole.MANAGER}

    # Granting a role twice changes nothing
    assert set(await service.assign_role("carol", UserRole.MANAGER)) == set(roles)

    replaced = await service.set_user_roles("carol", [UserRole.ADMIN])
    assert replaced == [UserRole.ADMIN]
    assert await service.get_user_roles("carol") == [UserRole.ADMIN]
    assert (await service.get_actor("carol")).is_admin


@pytest.mark.integration
async def test_list_users_includes_roles(actors):
    users = {user.profile.user_id: user for user in await service.list_users()}

    assert set(users) == {"admin-1", "manager-1", "alice", "bob", "carol"}
    assert users["manager-1"].roles == [UserRole.MANAGER]


@pytest.mark.integration
async def test_update_user_profile(actors):
    profile = await service.update_user_profile("bob", UserProfileUpdate(is_active=False))

    assert profile.is_active is False
    with pytest.raises(NotFoundError):
        await service.update_user_profile("nobody", UserProfileUpdate(name="X"))


@pytest.mark.integration
async def test_teams_report_member_counts(actors):
    ops = await service.create_team(TeamCreate(name="Operations", manager_id="manager-1"), actors["manager-1"])
    finance = await service.create_team(TeamCreate(name="Finance"), actors["admin-1"])
    await service.update_user_profile("alice", UserProfileUpdate(team_id=ops.id))
    await service.update_user_profile("bob", UserProfileUpdate(team_id=ops.id))

    counts = {entry.team.name: entry.member_count for entry in await service.list_teams()}

    assert counts == {"Finance": 0, "Operations": 2}
    renamed = await service.update_team(finance.id, TeamUpdate(name="Accounting"), actors["admin-1"])
    assert renamed.name == "Accounting"


@pytest.mark.integration
async def test_update_missing_team(actors):
    with pytest.raises(NotFoundError):
        await service.update_team("999", TeamUpdate(name="Ghost"), actors["admin-1"])


@pytest.mark.integration
async def test_sops_are_listed_by_title(actors):
    await service.create_sop(SopCreate(title="Payroll", link="https://example.com/payroll"), actors["admin-1"])
    await service.create_sop(SopCreate(title="Audit", link="https://example.com/audit"), actors["manager-1"])

    assert [sop.title for sop in await service.list_sops()] == ["Audit", "Payroll"]


@pytest.mark.integration
async def test_directory_listings_read_past_one_page(actors, monkeypatch):
    monkeypatch.setattr(constants, "MAX_PER_PAGE_LIMIT", 2)
    for name in ["Alpha", "Beta", "Gamma", "Delta", "Epsilon"]:
        await service.create_team(TeamCreate(name=name), actors["admin-1"])
    await service.assign_role("carol", UserRole.MANAGER)

    users = {user.profile.user_id: user.roles for user in await service.list_users()}

    assert len(users) == 5
    assert set(users["carol"]) == {UserRole.TEAM_MEMBER, UserRole.MANAGER}
    assert len(await service.list_teams()) == 5
