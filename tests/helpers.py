"""Shared test data builders."""

from src.core import db_client
from src.domain.create_models import TaskTemplateCreate, UserProfileCreate
from src.domain.user import Actor, UserRole
from src.interface.auth import issue_session_token
from src.modules.directory import service as directory_service


# (user_id, name, roles)
TEST_USERS: list[tuple[str, str, list[UserRole]]] = [
    ("admin-1", "Ada Admin", [UserRole.ADMIN]),
    ("manager-1", "Max Manager", [UserRole.MANAGER]),
    ("alice", "Alice Primary", [UserRole.TEAM_MEMBER]),
    ("bob", "Bob Accountable", [UserRole.TEAM_MEMBER]),
    ("carol", "Carol Outsider", [UserRole.TEAM_MEMBER]),
]


async def seed_users() -> dict[str, Actor]:
    """Register the standard test users and return their actors."""
    for user_id, name, roles in TEST_USERS:
        await directory_service.register_user(UserProfileCreate(user_id=user_id, name=name, roles=roles))
    return {user_id: await directory_service.get_actor(user_id) for user_id, _, _ in TEST_USERS}


def make_template(**overrides: object) -> TaskTemplateCreate:
    """Build a one-off template with alice as primary and bob as accountable."""
    data: dict[str, object] = {
        "title": "Reconcile ledger",
        "primary_responsible_user_id": "alice",
        "accountable_user_id": "bob",
        "deadline_type": "days",
        "deadline_value": "3",
    }
    data.update(overrides)
    return TaskTemplateCreate(**data)


def auth_headers(user_id: str) -> dict[str, str]:
    """Bearer header carrying a session token for ``user_id``."""
    return {"Authorization": f"Bearer {issue_session_token(user_id)}"}


async def count_rows(collection: str, instance_id: str) -> int:
    """Count audit rows belonging to an instance."""
    records = await db_client.list_all_records(
        collection=collection,
        filter_query=f'task_instance_id = "{instance_id}"',
    )
    return len(records)
