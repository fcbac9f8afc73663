#!/usr/bin/env python3
"""Admin script to register users and issue session tokens.

Usage:
    python scripts/create_user.py <user_id> <name> [--role admin|manager|team_member ...]
    python scripts/create_user.py <user_id> --token
    python scripts/create_user.py --list
"""

import asyncio
import logging
import sys

from src.core.db_client import close_connection, init_db
from src.core.errors import ValidationError
from src.domain.create_models import UserProfileCreate
from src.domain.user import UserRole
from src.interface.auth import issue_session_token
from src.modules.directory import service as directory_service


logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


async def list_users() -> None:
    """List all registered users with their roles."""
    for user in await directory_service.list_users():
        roles = ", ".join(role.value for role in user.roles) or "none"
        logger.info(f"{user.profile.user_id} - {user.profile.name} (roles: {roles})")


async def create_user(user_id: str, name: str, roles: list[UserRole]) -> None:
    """Register a user, or replace the roles of an existing one, and print a token.

    Args:
        user_id: Identity provider user id
        name: Display name
        roles: Roles to grant
    """
    try:
        await directory_service.register_user(UserProfileCreate(user_id=user_id, name=name, roles=roles))
    except ValidationError:
        await directory_service.set_user_roles(user_id, roles)
    logger.info(issue_session_token(user_id))


def print_usage() -> None:
    """Print usage information."""
    logger.info(__doc__)


def _parse_roles(args: list[str]) -> list[UserRole]:
    roles: list[UserRole] = []
    for index, arg in enumerate(args):
        if arg == "--role" and index + 1 < len(args):
            try:
                roles.append(UserRole(args[index + 1]))
            except ValueError:
                print_usage()
                sys.exit(1)
    return roles or [UserRole.TEAM_MEMBER]


async def main() -> None:
    """Main entry point."""
    args = sys.argv[1:]

    if not args or "--help" in args or "-h" in args:
        print_usage()
        return

    await init_db()
    try:
        if "--list" in args:
            await list_users()
        elif "--token" in args:
            logger.info(issue_session_token(args[0]))
        elif len(args) >= 2:
            await create_user(args[0], args[1], _parse_roles(args[2:]))
        else:
            print_usage()
            sys.exit(1)
    finally:
        await close_connection()


if __name__ == "__main__":
    asyncio.run(main())
