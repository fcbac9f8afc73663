"""User domain models, roles, and the acting-user context."""

from collections.abc import Iterable
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


# Constants for validation
MAX_NAME_LENGTH = 100


class UserRole(StrEnum):
    """Role granted to a user."""

    ADMIN = "admin"
    MANAGER = "manager"
    TEAM_MEMBER = "team_member"


class UserProfile(BaseModel):
    """User profile data transfer object."""

    id: str = Field(..., description="Profile row ID")
    user_id: str = Field(..., description="External identity provider user ID")
    name: str = Field(..., description="Display name of the user")
    team_id: str | None = Field(default=None, description="Team the user belongs to")
    is_active: bool = Field(default=True, description="Whether the user can be assigned tasks")

    @field_validator("name")
    @classmethod
    def validate_name_usable(cls, v: str) -> str:
        """Validate name is non-empty and not too long."""
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be empty")
        if len(v) > MAX_NAME_LENGTH:
            raise ValueError(f"Name too long (max {MAX_NAME_LENGTH} characters)")
        return v


class Actor(BaseModel):
    """The user performing an operation, passed explicitly into every core call."""

    user_id: str
    name: str | None = None
    roles: frozenset[UserRole] = frozenset()

    @property
    def is_admin(self) -> bool:
        return UserRole.ADMIN in self.roles

    @property
    def is_manager(self) -> bool:
        return UserRole.MANAGER in self.roles

    def has_any_role(self, required_roles: Iterable[UserRole]) -> bool:
        return has_any_role(self.roles, required_roles)


def has_any_role(roles: Iterable[str], required_roles: Iterable[str]) -> bool:
    """Return True if ``roles`` grants any of ``required_roles``.

    An empty requirement is always satisfied.
    """
    required = set(required_roles)
    if not required:
        return True
    return not required.isdisjoint(roles)
