"""Session token verification and role gating for the HTTP interface.

The identity provider signs ``{"user_id": ...}`` with the shared secret key;
requests present it as ``Authorization: Bearer <token>`` or a ``session`` cookie.
"""

import logging
from collections.abc import Awaitable, Callable

from fastapi import Depends, HTTPException, Request, status
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from src.core.config import settings
from src.domain.user import Actor, UserRole
from src.modules.directory import service as directory_service


logger = logging.getLogger(__name__)

SESSION_COOKIE = "session"
_SALT = "racitrack-session"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(str(settings.secret_key), salt=_SALT)


def issue_session_token(user_id: str) -> str:
    """Sign a session token for ``user_id``."""
    return _serializer().dumps({"user_id": user_id})


def read_session_token(token: str) -> str | None:
    """Return the user id carried by a valid, unexpired token, else None."""
    try:
        data = _serializer().loads(token, max_age=settings.session_max_age_seconds)
    except (BadSignature, SignatureExpired):
        return None
    if not isinstance(data, dict) or not data.get("user_id"):
        return None
    return str(data["user_id"])


def _extract_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return request.cookies.get(SESSION_COOKIE)


async def get_current_actor(request: Request) -> Actor:
    """Resolve the acting user from the request's session token."""
    token = _extract_token(request)
    if not token:
        logger.warning("auth_missing_token", extra={"path": request.url.path})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    user_id = read_session_token(token)
    if user_id is None:
        logger.warning("auth_invalid_or_expired_token", extra={"path": request.url.path})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired session")

    return await directory_service.get_actor(user_id)


def require_roles(*roles: UserRole) -> Callable[..., Awaitable[Actor]]:
    """Dependency factory: the actor must hold at least one of ``roles``."""

    async def _dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not actor.has_any_role(roles):
            logger.warning(
                "auth_role_denied",
                extra={"user_id": actor.user_id, "required_roles": [role.value for role in roles]},
            )
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return actor

    return _dependency


def capabilities_for(actor: Actor) -> list[str]:
    """Navigation sections the actor may see."""
    sections = ["dashboard", "tasks", "instances", "notifications"]
    if actor.has_any_role([UserRole.ADMIN, UserRole.MANAGER]):
        sections += ["admin_dashboard", "teams", "sops"]
    if actor.is_admin:
        sections.append("users")
    return sections
