import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from marketplace.core.errors import AccountBlocked, Unauthorized
from marketplace.domain.actors import AccountStatus, Actor
from marketplace.models.user import User

log = logging.getLogger("marketplace.security")

bearer_scheme = HTTPBearer(auto_error=False)


async def resolve_actor(token: Optional[str]) -> Actor:
    """Maps a bearer credential to the verified (id, role) of an active user."""
    if not token:
        raise Unauthorized("No token provided")

    user = await User.get_or_none(api_token=token)
    if not user:
        raise Unauthorized("Invalid or expired token")

    if user.status in (AccountStatus.INACTIVE, AccountStatus.BLOCKED):
        log.info(f"Rejected blocked/inactive user {user.id}")
        raise AccountBlocked("Your account is blocked")

    return Actor(id=user.id, role=user.role)


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Actor:
    """FastAPI dependency guarding every order and pickup route."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthorized("Invalid authorization header format")
    return await resolve_actor(credentials.credentials)
