"""FastAPI authentication and user-binding dependencies."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import jwt
from fastapi import Depends, HTTPException, Path, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from devwars.auth.jwt import verify_token
from devwars.database import get_session
from devwars.db.models import User
from devwars.users.roles import UserRole
from devwars.users.service import get_user_by_id

_bearer = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Extract and verify the bearer JWT, return the acting User.

    Raises 401 on an invalid token or unknown user, 403 for banned users.
    """
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    user = await get_user_by_id(db, int(payload["sub"]))
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    if user.role == UserRole.BANNED:
        raise HTTPException(status_code=403, detail="Account is banned")
    return user


async def get_bound_user(
    user_id: int = Path(..., ge=1),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the ``{user_id}`` route parameter to a User, 404 if it does not exist."""
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="A user with the provided id does not exist")
    return user


def require_role(minimum: UserRole) -> Callable[..., Awaitable[User]]:
    """Dependency allowing callers whose role is at least ``minimum``."""

    async def _check(user: User = Depends(get_current_user)) -> User:
        if not user.role.at_least(minimum):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return _check


def require_owner_or_role(minimum: UserRole) -> Callable[..., Awaitable[User]]:
    """Dependency allowing the bound user themselves or callers with at least ``minimum``."""

    async def _check(
        user: User = Depends(get_current_user),
        bound: User = Depends(get_bound_user),
    ) -> User:
        if user.id != bound.id and not user.role.at_least(minimum):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return _check
