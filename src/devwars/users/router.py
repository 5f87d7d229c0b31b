"""User management router for all /users/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from devwars.auth.dependencies import get_bound_user, require_owner_or_role, require_role
from devwars.database import get_session
from devwars.db.models import User
from devwars.users.deletion import UserDeletionForbidden, UserNotFound, delete_user
from devwars.users.roles import UserRole
from devwars.users.schemas import (
    ProfileResponse,
    ProfileUpdateRequest,
    PublicUserResponse,
    UserDeletedResponse,
    UserLookupResponse,
    UserResponse,
    UserUpdateRequest,
)
from devwars.users.service import (
    UsernameTakenError,
    get_profile,
    list_users,
    lookup_users,
    update_profile,
    update_user,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/users", tags=["Users"])


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@router.get("/lookup", response_model=list[UserLookupResponse])
async def lookup_endpoint(
    username: str | None = Query(None),
    limit: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
) -> list[UserLookupResponse]:
    """Look up users by a partial or full username (at most 50)."""
    try:
        users = await lookup_users(db, username, limit)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return [UserLookupResponse(id=u.id, username=u.username) for u in users]


@router.get("", response_model=list[UserResponse])
async def list_endpoint(
    limit: str | None = Query(None),
    offset: str | None = Query(None),
    _staff: User = Depends(require_role(UserRole.MODERATOR)),
    db: AsyncSession = Depends(get_session),
) -> list[UserResponse]:
    """Page through all users (moderators and up)."""
    users = await list_users(db, limit=limit, offset=offset)
    return [UserResponse.model_validate(u) for u in users]


@router.get("/{user_id}", response_model=PublicUserResponse)
async def show_endpoint(
    bound: User = Depends(get_bound_user),
) -> PublicUserResponse:
    """Public information about a user."""
    return PublicUserResponse.model_validate(bound)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_endpoint(
    body: UserUpdateRequest,
    caller: User = Depends(require_owner_or_role(UserRole.MODERATOR)),
    bound: User = Depends(get_bound_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Update a user (the user themselves or moderators and up). Only admins change roles."""
    if body.role is not None and body.role != bound.role and not caller.role.at_least(UserRole.ADMIN):
        raise HTTPException(status_code=403, detail="Only administrators can change roles")

    try:
        user = await update_user(
            db,
            bound,
            username=body.username,
            email=body.email,
            password=body.password,
            role=body.role,
            last_sign_in=body.last_sign_in,
        )
    except UsernameTakenError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    await db.commit()
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", response_model=UserDeletedResponse)
async def delete_endpoint(
    caller: User = Depends(require_owner_or_role(UserRole.ADMIN)),
    bound: User = Depends(get_bound_user),
    db: AsyncSession = Depends(get_session),
) -> UserDeletedResponse:
    """Delete a user and everything that depends on it (the user themselves or admins)."""
    try:
        user_id = await delete_user(db, bound)
    except UserDeletionForbidden as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    except UserNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    logger.info("user_deleted_by", user_id=user_id, caller_id=caller.id)
    return UserDeletedResponse(user=user_id)


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@router.get("/{user_id}/profile", response_model=ProfileResponse)
async def get_profile_endpoint(
    _caller: User = Depends(require_owner_or_role(UserRole.MODERATOR)),
    bound: User = Depends(get_bound_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Get a user's profile."""
    profile = await get_profile(db, bound.id)
    await db.commit()
    return ProfileResponse.model_validate(profile)


@router.patch("/{user_id}/profile", response_model=ProfileResponse)
async def update_profile_endpoint(
    body: ProfileUpdateRequest,
    _caller: User = Depends(require_owner_or_role(UserRole.ADMIN)),
    bound: User = Depends(get_bound_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Partially update a user's profile (the user themselves or admins)."""
    profile = await update_profile(db, bound.id, body.model_dump(exclude_unset=True))
    await db.commit()
    return ProfileResponse.model_validate(profile)
