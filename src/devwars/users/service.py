"""User management business logic."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, select

from devwars.auth.password import hash_password
from devwars.config import get_settings
from devwars.db.models import User, UserProfile
from devwars.users.roles import UserRole

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


class UsernameTakenError(ValueError):
    """Raised when a username already belongs to another user."""


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    """Fetch a user by username (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.username) == username.lower()))
    return result.scalar_one_or_none()


def _clamp_int(value: Any, default: int, minimum: int, maximum: int | None = None) -> int:  # noqa: ANN401
    """Parse ``value`` as an int, falling back to ``default`` and clamping to the range."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if number < minimum:
        return minimum
    if maximum is not None and number > maximum:
        return maximum
    return number


def _whole_number(value: Any) -> int | None:  # noqa: ANN401
    """``value`` as an int when it denotes a whole number ("2", "2.0", 2), else None."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not number.is_integer():
        return None
    return int(number)


async def lookup_users(db: AsyncSession, username: str | None, limit: Any = None) -> list[User]:  # noqa: ANN401
    """
    Find users whose username contains ``username``.

    Whitespace is stripped from the search term. A missing limit, one that is
    not a whole number ("2.0" counts as 2), or one outside 1..50 falls back to
    the maximum.

    Raises:
        ValueError: If the search term is empty.
    """
    max_limit = get_settings().lookup_max_limit
    term = "".join((username or "").split())
    if not term:
        msg = "The specified username within the query must not be empty."
        raise ValueError(msg)

    count = _whole_number(limit)
    if count is None or count > max_limit or count < 1:
        count = max_limit

    result = await db.execute(
        select(User)
        .where(func.lower(User.username).contains(term.lower(), autoescape=True))
        .order_by(User.username)
        .limit(count)
    )
    return list(result.scalars().all())


async def list_users(db: AsyncSession, limit: Any = None, offset: Any = None) -> list[User]:  # noqa: ANN401
    """Page through all users, most recently updated first."""
    settings = get_settings()
    limit = _clamp_int(limit, settings.list_default_limit, 1, settings.list_max_limit)
    offset = _clamp_int(offset, 0, 0)

    result = await db.execute(
        select(User).order_by(User.updated_at.desc(), User.id.desc()).limit(limit).offset(offset)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


async def update_user(
    db: AsyncSession,
    user: User,
    username: str | None = None,
    email: str | None = None,
    password: str | None = None,
    role: UserRole | None = None,
    last_sign_in: datetime | None = None,
) -> User:
    """
    Update user fields. A new password is hashed before it is stored.

    Raises:
        UsernameTakenError: If the username belongs to another user.
    """
    if username is not None:
        existing = await get_user_by_username(db, username)
        if existing is not None and existing.id != user.id:
            msg = "The provided username already exists for a registered user."
            raise UsernameTakenError(msg)
        user.username = username

    if email is not None:
        user.email = email
    if password is not None:
        user.password = hash_password(password)
    if role is not None and role != user.role:
        logger.info("user_role_changed", user_id=user.id, previous=user.role.value, new=role.value)
        user.role = role
    if last_sign_in is not None:
        user.last_sign_in = last_sign_in

    await db.flush()
    return user


async def get_profile(db: AsyncSession, user_id: int) -> UserProfile:
    """Get a user's profile, creating an empty one if it doesn't exist."""
    result = await db.execute(select(UserProfile).where(UserProfile.user_id == user_id))
    profile = result.scalar_one_or_none()

    if profile is None:
        profile = UserProfile(user_id=user_id, skills={}, for_hire=False)
        db.add(profile)
        await db.flush()

    return profile


async def update_profile(db: AsyncSession, user_id: int, changes: dict[str, Any]) -> UserProfile:
    """
    Apply a partial update to a user's profile.

    ``skills`` is merged key by key; every other field is replaced.
    """
    profile = await get_profile(db, user_id)

    skills = changes.pop("skills", None)
    if skills is not None:
        merged = dict(profile.skills or {})
        merged.update(skills)
        profile.skills = merged

    for field, value in changes.items():
        setattr(profile, field, value)

    await db.flush()
    return profile
