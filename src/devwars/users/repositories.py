"""Repositories for records owned by a user.

Each repository removes the rows of one table that belong to a user. They all
work on the session they are handed, so several of them can run inside one
transaction (see ``devwars.database.transaction``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select
from sqlalchemy.orm import selectinload

from devwars.db.models import (
    Activity,
    EmailOptIn,
    EmailVerification,
    GameApplication,
    GameSchedule,
    GameStatus,
    LinkedAccount,
    PasswordReset,
    User,
    UserGameStats,
    UserProfile,
    UserStats,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from devwars.db.base import Base


@dataclass(frozen=True)
class OwnedRecordRepository:
    """Rows of ``model`` owned through its ``user_id`` column."""

    name: str
    model: type[Base]

    async def delete_for_user(self, db: AsyncSession, user_id: int) -> int:
        """Delete every row owned by ``user_id``. Returns the number removed."""
        result = await db.execute(
            delete(self.model)
            .where(self.model.user_id == user_id)  # type: ignore[attr-defined]
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def count_for_user(self, db: AsyncSession, user_id: int) -> int:
        """Count the rows owned by ``user_id``."""
        result = await db.execute(
            select(func.count())
            .select_from(self.model)
            .where(self.model.user_id == user_id)  # type: ignore[attr-defined]
        )
        return result.scalar_one()


activities = OwnedRecordRepository("activities", Activity)
profiles = OwnedRecordRepository("profiles", UserProfile)
email_opt_ins = OwnedRecordRepository("email_opt_ins", EmailOptIn)
stats = OwnedRecordRepository("stats", UserStats)
game_stats = OwnedRecordRepository("game_stats", UserGameStats)
linked_accounts = OwnedRecordRepository("linked_accounts", LinkedAccount)
password_resets = OwnedRecordRepository("password_resets", PasswordReset)
email_verifications = OwnedRecordRepository("email_verifications", EmailVerification)

# Records that only mean something while their user exists. No entry depends
# on another, so the order carries no meaning beyond being stable.
OWNED_RECORDS: tuple[OwnedRecordRepository, ...] = (
    activities,
    profiles,
    email_opt_ins,
    stats,
    game_stats,
    linked_accounts,
    password_resets,
    email_verifications,
)


class GameApplicationRepository:
    """Applications of a user, split by whether their game already happened."""

    async def delete_scheduled_for_user(self, db: AsyncSession, user_id: int) -> int:
        """Delete the user's applications to games that are still SCHEDULED."""
        scheduled = (
            select(GameSchedule.id)
            .where(GameSchedule.status == GameStatus.SCHEDULED)
            .scalar_subquery()
        )
        result = await db.execute(
            delete(GameApplication)
            .where(GameApplication.user_id == user_id)
            .where(GameApplication.schedule_id.in_(scheduled))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def list_for_user(self, db: AsyncSession, user_id: int) -> list[GameApplication]:
        """All of the user's applications with their schedule and game loaded."""
        result = await db.execute(
            select(GameApplication)
            .where(GameApplication.user_id == user_id)
            .options(selectinload(GameApplication.schedule).selectinload(GameSchedule.game))
            .order_by(GameApplication.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())


class UserRepository:
    """The user row itself."""

    async def lock(self, db: AsyncSession, user_id: int) -> User | None:
        """Re-read the user with a row lock held until the transaction ends."""
        result = await db.execute(
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def delete(self, db: AsyncSession, user_id: int) -> int:
        result = await db.execute(
            delete(User).where(User.id == user_id).execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


game_applications = GameApplicationRepository()
users = UserRepository()
