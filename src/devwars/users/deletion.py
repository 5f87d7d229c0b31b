"""Account deletion.

Deleting a user removes every record that only exists for that user, drops
applications to games that have not been played yet, and scrubs the user out
of the players and editors of games that have been played. The played games
themselves are kept: the user is replaced there by the anonymous Competitor.

The whole operation runs in one transaction; either all of it is visible
afterwards or none of it is.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from devwars.config import get_settings
from devwars.database import transaction
from devwars.games.storage import GameStorage
from devwars.users import repositories
from devwars.users.roles import can_be_deleted

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from devwars.db.models import GameApplication, User

logger = structlog.get_logger()

DEMOTE_FIRST_MESSAGE = (
    "Users with roles moderator or higher cannot be deleted, ensure to demote the user first."
)


class UserDeletionError(Exception):
    """Base class for account deletion failures."""


class UserDeletionForbidden(UserDeletionError):
    """The user's role protects it from deletion."""

    def __init__(self, message: str = DEMOTE_FIRST_MESSAGE) -> None:
        super().__init__(message)
        self.message = message


class UserNotFound(UserDeletionError):
    """The user no longer exists (for example a concurrent deletion won)."""


def check_deletable(user: User) -> None:
    """
    Raise if ``user`` may not be deleted.

    Raises:
        UserDeletionForbidden: If the role is moderator or higher.
    """
    if not can_be_deleted(user.role):
        raise UserDeletionForbidden


async def delete_user(db: AsyncSession, user: User, *, timeout: float | None = None) -> int:
    """
    Delete ``user`` and everything that depends on it.

    Args:
        db: Session the whole deletion runs in. Its current transaction is
            committed on success and rolled back on any failure.
        user: The user to delete.
        timeout: Seconds before the deletion is abandoned and rolled back.
            Defaults to ``DW_DELETION_TIMEOUT_SECONDS``.

    Returns:
        The id of the deleted user.

    Raises:
        UserDeletionForbidden: If the user's role protects it from deletion.
            Nothing is modified.
        UserNotFound: If the user row is gone by the time it is locked.
        asyncio.TimeoutError: If the deletion ran past ``timeout``.
    """
    user_id = user.id
    try:
        check_deletable(user)
    except UserDeletionForbidden:
        logger.info("user_deletion_rejected", user_id=user_id, role=user.role.value)
        raise

    if timeout is None:
        timeout = get_settings().deletion_timeout_seconds

    logger.info("user_deletion_started", user_id=user_id)
    async with transaction(db):
        await asyncio.wait_for(_delete_user(db, user_id), timeout=timeout)

    logger.info("user_deleted", user_id=user_id)
    return user_id


async def _delete_user(db: AsyncSession, user_id: int) -> None:
    locked = await repositories.users.lock(db, user_id)
    if locked is None:
        msg = f"User {user_id} does not exist"
        raise UserNotFound(msg)
    # The role may have changed since the caller loaded the user.
    check_deletable(locked)

    for repository in repositories.OWNED_RECORDS:
        removed = await repository.delete_for_user(db, user_id)
        logger.debug("user_dependents_removed", user_id=user_id, records=repository.name, count=removed)

    # Nothing public remains of a game that has not been played yet.
    removed = await repositories.game_applications.delete_scheduled_for_user(db, user_id)
    logger.debug("user_dependents_removed", user_id=user_id, records="scheduled_applications", count=removed)

    for application in await repositories.game_applications.list_for_user(db, user_id):
        await _retire_application(db, application, user_id)

    await db.flush()
    await repositories.users.delete(db, user_id)


async def _retire_application(db: AsyncSession, application: GameApplication, user_id: int) -> None:
    """Anonymize ``user_id`` in the played game of ``application``, then drop it."""
    application.user_id = None

    game = application.schedule.game if application.schedule is not None else None
    if game is not None:
        storage = GameStorage.from_document(game.storage)
        if storage.anonymize_user(user_id):
            game.storage = storage.to_document()
            logger.info(
                "game_storage_anonymized",
                user_id=user_id,
                game_id=game.id,
                schedule_id=application.schedule_id,
            )

    await db.delete(application)
