"""Tests for account deletion: dependents, applications and game storage rewrites."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from devwars.database import get_session
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
from devwars.users import repositories
from devwars.users.deletion import (
    DEMOTE_FIRST_MESSAGE,
    UserDeletionForbidden,
    UserNotFound,
    delete_user,
)
from devwars.users.roles import UserRole


async def _seed_dependents(db: AsyncSession, user: User) -> None:
    """Give ``user`` one row in every table it owns."""
    db.add_all([
        Activity(user_id=user.id, description="Won a game", coins=100, xp=50),
        UserProfile(user_id=user.id, first_name="Alice", skills={"html": 3}),
        UserStats(user_id=user.id, coins=100, xp=50),
        UserGameStats(user_id=user.id, wins=1, loses=0),
        EmailOptIn(user_id=user.id),
        LinkedAccount(user_id=user.id, provider="TWITCH", provider_id="tw-1", storage={}),
        PasswordReset(
            user_id=user.id,
            token="reset-token",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        ),
        EmailVerification(user_id=user.id, token="verify-token"),
    ])
    await db.commit()


async def _owned_counts(db: AsyncSession, user_id: int) -> dict[str, int]:
    return {repo.name: await repo.count_for_user(db, user_id) for repo in repositories.OWNED_RECORDS}


async def _user_exists(db: AsyncSession, user_id: int) -> bool:
    result = await db.execute(select(func.count()).select_from(User).where(User.id == user_id))
    return result.scalar_one() == 1


async def _application_count(db: AsyncSession, **criteria: object) -> int:
    query = select(func.count()).select_from(GameApplication)
    for column, value in criteria.items():
        query = query.where(getattr(GameApplication, column) == value)
    result = await db.execute(query)
    return result.scalar_one()


class TestRoleGate:
    @pytest.mark.parametrize("role", [UserRole.MODERATOR, UserRole.ADMIN])
    async def test_staff_cannot_be_deleted(self, db_session: AsyncSession, make_user, role):
        user = await make_user(role=role)
        await _seed_dependents(db_session, user)
        before = await _owned_counts(db_session, user.id)

        with pytest.raises(UserDeletionForbidden) as exc_info:
            await delete_user(db_session, user)

        assert exc_info.value.message == DEMOTE_FIRST_MESSAGE
        assert await _user_exists(db_session, user.id)
        assert await _owned_counts(db_session, user.id) == before

    @pytest.mark.parametrize("role", [UserRole.BANNED, UserRole.PENDING, UserRole.USER])
    async def test_non_staff_can_be_deleted(self, db_session: AsyncSession, make_user, role):
        user = await make_user(role=role)
        user_id = user.id

        assert await delete_user(db_session, user) == user_id
        assert not await _user_exists(db_session, user_id)


class TestDependents:
    async def test_all_owned_records_removed(self, db_session: AsyncSession, make_user):
        user = await make_user()
        user_id = user.id
        await _seed_dependents(db_session, user)
        assert all(count == 1 for count in (await _owned_counts(db_session, user_id)).values())

        deleted = await delete_user(db_session, user)

        assert deleted == user_id
        assert not await _user_exists(db_session, user_id)
        assert all(count == 0 for count in (await _owned_counts(db_session, user_id)).values())

    async def test_other_users_records_untouched(self, db_session: AsyncSession, make_user):
        user = await make_user()
        bystander = await make_user()
        await _seed_dependents(db_session, user)
        await _seed_dependents(db_session, bystander)

        await delete_user(db_session, user)

        assert await _user_exists(db_session, bystander.id)
        assert all(count == 1 for count in (await _owned_counts(db_session, bystander.id)).values())


class TestGameApplications:
    async def test_scheduled_application_removed_without_rewrite(
        self, db_session: AsyncSession, make_user, make_played_game
    ):
        user = await make_user()
        user_id = user.id
        storage = {"players": {}, "editors": {}, "meta": {"bets": {"blue": 1}}}
        schedule, game = await make_played_game(storage, status=GameStatus.SCHEDULED, applicants=[user])

        await delete_user(db_session, user)

        assert await _application_count(db_session, user_id=user_id) == 0
        assert await _application_count(db_session, schedule_id=schedule.id) == 0
        await db_session.refresh(game)
        assert game.storage == storage

    async def test_played_game_player_replaced_by_competitor(
        self, db_session: AsyncSession, make_user, make_played_game
    ):
        user = await make_user(username="alice")
        user_id = user.id
        other = await make_user(username="bob")
        storage = {
            "players": {
                str(user_id): {"id": user_id, "team": "blue", "username": "alice"},
                str(other.id): {"id": other.id, "team": "red", "username": "bob"},
            },
            "editors": {},
        }
        schedule, game = await make_played_game(storage, applicants=[user, other])

        await delete_user(db_session, user)

        await db_session.refresh(game)
        players = game.storage["players"]
        assert players["0"] == {"id": 0, "team": "blue", "username": "Competitor"}
        assert str(user_id) not in players
        assert players[str(other.id)] == {"id": other.id, "team": "red", "username": "bob"}
        assert await _application_count(db_session, schedule_id=schedule.id) == 1
        assert await _application_count(db_session, user_id=user_id) == 0

    async def test_played_game_editors_point_at_competitor(
        self, db_session: AsyncSession, make_user, make_played_game
    ):
        user = await make_user()
        user_id = user.id
        other = await make_user()
        storage = {
            "players": {str(user_id): {"id": user_id, "team": 0, "username": user.username}},
            "editors": {
                "0": {"id": 0, "team": 0, "player": user_id, "language": "html"},
                "1": {"id": 1, "team": 0, "player": user_id, "language": "css"},
                "3": {"id": 3, "team": 1, "player": other.id, "language": "html"},
            },
        }
        _, game = await make_played_game(storage, applicants=[user])

        await delete_user(db_session, user)

        await db_session.refresh(game)
        editors = game.storage["editors"]
        assert editors["0"] == {"id": 0, "team": 0, "player": 0, "language": "html"}
        assert editors["1"] == {"id": 1, "team": 0, "player": 0, "language": "css"}
        assert editors["3"] == {"id": 3, "team": 1, "player": other.id, "language": "html"}

    async def test_other_participants_left_as_stored(self, db_session: AsyncSession, make_user, make_played_game):
        user = await make_user()
        user_id = user.id
        bystanders = {"13": {"id": "13"}, "14": {"id": 14, "team": 1}}
        editors = {"2": {"id": 2, "language": "js"}}
        storage = {
            "players": {str(user_id): {"id": user_id, "team": 0, "username": user.username}, **bystanders},
            "editors": editors,
        }
        _, game = await make_played_game(storage, applicants=[user])

        await delete_user(db_session, user)

        await db_session.refresh(game)
        assert game.storage["players"] == {
            "0": {"id": 0, "team": 0, "username": "Competitor"},
            **bystanders,
        }
        assert game.storage["editors"] == editors

    async def test_competitor_slot_is_overwritten(self, db_session: AsyncSession, make_user, make_played_game):
        first = await make_user()
        second = await make_user()
        storage = {
            "players": {
                str(first.id): {"id": first.id, "team": 0, "username": first.username},
                str(second.id): {"id": second.id, "team": 1, "username": second.username},
            },
        }
        _, game = await make_played_game(storage, applicants=[first, second])

        await delete_user(db_session, first)
        await delete_user(db_session, second)

        await db_session.refresh(game)
        assert game.storage["players"] == {"0": {"id": 0, "team": 1, "username": "Competitor"}}

    async def test_schedule_without_game(self, db_session: AsyncSession, make_user):
        user = await make_user()
        user_id = user.id
        schedule = GameSchedule(start_time=datetime.now(timezone.utc), status=GameStatus.ENDED, setup={})
        db_session.add(schedule)
        await db_session.flush()
        db_session.add(GameApplication(user_id=user_id, schedule_id=schedule.id))
        await db_session.commit()

        await delete_user(db_session, user)

        assert await _application_count(db_session, schedule_id=schedule.id) == 0
        assert not await _user_exists(db_session, user_id)

    async def test_storage_without_player_maps(self, db_session: AsyncSession, make_user, make_played_game):
        user = await make_user()
        _, game = await make_played_game({"mode": "Zen"}, status=GameStatus.ACTIVE, applicants=[user])

        await delete_user(db_session, user)

        await db_session.refresh(game)
        assert game.storage == {"mode": "Zen"}


class TestAtomicity:
    async def test_failure_rolls_everything_back(
        self, db_session: AsyncSession, make_user, make_played_game, monkeypatch
    ):
        user = await make_user()
        user_id = user.id
        await _seed_dependents(db_session, user)
        storage = {"players": {str(user_id): {"id": user_id, "team": 0, "username": "x"}}}
        _, game = await make_played_game(storage, applicants=[user])

        async def _broken_delete(db: AsyncSession, uid: int) -> int:
            msg = "connection lost"
            raise RuntimeError(msg)

        monkeypatch.setattr(repositories.users, "delete", _broken_delete)

        with pytest.raises(RuntimeError, match="connection lost"):
            await delete_user(db_session, user)

        assert await _user_exists(db_session, user_id)
        assert all(count == 1 for count in (await _owned_counts(db_session, user_id)).values())
        assert await _application_count(db_session, user_id=user_id) == 1
        await db_session.refresh(game)
        assert game.storage == storage

    async def test_malformed_storage_rolls_back(self, db_session: AsyncSession, make_user, make_played_game):
        user = await make_user()
        user_id = user.id
        await _seed_dependents(db_session, user)
        storage = {"players": {"blue": {"id": user_id}}}
        _, game = await make_played_game(storage, applicants=[user])

        with pytest.raises(ValidationError):
            await delete_user(db_session, user)

        assert await _user_exists(db_session, user_id)
        assert all(count == 1 for count in (await _owned_counts(db_session, user_id)).values())
        await db_session.refresh(game)
        assert game.storage == storage

    async def test_timeout_rolls_back(self, db_session: AsyncSession, make_user, make_played_game, monkeypatch):
        user = await make_user()
        user_id = user.id
        await _seed_dependents(db_session, user)
        await make_played_game({"players": {}}, applicants=[user])

        async def _stalled(db: AsyncSession, uid: int) -> list[GameApplication]:
            await asyncio.sleep(5)
            return []

        monkeypatch.setattr(repositories.game_applications, "list_for_user", _stalled)

        with pytest.raises(asyncio.TimeoutError):
            await delete_user(db_session, user, timeout=0.05)

        assert await _user_exists(db_session, user_id)
        assert all(count == 1 for count in (await _owned_counts(db_session, user_id)).values())

    async def test_deleting_twice_reports_not_found(self, db_session: AsyncSession, make_user):
        user = await make_user()
        await delete_user(db_session, user)

        with pytest.raises(UserNotFound):
            await delete_user(db_session, user)

    async def test_concurrent_deletions_are_independent(self, db_session: AsyncSession, make_user):
        first = await make_user()
        second = await make_user()
        await _seed_dependents(db_session, first)
        await _seed_dependents(db_session, second)
        ids = (first.id, second.id)

        async def _delete_in_own_session(user_id: int) -> int:
            sessions = get_session()
            session = await anext(sessions)
            try:
                user = (await session.execute(select(User).where(User.id == user_id))).scalar_one()
                return await delete_user(session, user)
            finally:
                await sessions.aclose()

        results = await asyncio.gather(*(_delete_in_own_session(uid) for uid in ids))

        assert sorted(results) == sorted(ids)
        for user_id in ids:
            assert not await _user_exists(db_session, user_id)
            assert all(count == 0 for count in (await _owned_counts(db_session, user_id)).values())
