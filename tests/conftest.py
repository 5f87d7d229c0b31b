"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from devwars.auth.jwt import create_access_token
from devwars.config import get_settings
from devwars.database import close_db, get_engine, get_session, init_db
from devwars.db import models  # noqa: F401  (registers tables on the metadata)
from devwars.db.base import Base
from devwars.db.models import Game, GameApplication, GameSchedule, GameStatus, User
from devwars.main import create_app
from devwars.users.roles import UserRole

# Fixture users never sign in, so their password column holds an opaque placeholder.
TEST_PASSWORD_HASH = "$argon2id$placeholder"


@pytest.fixture(autouse=True)
def _test_settings(tmp_path, monkeypatch):
    """Point the app at a throwaway SQLite database and a known JWT secret."""
    monkeypatch.setenv("DW_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("DW_JWT_SECRET", "test-secret-0123456789abcdef0123456789abcdef")
    monkeypatch.setenv("DW_LOG_FORMAT", "console")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Initialize the engine and create the schema."""
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for test setup and assertions."""
    sessions = get_session()
    session = await anext(sessions)
    yield session
    await sessions.aclose()


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP test client against the initialized database."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory creating and committing a user."""
    counter = {"n": 0}

    async def _make_user(role: UserRole = UserRole.USER, username: str | None = None, **fields: Any) -> User:  # noqa: ANN401
        counter["n"] += 1
        name = username or f"{role.value.lower()}-{counter['n']}"
        user = User(
            username=name,
            email=f"{name}@example.com",
            password=TEST_PASSWORD_HASH,
            role=role,
            last_sign_in=datetime.now(timezone.utc),
            **fields,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_played_game(db_session: AsyncSession) -> Callable[..., Awaitable[tuple[GameSchedule, Game]]]:
    """Factory creating a schedule with its game and the given storage document."""

    async def _make(
        storage: dict[str, Any],
        status: GameStatus = GameStatus.ENDED,
        applicants: list[User] | None = None,
    ) -> tuple[GameSchedule, Game]:
        game = Game(title="Classic", status=status, storage=storage)
        schedule = GameSchedule(start_time=datetime.now(timezone.utc), status=status, setup={}, game=game)
        db_session.add_all([game, schedule])
        await db_session.flush()
        for user in applicants or []:
            db_session.add(GameApplication(user_id=user.id, schedule_id=schedule.id))
        await db_session.commit()
        return schedule, game

    return _make


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Build the bearer header for a user."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}

    return _headers
