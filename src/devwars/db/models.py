"""ORM models for users, their dependent records and the game schedule graph.

Every record owned by a user references it through ``user_id``. Removal of a
user is orchestrated explicitly (see ``devwars.users.deletion``) and its foreign
keys carry no ON DELETE CASCADE.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devwars.db.base import Base
from devwars.users.roles import UserRole

JSONDocument = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GameStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"


class Sex(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(TimestampMixin, Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(256), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SAEnum(UserRole, native_enum=False, length=16), nullable=False, default=UserRole.PENDING
    )
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_sign_in: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    profile: Mapped[UserProfile | None] = relationship(
        "UserProfile", back_populates="user", uselist=False, passive_deletes=True
    )
    game_applications: Mapped[list[GameApplication]] = relationship(
        "GameApplication", back_populates="user", passive_deletes=True
    )


class UserProfile(TimestampMixin, Base):
    """Personal details shown on the user's profile page."""

    __tablename__ = "user_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    dob: Mapped[date | None] = mapped_column(Date, nullable=True)
    sex: Mapped[Sex | None] = mapped_column(SAEnum(Sex, native_enum=False, length=8), nullable=True)
    about: Mapped[str | None] = mapped_column(Text, nullable=True)
    for_hire: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    company: Mapped[str | None] = mapped_column(String(128), nullable=True)
    website_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    address_one: Mapped[str | None] = mapped_column(String(256), nullable=True)
    address_two: Mapped[str | None] = mapped_column(String(256), nullable=True)
    city: Mapped[str | None] = mapped_column(String(128), nullable=True)
    state: Mapped[str | None] = mapped_column(String(128), nullable=True)
    zip: Mapped[str | None] = mapped_column(String(32), nullable=True)
    country: Mapped[str | None] = mapped_column(String(128), nullable=True)
    skills: Mapped[dict[str, Any]] = mapped_column(JSONDocument, default=dict, nullable=False)

    user: Mapped[User] = relationship("User", back_populates="profile")


class UserStats(TimestampMixin, Base):
    """Coins, experience and level of a user."""

    __tablename__ = "user_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    coins: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    xp: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    twitch_id: Mapped[str | None] = mapped_column(String(64), nullable=True)


class UserGameStats(TimestampMixin, Base):
    """Win/loss record of a user."""

    __tablename__ = "user_game_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    wins: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    loses: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class Activity(TimestampMixin, Base):
    """Something a user did that earned (or cost) coins and experience."""

    __tablename__ = "activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    coins: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    xp: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class LinkedAccount(TimestampMixin, Base):
    """Third-party account (Twitch, Discord, ...) linked to a user."""

    __tablename__ = "linked_accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    provider: Mapped[str] = mapped_column(String(32), nullable=False)
    provider_id: Mapped[str] = mapped_column(String(128), nullable=False)
    username: Mapped[str | None] = mapped_column(String(128), nullable=True)
    storage: Mapped[dict[str, Any]] = mapped_column(JSONDocument, default=dict, nullable=False)


class PasswordReset(TimestampMixin, Base):
    """Outstanding password reset token."""

    __tablename__ = "password_resets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    token: Mapped[str] = mapped_column(String(128), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class EmailVerification(TimestampMixin, Base):
    """Outstanding email verification token."""

    __tablename__ = "email_verifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    token: Mapped[str] = mapped_column(String(128), nullable=False)


class EmailOptIn(TimestampMixin, Base):
    """Which kinds of email a user agreed to receive."""

    __tablename__ = "email_opt_ins"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    news: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    game_applications: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    schedules: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    linked_accounts: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


# ---------------------------------------------------------------------------
# Games
# ---------------------------------------------------------------------------


class Game(TimestampMixin, Base):
    """A played (or playing) game. ``storage`` embeds players and editors."""

    __tablename__ = "games"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    season: Mapped[int] = mapped_column(Integer, default=3, nullable=False)
    mode: Mapped[str] = mapped_column(String(32), default="Classic", nullable=False)
    status: Mapped[GameStatus] = mapped_column(
        SAEnum(GameStatus, native_enum=False, length=16), default=GameStatus.SCHEDULED, nullable=False
    )
    storage: Mapped[dict[str, Any]] = mapped_column(JSONDocument, default=dict, nullable=False)

    schedule: Mapped[GameSchedule | None] = relationship("GameSchedule", back_populates="game", uselist=False)


class GameSchedule(TimestampMixin, Base):
    """A slot on the event calendar, optionally bound to the game played in it."""

    __tablename__ = "game_schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[GameStatus] = mapped_column(
        SAEnum(GameStatus, native_enum=False, length=16), default=GameStatus.SCHEDULED, nullable=False
    )
    setup: Mapped[dict[str, Any]] = mapped_column(JSONDocument, default=dict, nullable=False)
    game_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("games.id"), unique=True, nullable=True)

    game: Mapped[Game | None] = relationship("Game", back_populates="schedule")
    applications: Mapped[list[GameApplication]] = relationship("GameApplication", back_populates="schedule")


class GameApplication(TimestampMixin, Base):
    """A user's application to play in a scheduled game."""

    __tablename__ = "game_applications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    schedule_id: Mapped[int] = mapped_column(Integer, ForeignKey("game_schedules.id"), nullable=False, index=True)

    user: Mapped[User | None] = relationship("User", back_populates="game_applications")
    schedule: Mapped[GameSchedule] = relationship("GameSchedule", back_populates="applications")
