"""Initial schema: users, their dependent records and the game schedule graph.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-17
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSON_DOCUMENT = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _owner(*, unique: bool = False, nullable: bool = False) -> sa.Column:
    return sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), unique=unique, nullable=nullable)


def upgrade() -> None:
    """Create all tables."""
    # --- Users ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(64), nullable=False, unique=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("password", sa.String(256), nullable=False),
        sa.Column("role", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("last_sign_in", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "role IN ('BANNED', 'PENDING', 'USER', 'MODERATOR', 'ADMIN')",
            name="ck_users_role",
        ),
    )
    op.create_index("ix_users_updated_at", "users", ["updated_at"])

    # --- Records owned by a user ---
    op.create_table(
        "user_profiles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _owner(unique=True),
        sa.Column("first_name", sa.String(64), nullable=True),
        sa.Column("last_name", sa.String(64), nullable=True),
        sa.Column("dob", sa.Date(), nullable=True),
        sa.Column("sex", sa.String(8), nullable=True),
        sa.Column("about", sa.Text(), nullable=True),
        sa.Column("for_hire", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("company", sa.String(128), nullable=True),
        sa.Column("website_url", sa.Text(), nullable=True),
        sa.Column("address_one", sa.String(256), nullable=True),
        sa.Column("address_two", sa.String(256), nullable=True),
        sa.Column("city", sa.String(128), nullable=True),
        sa.Column("state", sa.String(128), nullable=True),
        sa.Column("zip", sa.String(32), nullable=True),
        sa.Column("country", sa.String(128), nullable=True),
        sa.Column("skills", JSON_DOCUMENT, nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "user_stats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _owner(unique=True),
        sa.Column("coins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("xp", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("twitch_id", sa.String(64), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "user_game_stats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _owner(unique=True),
        sa.Column("wins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("loses", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_table(
        "activities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _owner(),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("coins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("xp", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_activities_user_id", "activities", ["user_id"])
    op.create_table(
        "linked_accounts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _owner(nullable=True),
        sa.Column("provider", sa.String(32), nullable=False),
        sa.Column("provider_id", sa.String(128), nullable=False),
        sa.Column("username", sa.String(128), nullable=True),
        sa.Column("storage", JSON_DOCUMENT, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_linked_accounts_user_id", "linked_accounts", ["user_id"])
    op.create_table(
        "password_resets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _owner(),
        sa.Column("token", sa.String(128), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_password_resets_user_id", "password_resets", ["user_id"])
    op.create_table(
        "email_verifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _owner(),
        sa.Column("token", sa.String(128), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_email_verifications_user_id", "email_verifications", ["user_id"])
    op.create_table(
        "email_opt_ins",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _owner(unique=True),
        sa.Column("news", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("game_applications", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("schedules", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("linked_accounts", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    # --- Games ---
    op.create_table(
        "games",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(128), nullable=False),
        sa.Column("season", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("mode", sa.String(32), nullable=False, server_default="Classic"),
        sa.Column("status", sa.String(16), nullable=False, server_default="SCHEDULED"),
        sa.Column("storage", JSON_DOCUMENT, nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "game_schedules",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="SCHEDULED"),
        sa.Column("setup", JSON_DOCUMENT, nullable=False),
        sa.Column("game_id", sa.Integer(), sa.ForeignKey("games.id"), nullable=True, unique=True),
        *_timestamps(),
    )
    op.create_index("ix_game_schedules_status", "game_schedules", ["status"])
    op.create_table(
        "game_applications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("schedule_id", sa.Integer(), sa.ForeignKey("game_schedules.id"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_game_applications_user_id", "game_applications", ["user_id"])
    op.create_index("ix_game_applications_schedule_id", "game_applications", ["schedule_id"])


def downgrade() -> None:
    """Drop all tables, dependents first."""
    op.drop_table("game_applications")
    op.drop_table("game_schedules")
    op.drop_table("games")
    op.drop_table("email_opt_ins")
    op.drop_table("email_verifications")
    op.drop_table("password_resets")
    op.drop_table("linked_accounts")
    op.drop_table("activities")
    op.drop_table("user_game_stats")
    op.drop_table("user_stats")
    op.drop_table("user_profiles")
    op.drop_table("users")
