"""Request/response schemas for user endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from devwars.db.models import Sex
from devwars.users.roles import UserRole


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserLookupResponse(BaseModel):
    id: int
    username: str


class PublicUserResponse(BaseModel):
    """User as shown to anyone; no email, sign-in or timestamps."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    role: UserRole
    avatar_url: str | None = None


class UserResponse(PublicUserResponse):
    """Full user record, for the user themselves and staff."""

    email: str
    last_sign_in: datetime | None = None
    created_at: datetime
    updated_at: datetime


class UserUpdateRequest(BaseModel):
    """Partial user update. Omitted fields are left untouched."""

    username: str | None = Field(None, min_length=3, max_length=64)
    email: EmailStr | None = None
    password: str | None = Field(None, min_length=1, max_length=128)
    role: UserRole | None = None
    last_sign_in: datetime | None = None

    @field_validator("role", mode="before")
    @classmethod
    def parse_role(cls, v: Any) -> Any:
        """Accept role names in any case."""
        if isinstance(v, str):
            return UserRole.parse(v)
        return v


class UserDeletedResponse(BaseModel):
    user: int


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    first_name: str | None = None
    last_name: str | None = None
    dob: date | None = None
    sex: Sex | None = None
    about: str | None = None
    for_hire: bool = False
    company: str | None = None
    website_url: str | None = None
    address_one: str | None = None
    address_two: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    country: str | None = None
    skills: dict[str, int] = Field(default_factory=dict)


class ProfileUpdateRequest(BaseModel):
    first_name: str | None = Field(None, max_length=64)
    last_name: str | None = Field(None, max_length=64)
    dob: date | None = None
    sex: Sex | None = None
    about: str | None = None
    for_hire: bool | None = None
    company: str | None = Field(None, max_length=128)
    website_url: str | None = None
    address_one: str | None = Field(None, max_length=256)
    address_two: str | None = Field(None, max_length=256)
    city: str | None = Field(None, max_length=128)
    state: str | None = Field(None, max_length=128)
    zip: str | None = Field(None, max_length=32)
    country: str | None = Field(None, max_length=128)
    skills: dict[str, int] | None = None
