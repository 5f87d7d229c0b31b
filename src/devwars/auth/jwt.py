"""
JWT access tokens.

The token only identifies the caller (``sub``) and carries the role it had
when the token was issued. Authorization decisions always use the role stored
on the user row, never the claim.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from devwars.config import get_settings
from devwars.users.roles import UserRole


def create_access_token(user_id: int, role: UserRole | str) -> str:
    """
    Create an access token for a user.

    Args:
        user_id: The user's database ID.
        role: The user's role at issue time.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "role": UserRole.parse(role).value,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_access_token_expire_minutes),
        "iss": settings.jwt_issuer,
        "type": "access",
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str, expected_type: str = "access") -> dict[str, Any]:
    """
    Decode and verify a token.

    Raises:
        jwt.InvalidTokenError: If the signature, expiry, issuer or type is wrong.
    """
    settings = get_settings()
    payload: dict[str, Any] = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        issuer=settings.jwt_issuer,
        options={"require": ["sub", "exp", "iat", "iss"]},
    )
    if payload.get("type") != expected_type:
        msg = f"Expected {expected_type} token, got {payload.get('type')}"
        raise jwt.InvalidTokenError(msg)
    return payload
