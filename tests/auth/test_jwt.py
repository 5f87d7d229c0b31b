"""Tests for JWT access tokens."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from devwars.auth.jwt import create_access_token, verify_token
from devwars.config import get_settings
from devwars.users.roles import UserRole


class TestAccessToken:
    def test_create_and_verify(self):
        token = create_access_token(user_id=7, role=UserRole.MODERATOR)
        payload = verify_token(token)
        assert payload["sub"] == "7"
        assert payload["role"] == "MODERATOR"
        assert payload["type"] == "access"
        assert payload["iss"] == "devwars.tv"

    def test_role_name_normalized(self):
        payload = verify_token(create_access_token(user_id=1, role="admin"))
        assert payload["role"] == "ADMIN"

    def test_wrong_type_rejected(self):
        token = create_access_token(user_id=1, role=UserRole.USER)
        with pytest.raises(jwt.InvalidTokenError, match="Expected refresh token"):
            verify_token(token, expected_type="refresh")

    def test_foreign_signature_rejected(self):
        settings = get_settings()
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "1", "iat": now, "exp": now + timedelta(minutes=5), "iss": settings.jwt_issuer, "type": "access"},
            "another-secret-0123456789abcdef0123456789",
            algorithm="HS256",
        )
        with pytest.raises(jwt.InvalidSignatureError):
            verify_token(token)

    def test_expired_rejected(self):
        settings = get_settings()
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = jwt.encode(
            {"sub": "1", "iat": past, "exp": past + timedelta(minutes=5), "iss": settings.jwt_issuer, "type": "access"},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(jwt.ExpiredSignatureError):
            verify_token(token)
