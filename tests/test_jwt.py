"""
Tests for access token signing and verification.
"""

from datetime import datetime, timedelta, timezone

import jwt

from app.core.config import settings
from app.core.jwt import create_access_token, get_token_expiry, verify_token

CLAIMS = {"sub": 7, "email": "writer@example.com", "role": "ADMIN"}


class TestCreateAccessToken:
    """Tests for token creation."""

    def test_round_trips_claims(self):
        token = create_access_token(CLAIMS)
        claims = verify_token(token)

        assert claims is not None
        assert claims.sub == "7"
        assert claims.email == "writer@example.com"
        assert claims.role == "ADMIN"

    def test_default_expiry_uses_configured_lifetime(self):
        before = datetime.now(timezone.utc)
        token = create_access_token(CLAIMS)
        expiry = get_token_expiry(token)

        expected = before + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        assert abs((expiry - expected).total_seconds()) < 5

    def test_tokens_are_unique(self):
        """Two tokens for the same claims differ so session rows never collide."""
        assert create_access_token(CLAIMS) != create_access_token(CLAIMS)


class TestVerifyToken:
    """Tests for fail-closed verification."""

    def test_expired_token_rejected(self):
        token = create_access_token(CLAIMS, expires_delta=timedelta(seconds=-10))
        assert verify_token(token) is None

    def test_wrong_secret_rejected(self):
        token = create_access_token(CLAIMS)
        assert verify_token(token, secret="some-other-secret") is None

    def test_garbage_rejected(self):
        assert verify_token("not.a.jwt") is None
        assert verify_token("") is None

    def test_missing_role_rejected(self):
        token = jwt.encode(
            {"sub": "1", "email": "a@example.com", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
        )
        assert verify_token(token) is None

    def test_missing_expiry_rejected(self):
        token = jwt.encode(
            {"sub": "1", "email": "a@example.com", "role": "ADMIN"},
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
        )
        assert verify_token(token) is None

    def test_expiry_of_invalid_token_is_none(self):
        assert get_token_expiry("garbage") is None
