"""
Unit tests for JWT session token helpers.
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import JWTError, jwt

from orgtree.config.settings import get_settings
from orgtree.security import create_access_token, verify_token

pytestmark = pytest.mark.unit

settings = get_settings()


class TestAccessTokens:
    """Test access token creation and verification."""

    def test_create_access_token_claims(self):
        """Test that the token carries subject, email and type."""
        user_id = uuid4()
        token = create_access_token(user_id=user_id, email="test@example.com")

        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])

        assert payload["sub"] == str(user_id)
        assert payload["email"] == "test@example.com"
        assert payload["type"] == "access"
        assert "jti" in payload
        assert "exp" in payload

    def test_tokens_have_unique_ids(self):
        """Test that two tokens for the same user differ by jti."""
        user_id = uuid4()
        first = verify_token(create_access_token(user_id, "test@example.com"))
        second = verify_token(create_access_token(user_id, "test@example.com"))

        assert first["jti"] != second["jti"]

    def test_verify_token_round_trip(self):
        """Test that a freshly issued token verifies."""
        user_id = uuid4()
        payload = verify_token(create_access_token(user_id, "test@example.com"))

        assert payload["sub"] == str(user_id)

    def test_verify_expired_token_raises(self):
        """Test that an expired token is rejected."""
        token = create_access_token(uuid4(), "test@example.com", expires_delta=timedelta(seconds=-1))

        with pytest.raises(JWTError):
            verify_token(token)

    def test_verify_token_wrong_secret_raises(self):
        """Test that a token signed with another key is rejected."""
        token = jwt.encode(
            {"sub": str(uuid4()), "type": "access"}, "some-other-secret", algorithm="HS256"
        )

        with pytest.raises(JWTError):
            verify_token(token)

    def test_verify_token_wrong_type_raises(self):
        """Test that a token of another type is rejected."""
        token = create_access_token(uuid4(), "test@example.com")

        with pytest.raises(ValueError, match="Invalid token type"):
            verify_token(token, token_type="refresh")

    def test_verify_malformed_token_raises(self):
        """Test that garbage input is rejected."""
        with pytest.raises(JWTError):
            verify_token("not-a-jwt")
