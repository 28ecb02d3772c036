"""
Tests for shared models.
"""

import pytest
from datetime import datetime, timezone
from pydantic import ValidationError

from shared.models import AuthenticatedUser


class TestAuthenticatedUser:
    """Tests for the AuthenticatedUser model in shared."""

    def test_create_with_required_fields(self):
        """Should create user with only required fields."""
        user = AuthenticatedUser(id="user-123", email="test@example.com")
        assert user.id == "user-123"
        assert user.email == "test@example.com"

    def test_default_values(self):
        """Should have correct default values."""
        user = AuthenticatedUser(id="user-123", email="test@example.com")
        assert user.email_verified is False
        assert user.role == "user"
        assert user.last_sign_in is None
        assert user.expires_at is None

    def test_all_fields(self):
        """Should accept all fields."""
        now = datetime.now(timezone.utc)
        user = AuthenticatedUser(
            id="user-123",
            email="test@example.com",
            email_verified=True,
            last_sign_in=now,
            expires_at=now,
            role="admin",
        )
        assert user.email_verified is True
        assert user.expires_at == now
        assert user.role == "admin"

    def test_invalid_email(self):
        """Should reject malformed e-mail addresses."""
        with pytest.raises(ValidationError):
            AuthenticatedUser(id="user-123", email="not-an-email")

    def test_is_frozen(self):
        """Should be immutable."""
        user = AuthenticatedUser(id="user-123", email="test@example.com")
        with pytest.raises(ValidationError):
            user.role = "admin"

    def test_ignores_extra_claims(self):
        """Extra token claims should be ignored."""
        user = AuthenticatedUser(id="user-123", email="test@example.com", aud="authenticated")
        assert not hasattr(user, "aud")
