"""
Unit Tests for Security Module
Tests for: password hashing, temporary passwords, access tokens
"""
import pytest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import patch
from jose import jwt

from app.core.exceptions import InvalidTokenError, TokenExpiredError
from app.core.security import (
    TokenService,
    generate_temporary_password,
    get_password_hash,
    verify_password,
)
from app.models.user import UserRole
from app.schemas.common import PASSWORD_PATTERN


SECRET = "unit-test-secret"


def make_user(role=UserRole.TEACHER):
    return SimpleNamespace(
        id="8d0f7a4e-0000-4000-8000-000000000001",
        username="john@teacher.com",
        email="john@teacher.com",
        role=role,
    )


class TestPasswordHashing:
    """Test password hashing functions"""

    def test_hash_is_not_plaintext(self):
        hashed = get_password_hash("Abc12345!")

        assert hashed != "Abc12345!"
        assert hashed.startswith("$2")

    def test_hash_different_each_time(self):
        """Bcrypt generates a new salt per hash"""
        assert get_password_hash("Abc12345!") != get_password_hash("Abc12345!")

    def test_verify_password_correct(self):
        hashed = get_password_hash("Abc12345!")

        assert verify_password("Abc12345!", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = get_password_hash("Abc12345!")

        assert verify_password("Abc12345?", hashed) is False

    def test_long_password_truncated_to_bcrypt_limit(self):
        long_password = "a" * 100
        hashed = get_password_hash(long_password)

        assert verify_password(long_password, hashed) is True
        assert verify_password("a" * 72, hashed) is True


class TestTemporaryPassword:

    def test_satisfies_password_policy(self):
        for _ in range(20):
            password = generate_temporary_password()
            assert len(password) >= 8
            assert PASSWORD_PATTERN.match(password)

    def test_all_digit_random_part_still_satisfies_policy(self):
        with patch("app.core.security.secrets.token_hex", return_value="1234567890123456"):
            password = generate_temporary_password()

        assert PASSWORD_PATTERN.match(password)

    def test_unique(self):
        assert generate_temporary_password() != generate_temporary_password()


class TestTokenService:
    """Test access token issue / verify"""

    def setup_method(self):
        self.service = TokenService(secret_key=SECRET)

    def test_round_trip_claims(self):
        user = make_user()
        payload = self.service.verify(self.service.issue(user))

        assert payload["id"] == user.id
        assert payload["sub"] == user.id
        assert payload["username"] == "john@teacher.com"
        assert payload["email"] == "john@teacher.com"
        assert payload["role"] == "TEACHER"
        assert payload["type"] == "access"

    def test_default_lifetime_is_seven_days(self):
        payload = self.service.verify(self.service.issue(make_user()))

        assert payload["exp"] - payload["iat"] == 7 * 24 * 60 * 60

    def test_expired_token_rejected(self):
        token = self.service.issue(make_user(), expires_delta=timedelta(seconds=-10))

        with pytest.raises(TokenExpiredError):
            self.service.verify(token)

    def test_wrong_secret_rejected(self):
        token = TokenService(secret_key="another-secret").issue(make_user())

        with pytest.raises(InvalidTokenError):
            self.service.verify(token)

    def test_wrong_audience_rejected(self):
        token = TokenService(secret_key=SECRET, audience="someone-else").issue(make_user())

        with pytest.raises(InvalidTokenError):
            self.service.verify(token)

    def test_garbage_rejected(self):
        with pytest.raises(InvalidTokenError):
            self.service.verify("not-a-token")

    def test_non_access_token_rejected(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "id": "abc",
                "iat": int(now.timestamp()),
                "exp": int((now + timedelta(minutes=5)).timestamp()),
                "iss": self.service.issuer,
                "aud": self.service.audience,
                "type": "refresh",
            },
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            self.service.verify(token)
