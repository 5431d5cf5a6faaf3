"""
Tests for bearer token decoding
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from core.auth import decode_user_token
from core.config import Settings
from core.exceptions import AuthenticationError

SECRET = "unit-test-jwt-secret-with-32-bytes-min"


@pytest.fixture
def auth_settings():
    return Settings(_env_file=None, jwt_secret=SECRET)


def encode(claims, secret=SECRET):
    return jwt.encode(claims, secret, algorithm="HS256")


def expires(delta=timedelta(hours=1)):
    return datetime.now(timezone.utc) + delta


class TestDecodeUserToken:
    def test_valid_token(self, auth_settings):
        token = encode({"sub": "user_123", "exp": expires()})

        assert decode_user_token(token, auth_settings) == "user_123"

    def test_expired_token(self, auth_settings):
        token = encode({"sub": "user_123", "exp": expires(timedelta(seconds=-5))})

        with pytest.raises(AuthenticationError) as exc_info:
            decode_user_token(token, auth_settings)

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Unauthorized"

    def test_wrong_secret(self, auth_settings):
        token = encode({"sub": "user_123", "exp": expires()}, secret="some-other-secret-of-32-bytes-len")

        with pytest.raises(AuthenticationError):
            decode_user_token(token, auth_settings)

    @pytest.mark.parametrize("claims", [{"exp": None}, {"sub": "user_123"}, {"sub": "", "exp": None}])
    def test_missing_claims(self, auth_settings, claims):
        claims = {key: (expires() if key == "exp" else value) for key, value in claims.items()}

        with pytest.raises(AuthenticationError):
            decode_user_token(encode(claims), auth_settings)

    def test_garbage(self, auth_settings):
        with pytest.raises(AuthenticationError):
            decode_user_token("not-a-jwt", auth_settings)

    def test_unconfigured_secret(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET", raising=False)
        settings = Settings(_env_file=None)
        token = encode({"sub": "user_123", "exp": expires()})

        with pytest.raises(AuthenticationError):
            decode_user_token(token, settings)
