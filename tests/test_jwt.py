"""Tests for access and refresh token handling."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import jwt
import pytest

from config.settings import AuthSettings
from rbac.errors import AuthError, AuthErrorCode
from rbac.jwt import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    verify_access_token,
)


@pytest.fixture
def auth_settings():
    return AuthSettings(
        access_token_secret="test-access-secret-0123456789abcdef",
        refresh_token_secret="test-refresh-secret-0123456789abcdef",
    )


class TestAccessTokens:
    """Tests for verify_access_token()."""

    def test_round_trip(self, auth_settings):
        user_id, session_id = uuid4(), uuid4()
        token = create_access_token(user_id, session_id, settings=auth_settings)

        claims = verify_access_token(token, auth_settings)

        assert claims == {"user_id": user_id, "session_id": session_id}

    def test_claim_names(self, auth_settings):
        user_id, session_id = uuid4(), uuid4()
        token = create_access_token(user_id, session_id, settings=auth_settings)

        payload = jwt.decode(token, auth_settings.access_token_secret, algorithms=["HS256"])

        assert payload["userId"] == str(user_id)
        assert payload["sessionId"] == str(session_id)

    def test_expired(self, auth_settings):
        token = create_access_token(
            uuid4(), uuid4(), expires_delta=timedelta(seconds=-10), settings=auth_settings
        )

        with pytest.raises(AuthError) as exc_info:
            verify_access_token(token, auth_settings)

        assert exc_info.value.code == AuthErrorCode.TOKEN_EXPIRED
        assert exc_info.value.status_code == 401

    def test_wrong_secret(self, auth_settings):
        token = jwt.encode(
            {
                "userId": str(uuid4()),
                "sessionId": str(uuid4()),
                "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
            },
            "some-other-secret-0123456789abcdef",
            algorithm="HS256",
        )

        with pytest.raises(AuthError) as exc_info:
            verify_access_token(token, auth_settings)

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN

    def test_garbage(self, auth_settings):
        with pytest.raises(AuthError) as exc_info:
            verify_access_token("not-a-token", auth_settings)

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN

    def test_refresh_token_is_not_an_access_token(self, auth_settings):
        token = create_refresh_token(uuid4(), uuid4(), settings=auth_settings)

        with pytest.raises(AuthError) as exc_info:
            verify_access_token(token, auth_settings)

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN

    def test_missing_identity_claims(self, auth_settings):
        token = jwt.encode(
            {"exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            auth_settings.access_token_secret,
            algorithm="HS256",
        )

        with pytest.raises(AuthError) as exc_info:
            verify_access_token(token, auth_settings)

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN

    def test_token_without_expiry_is_rejected(self, auth_settings):
        token = jwt.encode(
            {"userId": str(uuid4()), "sessionId": str(uuid4())},
            auth_settings.access_token_secret,
            algorithm="HS256",
        )

        with pytest.raises(AuthError) as exc_info:
            verify_access_token(token, auth_settings)

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN


class TestRefreshTokens:
    """Tests for refresh token helpers."""

    def test_round_trip(self, auth_settings):
        user_id = uuid4()
        token = create_refresh_token(user_id, uuid4(), settings=auth_settings)

        payload = decode_refresh_token(token, auth_settings)

        assert payload["userId"] == str(user_id)
