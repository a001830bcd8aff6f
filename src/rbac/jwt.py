"""
JWT Token Handling

Access tokens carry ``userId`` and ``sessionId`` claims and are signed with
the access secret. Refresh tokens are signed with a separate secret.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

import jwt

from config.settings import AuthSettings, get_auth_settings

from .errors import AuthError


# =============================================================================
# TOKEN CREATION
# =============================================================================

def create_access_token(
    user_id: UUID,
    session_id: UUID,
    expires_delta: Optional[timedelta] = None,
    settings: Optional[AuthSettings] = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        user_id: User's unique identifier
        session_id: Session the token belongs to
        expires_delta: Custom expiration time
        settings: Auth settings (defaults to the cached instance)

    Returns:
        JWT token string
    """
    settings = settings or get_auth_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    issued_at = datetime.now(timezone.utc)
    payload = {
        "userId": str(user_id),
        "sessionId": str(session_id),
        "iat": issued_at,
        "exp": issued_at + expires_delta,
    }

    return jwt.encode(payload, settings.access_token_secret, algorithm=settings.algorithm)


def create_refresh_token(
    user_id: UUID,
    session_id: UUID,
    expires_delta: Optional[timedelta] = None,
    settings: Optional[AuthSettings] = None,
) -> str:
    """
    Create a JWT refresh token.

    Refresh tokens are only accepted by the auth server to mint new access tokens.
    """
    settings = settings or get_auth_settings()
    if expires_delta is None:
        expires_delta = timedelta(days=settings.refresh_token_expire_days)

    issued_at = datetime.now(timezone.utc)
    payload = {
        "userId": str(user_id),
        "sessionId": str(session_id),
        "iat": issued_at,
        "exp": issued_at + expires_delta,
    }

    return jwt.encode(payload, settings.refresh_token_secret, algorithm=settings.algorithm)


# =============================================================================
# TOKEN DECODING
# =============================================================================

def decode_access_token(token: str, settings: Optional[AuthSettings] = None) -> Dict[str, Any]:
    """
    Decode and validate an access token.

    Raises:
        jwt.ExpiredSignatureError: Token has expired
        jwt.InvalidTokenError: Token is malformed or the signature is wrong
    """
    settings = settings or get_auth_settings()
    return jwt.decode(
        token,
        settings.access_token_secret,
        algorithms=[settings.algorithm],
        options={"require": ["exp"]},
    )


def decode_refresh_token(token: str, settings: Optional[AuthSettings] = None) -> Dict[str, Any]:
    """Decode and validate a refresh token. Raises like ``decode_access_token``."""
    settings = settings or get_auth_settings()
    return jwt.decode(
        token,
        settings.refresh_token_secret,
        algorithms=[settings.algorithm],
        options={"require": ["exp"]},
    )


def verify_access_token(token: str, settings: Optional[AuthSettings] = None) -> Dict[str, UUID]:
    """
    Verify an access token and return its identity claims.

    Returns:
        ``{"user_id": UUID, "session_id": UUID}``

    Raises:
        AuthError: TOKEN_EXPIRED for an expired token, INVALID_TOKEN for a bad
            signature or malformed token, UNAUTHORIZED for anything else
    """
    try:
        payload = decode_access_token(token, settings)
    except jwt.ExpiredSignatureError:
        raise AuthError.token_expired()
    except jwt.InvalidTokenError:
        raise AuthError.invalid_token()
    except Exception:
        raise AuthError.unauthorized()

    try:
        return {
            "user_id": UUID(str(payload["userId"])),
            "session_id": UUID(str(payload["sessionId"])),
        }
    except (KeyError, ValueError):
        raise AuthError.invalid_token("Token is missing identity claims")
