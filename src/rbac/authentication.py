"""
Authentication Dependency

Resolves the caller of every authenticated request:

    1. Extract the access token (Authorization header, then cookie)
    2. Verify signature and expiry
    3. Load the session and reject it when missing or expired
    4. Load the user with their global role
    5. Reject suspended/inactive accounts, revoking the session

Lookups are injected so each server process decides where sessions and
users come from and whether it may revoke sessions.

Usage:
    authenticate = create_authenticator(AuthCallbacks(
        find_session=session_service.find_session,
        find_user=user_service.find_session_user,
        delete_session=session_service.delete_session,
    ))

    @router.get("/me")
    async def me(user: SessionUser = Depends(authenticate)):
        return user
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config.logging_config import user_id_var
from config.settings import AuthSettings, get_auth_settings

from .context import SessionRecord, SessionUser, UserStatus
from .errors import AuthError
from .jwt import verify_access_token

logger = logging.getLogger(__name__)

# =============================================================================
# HTTP BEARER SECURITY
# =============================================================================

bearer_scheme = HTTPBearer(auto_error=False)

SUSPENDED_MESSAGE = "Your account has been suspended"
INACTIVE_MESSAGE = "Your account is deactivated. Please log in again to reactivate."


@dataclass
class AuthCallbacks:
    """Lookups the authentication dependency delegates to."""

    find_session: Callable[[UUID, UUID], Awaitable[Optional[SessionRecord]]]
    find_user: Callable[[UUID], Awaitable[Optional[SessionUser]]]
    delete_session: Callable[[UUID], Awaitable[None]]


def extract_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
    settings: Optional[AuthSettings] = None,
) -> Optional[str]:
    """Bearer token from the Authorization header, else the access token cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials

    settings = settings or get_auth_settings()
    return request.cookies.get(settings.access_cookie_name) or None


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def create_authenticator(
    callbacks: AuthCallbacks,
    settings: Optional[AuthSettings] = None,
) -> Callable[[Request], Awaitable[SessionUser]]:
    """
    Build the authentication dependency.

    On success the user is stored on ``request.state.user`` and the session
    id on ``request.state.session_id``.

    Raises (from the dependency):
        AuthError: UNAUTHORIZED, INVALID_TOKEN, TOKEN_EXPIRED, SESSION_EXPIRED
            or FORBIDDEN (suspended/inactive, credentials cleared)
    """

    async def authenticate(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    ) -> SessionUser:
        token = extract_token(request, credentials, settings)
        if not token:
            raise AuthError.unauthorized()

        claims = verify_access_token(token, settings)
        user_id = claims["user_id"]
        session_id = claims["session_id"]

        session = await callbacks.find_session(user_id, session_id)
        if session is None or _as_utc(session.expires_at) < datetime.now(timezone.utc):
            raise AuthError.session_expired()

        user = await callbacks.find_user(user_id)
        if user is None:
            raise AuthError.unauthorized()

        if user.status == UserStatus.SUSPENDED:
            logger.info(f"Rejected suspended user {user.id}, revoking session {session_id}")
            await callbacks.delete_session(session_id)
            raise AuthError.forbidden(SUSPENDED_MESSAGE, clear_credentials=True)

        if user.status == UserStatus.INACTIVE:
            logger.info(f"Rejected inactive user {user.id}, revoking session {session_id}")
            await callbacks.delete_session(session_id)
            raise AuthError.forbidden(INACTIVE_MESSAGE, clear_credentials=True)

        request.state.user = user
        request.state.session_id = session_id
        user_id_var.set(str(user.id))
        return user

    return authenticate
