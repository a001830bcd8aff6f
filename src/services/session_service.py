"""
Session Service

Session lookups for the authentication dependency and session revocation
for the processes that own sessions.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, select

from cache import CacheKeys, CacheTags, CacheTime, cache_invalidate, cacheable
from database.async_engine import get_async_session
from database.models import UserSession
from rbac.context import SessionRecord

logger = logging.getLogger(__name__)


@cacheable(
    key=lambda user_id, session_id: CacheKeys.user_session(user_id, session_id),
    ttl=CacheTime.ONE_DAY,
    tags=[
        lambda user_id, session_id: CacheTags.SESSIONS,
        lambda user_id, session_id: CacheTags.user_sessions(user_id),
        lambda user_id, session_id: CacheTags.session(session_id),
    ],
    model=SessionRecord,
)
async def find_session(user_id: UUID, session_id: UUID) -> Optional[SessionRecord]:
    """
    Raw session record owned by ``user_id``.

    Expiry is not checked here; the caller compares ``expires_at``.
    """
    async with get_async_session() as session:
        record = await session.scalar(
            select(UserSession).where(
                UserSession.id == session_id,
                UserSession.user_id == user_id,
            )
        )
        if record is None:
            return None
        return SessionRecord.model_validate(record)


@cache_invalidate(tags=[lambda session_id: CacheTags.session(session_id)])
async def delete_session(session_id: UUID) -> None:
    """Revoke one session and drop its cached record."""
    async with get_async_session() as session:
        await session.execute(delete(UserSession).where(UserSession.id == session_id))
    logger.info(f"Deleted session {session_id}")


@cache_invalidate(tags=[lambda user_id: CacheTags.user_sessions(user_id)])
async def delete_user_sessions(user_id: UUID) -> None:
    """Revoke every session of a user and drop their cached records."""
    async with get_async_session() as session:
        await session.execute(delete(UserSession).where(UserSession.user_id == user_id))
    logger.info(f"Deleted all sessions of user {user_id}")


async def keep_session(session_id: UUID) -> None:
    """Revocation callback for processes that validate but do not own sessions."""
    logger.debug(f"Session {session_id} left in place; revocation belongs to the auth server")
