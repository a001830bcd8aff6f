"""
User Service

User lookups for the authentication dependency and the account writes
that must keep the user cache coherent.
"""

import logging
from typing import Optional
from uuid import UUID

from cache import CacheKeys, CacheTags, CacheTime, cache_invalidate, cacheable
from database.async_engine import get_async_session
from database.models import Role, User
from rbac.context import SessionUser, UserStatus
from rbac.errors import AuthError
from rbac.permissions import PermissionScope

from .role_service import resolve_global_role
from .session_service import delete_user_sessions

logger = logging.getLogger(__name__)


@cacheable(
    key=lambda user_id: CacheKeys.user(user_id),
    ttl=CacheTime.ONE_HOUR,
    tags=[
        lambda user_id: CacheTags.USERS,
        lambda user_id: CacheTags.user(user_id),
    ],
    model=SessionUser,
)
async def find_user_by_id(user_id: UUID) -> Optional[SessionUser]:
    """User record without password or role, None if unknown."""
    async with get_async_session() as session:
        user = await session.get(User, user_id)
        if user is None:
            return None
        return SessionUser.model_validate(user)


async def find_session_user(user_id: UUID) -> Optional[SessionUser]:
    """User with their global role resolved, as attached to authenticated requests."""
    user = await find_user_by_id(user_id)
    if user is None:
        return None

    role = await resolve_global_role(user.role_id) if user.role_id else None
    return user.model_copy(update={"role": role})


@cache_invalidate(tags=[lambda user_id, status: CacheTags.user(user_id)])
async def update_user_status(user_id: UUID, status: UserStatus) -> None:
    """
    Change an account's status. Suspending also revokes every session.

    Raises:
        AuthError: NOT_FOUND for an unknown user
    """
    async with get_async_session() as session:
        user = await session.get(User, user_id)
        if user is None:
            raise AuthError.not_found("User not found")
        user.status = UserStatus(status).value

    logger.info(f"User {user_id} status set to {UserStatus(status).value}")

    if status == UserStatus.SUSPENDED:
        await delete_user_sessions(user_id)


@cache_invalidate(tags=[lambda user_id, role_id: CacheTags.user(user_id)])
async def assign_global_role(user_id: UUID, role_id: Optional[UUID]) -> None:
    """
    Set (or clear) a user's global role.

    Raises:
        AuthError: NOT_FOUND for an unknown user or role, BAD_REQUEST when the
            role is an organization role
    """
    async with get_async_session() as session:
        user = await session.get(User, user_id)
        if user is None:
            raise AuthError.not_found("User not found")

        if role_id is not None:
            role = await session.get(Role, role_id)
            if role is None:
                raise AuthError.not_found("Role not found")
            if role.scope != PermissionScope.GLOBAL.value:
                raise AuthError.bad_request("Only global roles can be assigned to users")

        user.role_id = role_id

    logger.info(f"User {user_id} assigned role {role_id}")
