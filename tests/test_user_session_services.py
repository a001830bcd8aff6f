"""Tests for session and user lookups and the writes that keep them coherent."""

from datetime import timedelta
from uuid import uuid4

import pytest

from cache import CacheKeys
from rbac.context import UserStatus
from rbac.errors import AuthError, AuthErrorCode
from rbac.permissions import PermissionAction, PermissionKey
from services import role_service, session_service, user_service


class TestSessionService:
    """Tests for session lookups and revocation."""

    @pytest.mark.asyncio
    async def test_find_session(self, make_user, make_session):
        user = await make_user()
        record = await make_session(user.id)

        found = await session_service.find_session(user.id, record.id)

        assert found.id == record.id
        assert found.user_id == user.id

    @pytest.mark.asyncio
    async def test_session_of_another_user_is_not_found(self, make_user, make_session):
        owner = await make_user()
        other = await make_user()
        record = await make_session(owner.id)

        assert await session_service.find_session(other.id, record.id) is None

    @pytest.mark.asyncio
    async def test_expired_session_is_still_returned(self, make_user, make_session):
        user = await make_user()
        record = await make_session(user.id, expires_in=timedelta(hours=-1))

        assert await session_service.find_session(user.id, record.id) is not None

    @pytest.mark.asyncio
    async def test_delete_session_drops_cached_record(self, make_user, make_session, tag_cache):
        user = await make_user()
        record = await make_session(user.id)
        await session_service.find_session(user.id, record.id)
        assert await tag_cache.get(CacheKeys.user_session(user.id, record.id)) is not None

        await session_service.delete_session(record.id)

        assert await tag_cache.get(CacheKeys.user_session(user.id, record.id)) is None
        assert await session_service.find_session(user.id, record.id) is None

    @pytest.mark.asyncio
    async def test_delete_user_sessions(self, make_user, make_session, tag_cache):
        user = await make_user()
        first = await make_session(user.id)
        second = await make_session(user.id)
        await session_service.find_session(user.id, first.id)

        await session_service.delete_user_sessions(user.id)

        assert await session_service.find_session(user.id, first.id) is None
        assert await session_service.find_session(user.id, second.id) is None

    @pytest.mark.asyncio
    async def test_keep_session_leaves_session(self, make_user, make_session):
        user = await make_user()
        record = await make_session(user.id)

        await session_service.keep_session(record.id)

        assert await session_service.find_session(user.id, record.id) is not None


class TestUserService:
    """Tests for user lookups and account writes."""

    @pytest.mark.asyncio
    async def test_find_session_user_resolves_global_role(self, make_user):
        user = await make_user(role_name="admin")

        found = await user_service.find_session_user(user.id)

        assert found.email == user.email
        assert found.status == UserStatus.ACTIVE
        assert found.role.name == "admin"
        assert found.role.action_for(PermissionKey.USER_MANAGEMENT) == PermissionAction.WRITE

    @pytest.mark.asyncio
    async def test_user_without_role(self, make_user):
        user = await make_user(role_name=None)

        found = await user_service.find_session_user(user.id)

        assert found.role is None

    @pytest.mark.asyncio
    async def test_unknown_user(self, seeded_db):
        assert await user_service.find_session_user(uuid4()) is None

    @pytest.mark.asyncio
    async def test_cached_user_does_not_carry_role(self, make_user, tag_cache):
        user = await make_user(role_name="admin")

        await user_service.find_session_user(user.id)

        cached = await tag_cache.get(CacheKeys.user(user.id))
        assert cached["role"] is None
        assert "password" not in cached

    @pytest.mark.asyncio
    async def test_suspending_revokes_sessions(self, make_user, make_session, tag_cache):
        user = await make_user()
        record = await make_session(user.id)
        await user_service.find_session_user(user.id)

        await user_service.update_user_status(user.id, UserStatus.SUSPENDED)

        found = await user_service.find_session_user(user.id)
        assert found.status == UserStatus.SUSPENDED
        assert await session_service.find_session(user.id, record.id) is None

    @pytest.mark.asyncio
    async def test_deactivating_keeps_sessions(self, make_user, make_session):
        user = await make_user()
        record = await make_session(user.id)

        await user_service.update_user_status(user.id, UserStatus.INACTIVE)

        assert await session_service.find_session(user.id, record.id) is not None

    @pytest.mark.asyncio
    async def test_update_status_of_unknown_user(self, seeded_db):
        with pytest.raises(AuthError) as exc_info:
            await user_service.update_user_status(uuid4(), UserStatus.ACTIVE)

        assert exc_info.value.code == AuthErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_assign_global_role(self, make_user, tag_cache):
        user = await make_user()
        await user_service.find_session_user(user.id)
        support = await role_service.create_role("support")

        await user_service.assign_global_role(user.id, support.id)

        assert (await user_service.find_session_user(user.id)).role.name == "support"

    @pytest.mark.asyncio
    async def test_assign_org_role_is_rejected(self, make_user):
        from services.organization_service import create_organization, find_org_role_by_name

        owner = await make_user()
        organization = await create_organization("Acme", "acme", owner.id)
        member_role = await find_org_role_by_name(organization.id, "member")

        with pytest.raises(AuthError) as exc_info:
            await user_service.assign_global_role(owner.id, member_role.id)

        assert exc_info.value.code == AuthErrorCode.BAD_REQUEST
