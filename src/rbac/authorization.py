"""
Permission Gates

Route-level FastAPI dependencies that run after authentication:

    authorize(key, min_action)      - global permission on the user's role
    authorize_org(key, min_action)  - org permission on the membership role

Both validate the scope of their key when the route is declared, so a
mismatched key fails at import time rather than on the first request.

Usage:
    @router.delete(
        "/users/{user_id}",
        dependencies=[
            Depends(authenticate),
            Depends(authorize(PermissionKey.USER_MANAGEMENT, PermissionAction.DELETE)),
        ],
    )
    async def delete_user(user_id: UUID): ...
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional
from uuid import UUID

from fastapi import Request

from config.settings import AuthSettings, get_auth_settings

from .context import (
    OrganizationMemberRecord,
    OrganizationRecord,
    OrgRequestContext,
    RoleWithPermissions,
    SessionUser,
)
from .errors import AuthError
from .permissions import PermissionAction, PermissionKey, PermissionScope, require_scope, satisfies
from .roles import SystemRole

logger = logging.getLogger(__name__)


def _current_user(request: Request) -> Optional[SessionUser]:
    return getattr(request.state, "user", None)


# =============================================================================
# GLOBAL GATE
# =============================================================================

def authorize(
    permission_key: PermissionKey,
    min_action: PermissionAction,
) -> Callable[[Request], Awaitable[SessionUser]]:
    """
    Require a global permission on the authenticated user's role.

    ``super_admin`` passes every check. Keys the role has no row for count
    as ``none``.

    Raises:
        PermissionScopeError: ``permission_key`` is not global-scoped
    """
    require_scope(permission_key, PermissionScope.GLOBAL, "authorize")

    async def dependency(request: Request) -> SessionUser:
        user = _current_user(request)
        if user is None:
            raise AuthError.unauthorized()

        role = user.role
        if role is None:
            raise AuthError.forbidden("No role assigned")

        if role.name == SystemRole.SUPER_ADMIN.value:
            return user

        if not satisfies(role.action_for(permission_key), min_action):
            logger.info(
                f"User {user.id} denied {permission_key.value}:{min_action.value} "
                f"(role {role.name} has {role.action_for(permission_key).value})"
            )
            raise AuthError.forbidden("Insufficient permissions")

        return user

    return dependency


# =============================================================================
# ORGANIZATION GATE
# =============================================================================

@dataclass
class AuthorizeOrgCallbacks:
    """Lookups the organization gate delegates to."""

    find_org_by_slug: Callable[[str], Awaitable[Optional[OrganizationRecord]]]
    find_member: Callable[[UUID, UUID], Awaitable[Optional[OrganizationMemberRecord]]]
    find_role_with_permissions: Callable[[UUID], Awaitable[Optional[RoleWithPermissions]]]


def create_authorize_org(
    callbacks: AuthorizeOrgCallbacks,
    settings: Optional[AuthSettings] = None,
) -> Callable[[PermissionKey, PermissionAction], Callable[[Request], Awaitable[OrgRequestContext]]]:
    """
    Build the ``authorize_org`` gate factory around injected lookups.

    Each request goes through, in order: slug header, organization lookup,
    authenticated user, membership, membership role, permission check. The
    first failure ends the request.
    """

    def authorize_org(
        permission_key: PermissionKey,
        min_action: PermissionAction,
    ) -> Callable[[Request], Awaitable[OrgRequestContext]]:
        """
        Require an organization permission on the caller's membership role.

        On success the organization, membership and role are stored on
        ``request.state.organization_member``.

        Raises:
            PermissionScopeError: ``permission_key`` is not organization-scoped
        """
        require_scope(permission_key, PermissionScope.ORGANIZATION, "authorize_org")

        async def dependency(request: Request) -> OrgRequestContext:
            header = (settings or get_auth_settings()).organization_header
            slug = request.headers.get(header)
            if not slug:
                raise AuthError.bad_request(f"Missing required header: {header}")

            organization = await callbacks.find_org_by_slug(slug)
            if organization is None:
                raise AuthError.not_found("Organization not found")

            user = _current_user(request)
            if user is None:
                raise AuthError.unauthorized()

            member = await callbacks.find_member(organization.id, user.id)
            if member is None:
                raise AuthError.forbidden("You are not a member of this organization")

            role = await callbacks.find_role_with_permissions(member.role_id)
            if role is None:
                logger.error(
                    f"Member {member.id} of organization {organization.id} "
                    f"references missing role {member.role_id}"
                )
                raise AuthError.internal("Member role could not be resolved")

            if not satisfies(role.action_for(permission_key), min_action):
                raise AuthError.forbidden("Insufficient organization permissions")

            context = OrgRequestContext(organization=organization, member=member, role=role)
            request.state.organization_member = context
            return context

        return dependency

    return authorize_org
