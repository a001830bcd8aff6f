"""
Role-Based Access Control (RBAC)

Two-tier permission model for the platform servers.

Tiers:
    Global       - a user's own role (super_admin, admin, user, custom)
    Organization - a user's membership role within an organization
                   (owner, admin, member)

Every permission key belongs to one tier and is granted at one of the
ordered actions none < read < write < delete.

Usage:
    from rbac import PermissionKey, PermissionAction, authorize

    @router.get(
        "/admin/users",
        dependencies=[
            Depends(authenticate),
            Depends(authorize(PermissionKey.USER_MANAGEMENT, PermissionAction.READ)),
        ],
    )
    async def list_users(): ...

Seeding lives in ``rbac.seed`` and is imported explicitly.
"""

from .permissions import (
    ACTION_LEVEL,
    PERMISSION_SCOPE_MAP,
    PermissionAction,
    PermissionKey,
    PermissionScope,
    permission_keys_for_scope,
    satisfies,
)
from .roles import (
    DEFAULT_ORG_ROLE_PERMISSIONS,
    SYSTEM_ROLE_PERMISSIONS,
    DefaultOrgRole,
    SystemRole,
)
from .context import (
    OrganizationMemberRecord,
    OrganizationRecord,
    OrgRequestContext,
    RoleWithPermissions,
    SessionRecord,
    SessionUser,
    UserStatus,
)
from .errors import AuthError, AuthErrorCode, PermissionScopeError, register_exception_handlers
from .authentication import AuthCallbacks, bearer_scheme, create_authenticator, extract_token
from .authorization import AuthorizeOrgCallbacks, authorize, create_authorize_org

__all__ = [
    # Permissions
    "ACTION_LEVEL",
    "PERMISSION_SCOPE_MAP",
    "PermissionAction",
    "PermissionKey",
    "PermissionScope",
    "permission_keys_for_scope",
    "satisfies",

    # Roles
    "DEFAULT_ORG_ROLE_PERMISSIONS",
    "SYSTEM_ROLE_PERMISSIONS",
    "DefaultOrgRole",
    "SystemRole",

    # Context
    "OrganizationMemberRecord",
    "OrganizationRecord",
    "OrgRequestContext",
    "RoleWithPermissions",
    "SessionRecord",
    "SessionUser",
    "UserStatus",

    # Errors
    "AuthError",
    "AuthErrorCode",
    "PermissionScopeError",
    "register_exception_handlers",

    # Dependencies
    "AuthCallbacks",
    "bearer_scheme",
    "create_authenticator",
    "extract_token",
    "AuthorizeOrgCallbacks",
    "authorize",
    "create_authorize_org",
]
