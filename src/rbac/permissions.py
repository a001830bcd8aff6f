"""
Permission Definitions

Permissions are a fixed manifest of keys. Each key belongs to exactly one
scope and is granted to a role at one of four ordered action levels.

Scopes:
    - GLOBAL: platform-wide, checked against the user's own role
    - ORGANIZATION: checked against the user's membership role in an org

Actions (ordered):
    none < read < write < delete
"""

from enum import Enum
from typing import Dict, List

from .errors import PermissionScopeError


class PermissionScope(str, Enum):
    """Where a permission applies."""

    GLOBAL = "global"
    ORGANIZATION = "organization"


class PermissionAction(str, Enum):
    """Access level granted for a permission. Higher levels imply lower ones."""

    NONE = "none"
    READ = "read"
    WRITE = "write"
    DELETE = "delete"


class PermissionKey(str, Enum):
    """
    All permissions in the system.

    Naming: RESOURCE_MANAGEMENT
    """

    # =========================================================================
    # GLOBAL PERMISSIONS
    # =========================================================================

    USER_MANAGEMENT = "USER_MANAGEMENT"

    # =========================================================================
    # ORGANIZATION PERMISSIONS
    # =========================================================================

    ORG_MANAGEMENT = "ORG_MANAGEMENT"
    MEMBER_MANAGEMENT = "MEMBER_MANAGEMENT"
    INVITATION_MANAGEMENT = "INVITATION_MANAGEMENT"


ACTION_LEVEL: Dict[PermissionAction, int] = {
    PermissionAction.NONE: 0,
    PermissionAction.READ: 1,
    PermissionAction.WRITE: 2,
    PermissionAction.DELETE: 3,
}


PERMISSION_SCOPE_MAP: Dict[PermissionKey, PermissionScope] = {
    PermissionKey.USER_MANAGEMENT: PermissionScope.GLOBAL,
    PermissionKey.ORG_MANAGEMENT: PermissionScope.ORGANIZATION,
    PermissionKey.MEMBER_MANAGEMENT: PermissionScope.ORGANIZATION,
    PermissionKey.INVITATION_MANAGEMENT: PermissionScope.ORGANIZATION,
}


PERMISSION_DESCRIPTIONS: Dict[PermissionKey, str] = {
    PermissionKey.USER_MANAGEMENT: "Manage platform users and their roles",
    PermissionKey.ORG_MANAGEMENT: "Manage organization settings and lifecycle",
    PermissionKey.MEMBER_MANAGEMENT: "Manage organization members and their roles",
    PermissionKey.INVITATION_MANAGEMENT: "Manage invitations to the organization",
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def satisfies(have: PermissionAction, need: PermissionAction) -> bool:
    """True if an action granted at ``have`` meets the ``need`` minimum."""
    return ACTION_LEVEL[PermissionAction(have)] >= ACTION_LEVEL[PermissionAction(need)]


def get_permission_scope(key: PermissionKey) -> PermissionScope:
    """Scope a permission key belongs to."""
    return PERMISSION_SCOPE_MAP[PermissionKey(key)]


def permission_keys_for_scope(scope: PermissionScope) -> List[PermissionKey]:
    """All permission keys of a scope, in manifest order."""
    return [key for key, key_scope in PERMISSION_SCOPE_MAP.items() if key_scope == scope]


def require_scope(key: PermissionKey, scope: PermissionScope, gate: str) -> None:
    """
    Assert that a gate is constructed with a key of the scope it checks.

    Raises:
        PermissionScopeError: The key belongs to another scope.
    """
    actual = get_permission_scope(key)
    if actual != scope:
        raise PermissionScopeError(
            f"{gate}() requires a {scope.value}-scoped permission, "
            f"got {PermissionKey(key).value} ({actual.value})"
        )
