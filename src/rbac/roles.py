"""
Role Definitions

Two families of built-in roles:

    GLOBAL (system) - one row each, seeded at boot
    ├── super_admin  - Full platform access, bypasses global checks
    ├── admin        - Platform operations
    └── user         - Default role for new accounts

    ORGANIZATION (default) - seeded per organization on creation
    ├── owner        - Full control of the organization
    ├── admin        - Manage members, invitations and settings
    └── member       - View the member list

Permissions absent from a role's manifest entry default to ``none``.
"""

from enum import Enum
from typing import Dict

from .permissions import PermissionAction, PermissionKey


class SystemRole(str, Enum):
    """Global system roles."""

    SUPER_ADMIN = "super_admin"
    """
    Full platform access. Passes every global permission check.
    """

    ADMIN = "admin"
    """
    Platform operations. Manages users.
    """

    USER = "user"
    """
    Default role assigned to new accounts.
    """


class DefaultOrgRole(str, Enum):
    """Roles created for every new organization."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


DEFAULT_USER_ROLE = SystemRole.USER


SYSTEM_ROLE_DESCRIPTIONS: Dict[SystemRole, str] = {
    SystemRole.SUPER_ADMIN: "Full platform access",
    SystemRole.ADMIN: "Platform administration",
    SystemRole.USER: "Standard user account",
}


SYSTEM_ROLE_PERMISSIONS: Dict[SystemRole, Dict[PermissionKey, PermissionAction]] = {
    SystemRole.SUPER_ADMIN: {
        PermissionKey.USER_MANAGEMENT: PermissionAction.DELETE,
    },
    SystemRole.ADMIN: {
        PermissionKey.USER_MANAGEMENT: PermissionAction.WRITE,
    },
    SystemRole.USER: {
        PermissionKey.USER_MANAGEMENT: PermissionAction.NONE,
    },
}


DEFAULT_ORG_ROLE_DESCRIPTIONS: Dict[DefaultOrgRole, str] = {
    DefaultOrgRole.OWNER: "Full control of the organization",
    DefaultOrgRole.ADMIN: "Manage members, invitations and settings",
    DefaultOrgRole.MEMBER: "Can view the member list",
}


DEFAULT_ORG_ROLE_PERMISSIONS: Dict[DefaultOrgRole, Dict[PermissionKey, PermissionAction]] = {
    DefaultOrgRole.OWNER: {
        PermissionKey.ORG_MANAGEMENT: PermissionAction.DELETE,
        PermissionKey.MEMBER_MANAGEMENT: PermissionAction.DELETE,
        PermissionKey.INVITATION_MANAGEMENT: PermissionAction.DELETE,
    },
    DefaultOrgRole.ADMIN: {
        PermissionKey.ORG_MANAGEMENT: PermissionAction.WRITE,
        PermissionKey.MEMBER_MANAGEMENT: PermissionAction.WRITE,
        PermissionKey.INVITATION_MANAGEMENT: PermissionAction.WRITE,
    },
    DefaultOrgRole.MEMBER: {
        PermissionKey.ORG_MANAGEMENT: PermissionAction.READ,
        PermissionKey.MEMBER_MANAGEMENT: PermissionAction.READ,
        PermissionKey.INVITATION_MANAGEMENT: PermissionAction.NONE,
    },
}


def get_system_role_action(role: SystemRole, key: PermissionKey) -> PermissionAction:
    """Manifest action of a system role, ``none`` when not listed."""
    return SYSTEM_ROLE_PERMISSIONS.get(SystemRole(role), {}).get(key, PermissionAction.NONE)


def get_default_org_role_action(role: DefaultOrgRole, key: PermissionKey) -> PermissionAction:
    """Manifest action of a default org role, ``none`` when not listed."""
    return DEFAULT_ORG_ROLE_PERMISSIONS.get(DefaultOrgRole(role), {}).get(key, PermissionAction.NONE)
