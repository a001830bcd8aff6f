"""
Request Context Models

Typed records the authentication dependency and the permission gates
attach to ``request.state``. They are also the shapes the cache layer
stores, so every model round-trips through JSON.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .permissions import PermissionAction, PermissionKey, PermissionScope


class UserStatus(str, Enum):
    """Account status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class RoleWithPermissions(BaseModel):
    """
    A role and its effective permission map.

    ``permissions`` only holds keys whose scope matches the context the role
    was resolved for (global or organization).
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: Optional[str] = None
    is_system: bool = False
    scope: PermissionScope
    organization_id: Optional[UUID] = None
    permissions: Dict[PermissionKey, PermissionAction] = Field(default_factory=dict)

    def action_for(self, key: PermissionKey) -> PermissionAction:
        """Action granted for a key, ``none`` when the role has no row for it."""
        return self.permissions.get(PermissionKey(key), PermissionAction.NONE)


class SessionRecord(BaseModel):
    """Raw session row. Expiry is interpreted by the caller."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    expires_at: datetime


class SessionUser(BaseModel):
    """Authenticated user attached to the request. Never carries a password."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    status: UserStatus = UserStatus.ACTIVE
    role_id: Optional[UUID] = None
    role: Optional[RoleWithPermissions] = None


class OrganizationRecord(BaseModel):
    """Live (not soft-deleted) organization."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    logo: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(
        default=None,
        validation_alias=AliasChoices("metadata_", "metadata"),
    )


class OrganizationMemberRecord(BaseModel):
    """Membership of a user in an organization."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    user_id: UUID
    role_id: UUID


class OrgRequestContext(BaseModel):
    """Attached to ``request.state.organization_member`` by the org gate."""

    organization: OrganizationRecord
    member: OrganizationMemberRecord
    role: RoleWithPermissions
