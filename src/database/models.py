"""
SQLAlchemy ORM Models for the RBAC core.

Architecture:
- Primary Keys: UUID for all tables (portable ``Uuid`` type)
- Permissions: fixed manifest keys, one scope each
- Roles: global (organization_id IS NULL) or scoped to one organization
- Role permissions: one action per (role, permission) pair
- Organizations: soft-deleted through ``deleted_at``
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Column, String, Boolean, DateTime, Text, ForeignKey, Index,
    CheckConstraint, UniqueConstraint, JSON, Uuid, text
)
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator

from rbac.context import UserStatus
from rbac.permissions import PermissionAction


# Cross-database compatible JSON type
# Uses JSONB on PostgreSQL, JSON on SQLite/others
class JSONB(TypeDecorator):
    """A portable JSONB type that works with both PostgreSQL and SQLite."""
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(PG_JSONB())
        else:
            return dialect.type_descriptor(JSON())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


Base = declarative_base()


# =============================================================================
# PERMISSIONS AND ROLES
# =============================================================================

class Permission(Base):
    """A permission key from the manifest."""
    __tablename__ = "permissions"

    id = Column(Uuid, primary_key=True, default=uuid4)
    key = Column(String(64), nullable=False, unique=True)
    scope = Column(String(20), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Permission {self.key} ({self.scope})>"


class Role(Base):
    """Global role or organization role."""
    __tablename__ = "roles"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(64), nullable=False)
    description = Column(Text, nullable=True)
    is_system = Column(Boolean, default=False, nullable=False)
    scope = Column(String(20), nullable=False)
    organization_id = Column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=True, index=True
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        # Global role names are unique among themselves
        Index(
            'uq_roles_global_name', 'name',
            unique=True,
            postgresql_where=text('organization_id IS NULL'),
            sqlite_where=text('organization_id IS NULL'),
        ),
        UniqueConstraint('name', 'organization_id', name='uq_roles_org_name'),
        CheckConstraint(
            "(scope = 'global' AND organization_id IS NULL) OR "
            "(scope = 'organization' AND organization_id IS NOT NULL)",
            name='ck_roles_scope_organization',
        ),
    )

    def __repr__(self):
        return f"<Role {self.name} ({self.scope})>"


class RolePermission(Base):
    """Action a role holds for one permission."""
    __tablename__ = "role_permissions"

    id = Column(Uuid, primary_key=True, default=uuid4)
    role_id = Column(Uuid, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    permission_id = Column(
        Uuid, ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False
    )
    action = Column(String(10), nullable=False, default=PermissionAction.NONE.value)

    __table_args__ = (
        UniqueConstraint('role_id', 'permission_id', name='uq_role_permission'),
    )


# =============================================================================
# ORGANIZATIONS
# =============================================================================

class Organization(Base):
    """Tenant organization. Rows with ``deleted_at`` set are soft-deleted."""
    __tablename__ = "organizations"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    logo = Column(Text, nullable=True)
    metadata_ = Column("metadata", JSONB, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class OrganizationMember(Base):
    """Membership of a user in an organization through an org role."""
    __tablename__ = "organization_members"

    id = Column(Uuid, primary_key=True, default=uuid4)
    organization_id = Column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id = Column(Uuid, ForeignKey("roles.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('organization_id', 'user_id', name='uq_organization_member'),
    )


# =============================================================================
# USERS AND SESSIONS
# =============================================================================

class User(Base):
    """Platform account with an optional global role."""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid4)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=False, unique=True)
    password = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=UserStatus.ACTIVE.value)
    role_id = Column(Uuid, ForeignKey("roles.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class UserSession(Base):
    """Login session referenced by access tokens."""
    __tablename__ = "sessions"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    user_agent = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
