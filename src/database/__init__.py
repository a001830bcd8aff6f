"""Database layer: ORM models and async engine/session management."""

from .async_engine import (
    create_engine,
    enable_sqlite_foreign_keys,
    get_async_engine,
    get_async_session,
    get_async_session_factory,
    get_session_factory,
    init_models,
    check_database_connection,
    close_database,
)
from .models import (
    Base,
    Permission,
    Role,
    RolePermission,
    Organization,
    OrganizationMember,
    User,
    UserSession,
)

__all__ = [
    # Engine
    "create_engine",
    "enable_sqlite_foreign_keys",
    "get_async_engine",
    "get_async_session",
    "get_async_session_factory",
    "get_session_factory",
    "init_models",
    "check_database_connection",
    "close_database",
    # Models
    "Base",
    "Permission",
    "Role",
    "RolePermission",
    "Organization",
    "OrganizationMember",
    "User",
    "UserSession",
]
