"""
RBAC Database Seeding

Reconciles the database with the code-defined manifest. Safe to run on
every boot:

    1. Insert permission keys that do not exist yet
    2. Insert global system roles that do not exist yet
    3. For every global role and every permission:
       - system roles: write the manifest action, overwriting drift
       - custom roles: add ``none`` only where no row exists

Organization roles are created once per organization by ``seed_org_roles``
inside the organization-creation transaction and are never reconciled here.

Usage:
    python -m rbac.seed
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.models import Permission, Role, RolePermission, utcnow

from .permissions import (
    PERMISSION_DESCRIPTIONS,
    PERMISSION_SCOPE_MAP,
    PermissionAction,
    PermissionScope,
)
from .roles import (
    DEFAULT_ORG_ROLE_DESCRIPTIONS,
    SYSTEM_ROLE_DESCRIPTIONS,
    SYSTEM_ROLE_PERMISSIONS,
    DefaultOrgRole,
    SystemRole,
    get_default_org_role_action,
    get_system_role_action,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeededOrgRoles:
    """Ids of the default roles created for a new organization."""
    owner_role_id: UUID
    admin_role_id: UUID
    member_role_id: UUID


def _insert(session: AsyncSession, table):
    """Dialect-specific INSERT supporting ON CONFLICT."""
    if session.bind.dialect.name == "postgresql":
        return pg_insert(table)
    return sqlite_insert(table)


# =============================================================================
# GLOBAL SEED
# =============================================================================

async def seed_permissions(session: AsyncSession) -> None:
    """Insert every manifest permission key; existing keys are left as they are."""
    rows = [
        {
            "id": uuid4(),
            "key": key.value,
            "scope": scope.value,
            "description": PERMISSION_DESCRIPTIONS.get(key),
            "created_at": utcnow(),
        }
        for key, scope in PERMISSION_SCOPE_MAP.items()
    ]
    stmt = _insert(session, Permission.__table__).values(rows).on_conflict_do_nothing()
    await session.execute(stmt)


async def seed_system_roles(session: AsyncSession) -> None:
    """Insert the global system roles; existing roles are left as they are."""
    now = utcnow()
    rows = [
        {
            "id": uuid4(),
            "name": role.value,
            "description": SYSTEM_ROLE_DESCRIPTIONS.get(role),
            "is_system": True,
            "scope": PermissionScope.GLOBAL.value,
            "organization_id": None,
            "created_at": now,
            "updated_at": now,
        }
        for role in SystemRole
    ]
    stmt = _insert(session, Role.__table__).values(rows).on_conflict_do_nothing()
    await session.execute(stmt)


async def reconcile_global_role_permissions(session: AsyncSession) -> None:
    """Bring every global role's rows in line with the permission manifest."""
    permissions = (await session.execute(select(Permission.id, Permission.key))).all()
    roles = (
        await session.execute(
            select(Role.id, Role.name, Role.is_system).where(Role.organization_id.is_(None))
        )
    ).all()

    system_names = {role.value for role in SYSTEM_ROLE_PERMISSIONS}
    system_rows: List[Dict] = []
    custom_rows: List[Dict] = []

    for role in roles:
        is_manifest_role = role.is_system and role.name in system_names
        for permission in permissions:
            if is_manifest_role:
                action = get_system_role_action(SystemRole(role.name), permission.key)
                system_rows.append({
                    "id": uuid4(),
                    "role_id": role.id,
                    "permission_id": permission.id,
                    "action": PermissionAction(action).value,
                })
            else:
                custom_rows.append({
                    "id": uuid4(),
                    "role_id": role.id,
                    "permission_id": permission.id,
                    "action": PermissionAction.NONE.value,
                })

    if system_rows:
        stmt = _insert(session, RolePermission.__table__).values(system_rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=["role_id", "permission_id"],
            set_={"action": stmt.excluded.action},
        )
        await session.execute(stmt)

    if custom_rows:
        stmt = _insert(session, RolePermission.__table__).values(custom_rows)
        stmt = stmt.on_conflict_do_nothing(index_elements=["role_id", "permission_id"])
        await session.execute(stmt)

    logger.debug(
        f"Reconciled {len(system_rows)} system and {len(custom_rows)} custom role permission rows"
    )


async def seed_rbac(session_factory: Optional[async_sessionmaker[AsyncSession]] = None) -> None:
    """
    Run the full idempotent seed in one transaction.

    Raises:
        Exception: Any database failure; the transaction is rolled back.
    """
    if session_factory is None:
        from database.async_engine import get_async_session_factory
        session_factory = get_async_session_factory()

    async with session_factory() as session:
        async with session.begin():
            await seed_permissions(session)
            await seed_system_roles(session)
            await reconcile_global_role_permissions(session)

    logger.info("RBAC seed complete")


# =============================================================================
# ORGANIZATION SEED
# =============================================================================

async def seed_org_roles(organization_id: UUID, session: AsyncSession) -> SeededOrgRoles:
    """
    Create the default owner/admin/member roles for a new organization.

    Runs in the caller's transaction and flushes but does not commit. Not
    idempotent: calling it twice for one organization violates the role name
    constraint.

    Raises:
        RuntimeError: Organization-scoped permissions have not been seeded
    """
    permissions = (
        await session.execute(
            select(Permission.id, Permission.key).where(
                Permission.scope == PermissionScope.ORGANIZATION.value
            )
        )
    ).all()
    if not permissions:
        raise RuntimeError("No organization-scoped permissions found; run the RBAC seed first")

    role_ids: Dict[DefaultOrgRole, UUID] = {}
    for org_role in DefaultOrgRole:
        role = Role(
            id=uuid4(),
            name=org_role.value,
            description=DEFAULT_ORG_ROLE_DESCRIPTIONS.get(org_role),
            is_system=True,
            scope=PermissionScope.ORGANIZATION.value,
            organization_id=organization_id,
        )
        session.add(role)
        for permission in permissions:
            session.add(RolePermission(
                role_id=role.id,
                permission_id=permission.id,
                action=get_default_org_role_action(org_role, permission.key).value,
            ))
        role_ids[org_role] = role.id

    await session.flush()

    return SeededOrgRoles(
        owner_role_id=role_ids[DefaultOrgRole.OWNER],
        admin_role_id=role_ids[DefaultOrgRole.ADMIN],
        member_role_id=role_ids[DefaultOrgRole.MEMBER],
    )


# =============================================================================
# COMMAND LINE
# =============================================================================

async def main() -> None:
    from config.database import get_database_settings
    from config.logging_config import configure_logging
    from database.async_engine import close_database, init_models

    configure_logging()
    if get_database_settings().is_sqlite:
        await init_models()
    try:
        await seed_rbac()
    finally:
        await close_database()


if __name__ == "__main__":
    asyncio.run(main())
