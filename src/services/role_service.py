"""
Role Service

Resolves role ids into scope-filtered permission maps (cached) and
administers custom global roles.

Cache layout:
    roles:{id}       global view,        tag:roles:{id}
    orgs:roles:{id}  organization view,  tag:orgs:roles:{id} + tag:roles:{id}

Every write invalidates ``tag:roles:{id}``, which drops both views.
"""

import logging
from typing import Dict, List, Mapping, Optional
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from cache import CacheKeys, CacheTags, CacheTime, cache_invalidate, cacheable
from database.async_engine import get_async_session
from database.models import Permission, Role, RolePermission
from rbac.context import RoleWithPermissions
from rbac.errors import AuthError
from rbac.permissions import PermissionAction, PermissionKey, PermissionScope
from rbac.roles import DEFAULT_USER_ROLE

logger = logging.getLogger(__name__)

_KNOWN_KEYS = {key.value for key in PermissionKey}


def _role_tags(role_id, *args, **kwargs) -> str:
    return CacheTags.role(role_id)


def _org_role_tags(role_id, *args, **kwargs) -> str:
    return CacheTags.organization_role(role_id)


async def _load_role(role_id: UUID, scope: PermissionScope) -> Optional[RoleWithPermissions]:
    """
    Load a role of ``scope`` with the rows of its permissions in that scope.

    A role of the other scope resolves to None: a global role is never a
    valid membership role, and an organization role is never a user role.
    """
    async with get_async_session() as session:
        role = await session.get(Role, role_id)
        if role is None or role.scope != scope.value:
            return None

        rows = (
            await session.execute(
                select(Permission.key, Permission.scope, RolePermission.action)
                .join(Permission, RolePermission.permission_id == Permission.id)
                .where(RolePermission.role_id == role_id)
            )
        ).all()

    permissions = {
        PermissionKey(row.key): PermissionAction(row.action)
        for row in rows
        if row.scope == scope.value and row.key in _KNOWN_KEYS
    }

    return RoleWithPermissions(
        id=role.id,
        name=role.name,
        description=role.description,
        is_system=role.is_system,
        scope=PermissionScope(role.scope),
        organization_id=role.organization_id,
        permissions=permissions,
    )


# =============================================================================
# RESOLUTION
# =============================================================================

@cacheable(
    key=lambda role_id: CacheKeys.role(role_id),
    ttl=CacheTime.ONE_HOUR,
    tags=[lambda role_id: CacheTags.role(role_id)],
    model=RoleWithPermissions,
)
async def resolve_global_role(role_id: UUID) -> Optional[RoleWithPermissions]:
    """Global role with its global-scoped permissions, None if there is no such role."""
    return await _load_role(role_id, PermissionScope.GLOBAL)


@cacheable(
    key=lambda role_id: CacheKeys.organization_role(role_id),
    ttl=CacheTime.ONE_HOUR,
    tags=[
        lambda role_id: CacheTags.organization_role(role_id),
        lambda role_id: CacheTags.role(role_id),
    ],
    model=RoleWithPermissions,
)
async def resolve_org_role(role_id: UUID) -> Optional[RoleWithPermissions]:
    """Organization role with its organization-scoped permissions, None if there is none."""
    return await _load_role(role_id, PermissionScope.ORGANIZATION)


async def resolve_default_user_role_id() -> UUID:
    """
    Id of the global role assigned to new accounts.

    Resolved once at startup, after the seed has run.

    Raises:
        RuntimeError: The default role is missing
    """
    async with get_async_session() as session:
        role_id = await session.scalar(
            select(Role.id).where(
                Role.name == DEFAULT_USER_ROLE.value,
                Role.organization_id.is_(None),
            )
        )

    if role_id is None:
        raise RuntimeError(f"Default role '{DEFAULT_USER_ROLE.value}' is not seeded")
    return role_id


# =============================================================================
# ADMINISTRATION
# =============================================================================

async def list_global_roles() -> List[RoleWithPermissions]:
    """All global roles with their global permissions, ordered by name."""
    async with get_async_session() as session:
        role_ids = (
            await session.scalars(
                select(Role.id).where(Role.organization_id.is_(None)).order_by(Role.name)
            )
        ).all()

    roles = []
    for role_id in role_ids:
        role = await resolve_global_role(role_id)
        if role is not None:
            roles.append(role)
    return roles


async def _get_mutable_role(session, role_id: UUID) -> Role:
    role = await session.get(Role, role_id)
    if role is None:
        raise AuthError.not_found("Role not found")
    if role.is_system:
        raise AuthError.forbidden("System roles cannot be modified")
    return role


async def create_role(name: str, description: Optional[str] = None) -> RoleWithPermissions:
    """
    Create a custom global role holding ``none`` for every permission.

    Raises:
        AuthError: BAD_REQUEST when a global role with that name exists
    """
    role_id = uuid4()
    try:
        async with get_async_session() as session:
            session.add(Role(
                id=role_id,
                name=name,
                description=description,
                is_system=False,
                scope=PermissionScope.GLOBAL.value,
                organization_id=None,
            ))
            permission_ids = (await session.scalars(select(Permission.id))).all()
            for permission_id in permission_ids:
                session.add(RolePermission(
                    role_id=role_id,
                    permission_id=permission_id,
                    action=PermissionAction.NONE.value,
                ))
    except IntegrityError:
        raise AuthError.bad_request(f"Role '{name}' already exists")

    logger.info(f"Created role {name} ({role_id})")
    return await resolve_global_role(role_id)


@cache_invalidate(tags=[_role_tags, _org_role_tags])
async def update_role(
    role_id: UUID,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> None:
    """
    Rename or re-describe a custom role.

    Raises:
        AuthError: NOT_FOUND for an unknown role, FORBIDDEN for a system role
    """
    try:
        async with get_async_session() as session:
            role = await _get_mutable_role(session, role_id)
            if name is not None:
                role.name = name
            if description is not None:
                role.description = description
    except IntegrityError:
        raise AuthError.bad_request(f"Role '{name}' already exists")


@cache_invalidate(tags=[_role_tags, _org_role_tags])
async def set_role_permissions(
    role_id: UUID,
    permissions: Mapping[PermissionKey, PermissionAction],
) -> None:
    """
    Replace a custom role's permission map.

    Every known permission gets a row; keys missing from ``permissions``
    are set to ``none``.

    Raises:
        AuthError: NOT_FOUND for an unknown role, FORBIDDEN for a system role
    """
    requested: Dict[str, str] = {
        PermissionKey(key).value: PermissionAction(action).value
        for key, action in permissions.items()
    }

    async with get_async_session() as session:
        await _get_mutable_role(session, role_id)

        existing = {
            row.permission_id: row
            for row in (
                await session.scalars(
                    select(RolePermission).where(RolePermission.role_id == role_id)
                )
            ).all()
        }
        for permission in (await session.scalars(select(Permission))).all():
            action = requested.get(permission.key, PermissionAction.NONE.value)
            row = existing.get(permission.id)
            if row is None:
                session.add(RolePermission(
                    role_id=role_id, permission_id=permission.id, action=action
                ))
            else:
                row.action = action

    logger.info(f"Updated permissions of role {role_id}")


@cache_invalidate(tags=[_role_tags, _org_role_tags])
async def delete_role(role_id: UUID) -> None:
    """
    Delete a custom role. Users holding it are left without a global role.

    Raises:
        AuthError: NOT_FOUND for an unknown role, FORBIDDEN for a system role
    """
    async with get_async_session() as session:
        role = await _get_mutable_role(session, role_id)
        await session.delete(role)

    logger.info(f"Deleted role {role_id}")
