"""
Organization Service

Organization and membership lookups for the organization gate, plus the
writes that create organizations and move members between org roles.

Membership roles must be organization roles of the same organization;
every write that assigns a role checks this.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from cache import CacheKeys, CacheTags, CacheTime, cache_invalidate, cacheable, get_tag_cache
from database.async_engine import get_async_session
from database.models import Organization, OrganizationMember, Role, User
from rbac.context import OrganizationMemberRecord, OrganizationRecord, RoleWithPermissions
from rbac.errors import AuthError
from rbac.permissions import PermissionScope
from rbac.roles import DefaultOrgRole
from rbac.seed import seed_org_roles

from .role_service import resolve_org_role

logger = logging.getLogger(__name__)


def _organization_tag(organization_id, *args, **kwargs) -> str:
    return CacheTags.organization(organization_id)


# =============================================================================
# LOOKUPS
# =============================================================================

@cacheable(
    key=lambda slug: CacheKeys.organization_by_slug(slug),
    ttl=CacheTime.ONE_HOUR,
    tags=[lambda slug: CacheTags.organization_slug(slug)],
    model=OrganizationRecord,
)
async def find_organization_by_slug(slug: str) -> Optional[OrganizationRecord]:
    """Live organization by slug; soft-deleted organizations are not found."""
    async with get_async_session() as session:
        organization = await session.scalar(
            select(Organization).where(
                Organization.slug == slug,
                Organization.deleted_at.is_(None),
            )
        )
        if organization is None:
            return None
        return OrganizationRecord.model_validate(organization)


@cacheable(
    key=lambda organization_id, user_id: CacheKeys.organization_member(organization_id, user_id),
    ttl=CacheTime.FIFTEEN_MINUTES,
    tags=[lambda organization_id, user_id: CacheTags.organization(organization_id)],
    model=OrganizationMemberRecord,
)
async def find_member(organization_id: UUID, user_id: UUID) -> Optional[OrganizationMemberRecord]:
    """Membership of a user in an organization, None if not a member."""
    async with get_async_session() as session:
        member = await session.scalar(
            select(OrganizationMember).where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.user_id == user_id,
            )
        )
        if member is None:
            return None
        return OrganizationMemberRecord.model_validate(member)


async def find_org_role_by_name(organization_id: UUID, name: str) -> Optional[RoleWithPermissions]:
    """Organization role by name with its organization permissions."""
    async with get_async_session() as session:
        role_id = await session.scalar(
            select(Role.id).where(
                Role.organization_id == organization_id,
                Role.name == name,
            )
        )
    if role_id is None:
        return None
    return await resolve_org_role(role_id)


async def _get_org_role(session, organization_id: UUID, role_id: UUID) -> Role:
    role = await session.get(Role, role_id)
    if role is None:
        raise AuthError.not_found("Role not found")
    if role.scope != PermissionScope.ORGANIZATION.value or role.organization_id != organization_id:
        raise AuthError.bad_request("Role does not belong to this organization")
    return role


def _is_owner_role(role: Optional[Role]) -> bool:
    return role is not None and role.is_system and role.name == DefaultOrgRole.OWNER.value


async def _get_member(session, organization_id: UUID, user_id: UUID) -> OrganizationMember:
    member = await session.scalar(
        select(OrganizationMember).where(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.user_id == user_id,
        )
    )
    if member is None:
        raise AuthError.not_found("Member not found")
    return member


# =============================================================================
# WRITES
# =============================================================================

async def create_organization(
    name: str,
    slug: str,
    owner_user_id: UUID,
    logo: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> OrganizationRecord:
    """
    Create an organization with its default roles and its owner, atomically.

    Raises:
        AuthError: NOT_FOUND for an unknown owner, BAD_REQUEST when the slug
            is taken
        RuntimeError: Organization permissions have not been seeded
    """
    organization_id = uuid4()
    try:
        async with get_async_session() as session:
            if await session.get(User, owner_user_id) is None:
                raise AuthError.not_found("Owner user not found")

            organization = Organization(
                id=organization_id,
                name=name,
                slug=slug,
                logo=logo,
                metadata_=metadata,
            )
            session.add(organization)
            await session.flush()

            roles = await seed_org_roles(organization_id, session)
            session.add(OrganizationMember(
                organization_id=organization_id,
                user_id=owner_user_id,
                role_id=roles.owner_role_id,
            ))
            await session.flush()
            record = OrganizationRecord.model_validate(organization)
    except IntegrityError:
        raise AuthError.bad_request(f"Organization slug '{slug}' is already taken")

    logger.info(f"Created organization {slug} ({organization_id}) owned by {owner_user_id}")
    return record


@cache_invalidate(tags=[_organization_tag])
async def add_member(organization_id: UUID, user_id: UUID, role_id: UUID) -> OrganizationMemberRecord:
    """
    Add a user to an organization under one of its roles.

    Raises:
        AuthError: BAD_REQUEST for a foreign role or an existing member,
            FORBIDDEN for the owner role
    """
    try:
        async with get_async_session() as session:
            role = await _get_org_role(session, organization_id, role_id)
            if _is_owner_role(role):
                raise AuthError.forbidden("Ownership can only be granted by transferring it")
            member = OrganizationMember(
                id=uuid4(),
                organization_id=organization_id,
                user_id=user_id,
                role_id=role_id,
            )
            session.add(member)
            await session.flush()
            record = OrganizationMemberRecord.model_validate(member)
    except IntegrityError:
        raise AuthError.bad_request("User is already a member of this organization")
    return record


@cache_invalidate(tags=[_organization_tag])
async def update_member_role(organization_id: UUID, user_id: UUID, role_id: UUID) -> None:
    """
    Move a member to another role of the same organization.

    Raises:
        AuthError: NOT_FOUND for an unknown member or role, BAD_REQUEST for a
            role of another organization or of global scope, FORBIDDEN when
            the owner role is given or taken away
    """
    async with get_async_session() as session:
        role = await _get_org_role(session, organization_id, role_id)
        member = await _get_member(session, organization_id, user_id)
        if _is_owner_role(await session.get(Role, member.role_id)):
            raise AuthError.forbidden(
                "The owner's role cannot be changed; transfer ownership instead"
            )
        if _is_owner_role(role):
            raise AuthError.forbidden("Ownership can only be granted by transferring it")
        member.role_id = role_id


@cache_invalidate(tags=[_organization_tag])
async def remove_member(organization_id: UUID, user_id: UUID) -> None:
    """
    Remove a member from an organization.

    Raises:
        AuthError: NOT_FOUND for an unknown member, FORBIDDEN for the owner
    """
    async with get_async_session() as session:
        member = await _get_member(session, organization_id, user_id)
        if _is_owner_role(await session.get(Role, member.role_id)):
            raise AuthError.forbidden("The owner cannot be removed; transfer ownership first")
        await session.delete(member)


@cache_invalidate(tags=[_organization_tag])
async def transfer_ownership(
    organization_id: UUID,
    from_user_id: UUID,
    to_user_id: UUID,
) -> None:
    """
    Hand the owner role to another member; the previous owner becomes admin.

    Raises:
        AuthError: NOT_FOUND for unknown members, BAD_REQUEST when the current
            holder is not the owner or hands ownership to themselves
    """
    if from_user_id == to_user_id:
        raise AuthError.bad_request("You are already the owner")

    async with get_async_session() as session:
        roles = {
            role.name: role
            for role in (
                await session.scalars(select(Role).where(Role.organization_id == organization_id))
            ).all()
        }
        owner_role = roles.get(DefaultOrgRole.OWNER.value)
        admin_role = roles.get(DefaultOrgRole.ADMIN.value)
        if owner_role is None or admin_role is None:
            raise AuthError.internal("Organization default roles are missing")

        current = await _get_member(session, organization_id, from_user_id)
        successor = await _get_member(session, organization_id, to_user_id)
        if current.role_id != owner_role.id:
            raise AuthError.bad_request("Only the owner can transfer ownership")

        successor.role_id = owner_role.id
        current.role_id = admin_role.id

    logger.info(f"Ownership of organization {organization_id} moved to {to_user_id}")


async def soft_delete_organization(organization_id: UUID) -> None:
    """
    Soft-delete an organization. It disappears from every authorization lookup.

    Raises:
        AuthError: NOT_FOUND for an unknown or already deleted organization
    """
    async with get_async_session() as session:
        organization = await session.get(Organization, organization_id)
        if organization is None or organization.deleted_at is not None:
            raise AuthError.not_found("Organization not found")
        organization.deleted_at = datetime.now(timezone.utc)
        slug = organization.slug

    await get_tag_cache().invalidate_by_tag(
        CacheTags.organization(organization_id),
        CacheTags.organization_slug(slug),
    )
    logger.info(f"Soft-deleted organization {slug} ({organization_id})")
