"""
FastAPI dependencies wiring the RBAC core to the service layer.

Each server process picks a profile:
- AUTH: owns sessions; suspended/inactive users have their session deleted
- MAIN: validates sessions only; revocation is left to the auth server

Usage in endpoints:
    from web.dependencies import authorize, authorize_org, get_authenticator

    authenticate = get_authenticator(ServerProfile.MAIN)

    @router.patch(
        "/organizations/members/{user_id}",
        dependencies=[
            Depends(authenticate),
            Depends(authorize_org(PermissionKey.MEMBER_MANAGEMENT, PermissionAction.WRITE)),
        ],
    )
    async def update_member(request: Request, user_id: UUID): ...
"""

from enum import Enum
from functools import lru_cache
from uuid import UUID

from fastapi import Request

from rbac.authentication import AuthCallbacks, create_authenticator
from rbac.authorization import AuthorizeOrgCallbacks, authorize, create_authorize_org
from services import organization_service, role_service, session_service, user_service


class ServerProfile(str, Enum):
    """How a server process treats sessions of rejected users."""

    AUTH = "auth"
    MAIN = "main"


def build_auth_callbacks(profile: ServerProfile) -> AuthCallbacks:
    """Session and user lookups for a server profile."""
    delete_session = (
        session_service.delete_session
        if profile == ServerProfile.AUTH
        else session_service.keep_session
    )
    return AuthCallbacks(
        find_session=session_service.find_session,
        find_user=user_service.find_session_user,
        delete_session=delete_session,
    )


@lru_cache(maxsize=None)
def get_authenticator(profile: ServerProfile):
    """Authentication dependency for a server profile (one per process)."""
    return create_authenticator(build_auth_callbacks(ServerProfile(profile)))


authorize_org = create_authorize_org(AuthorizeOrgCallbacks(
    find_org_by_slug=organization_service.find_organization_by_slug,
    find_member=organization_service.find_member,
    find_role_with_permissions=role_service.resolve_org_role,
))


def get_default_user_role_id(request: Request) -> UUID:
    """Role id for new accounts, resolved at startup."""
    return request.app.state.default_user_role_id


__all__ = [
    "ServerProfile",
    "build_auth_callbacks",
    "get_authenticator",
    "authorize",
    "authorize_org",
    "get_default_user_role_id",
]
