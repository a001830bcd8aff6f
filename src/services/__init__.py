"""
Services Module - data access behind the RBAC core.

- role_service: role resolution (cached) and custom role administration
- session_service: session lookup and revocation
- user_service: user lookup and account status
- organization_service: organizations, memberships and org roles
"""

from . import role_service, session_service, user_service, organization_service

__all__ = [
    "role_service",
    "session_service",
    "user_service",
    "organization_service",
]
