"""Cache key and tag registry shared by every server process.

Keys and tags are colon-joined strings. Tags carry a ``tag:`` prefix so a
tag set never collides with a cached value.
"""

from enum import IntEnum
from typing import Any, Union


class CacheTime(IntEnum):
    """Named cache lifetimes in seconds."""

    ONE_MINUTE = 60
    FIVE_MINUTES = 5 * 60
    FIFTEEN_MINUTES = 15 * 60
    ONE_HOUR = 60 * 60
    SIX_HOURS = 6 * 60 * 60
    TWELVE_HOURS = 12 * 60 * 60
    ONE_DAY = 24 * 60 * 60
    ONE_WEEK = 7 * 24 * 60 * 60
    TWO_WEEKS = 14 * 24 * 60 * 60
    ONE_MONTH = 30 * 24 * 60 * 60


TTL = Union[CacheTime, int]

TAG_PREFIX = "tag"


def generate_cache_key(*parts: Any) -> str:
    """Join key parts with ``:``."""
    return ":".join(str(part) for part in parts)


def generate_cache_tag(*parts: Any) -> str:
    """Join tag parts with ``:`` under the ``tag:`` namespace."""
    return generate_cache_key(TAG_PREFIX, *parts)


class CacheKeys:
    """Keys for cached records."""

    @staticmethod
    def user(user_id: Any) -> str:
        return generate_cache_key("users", user_id)

    @staticmethod
    def role(role_id: Any) -> str:
        return generate_cache_key("roles", role_id)

    @staticmethod
    def user_session(user_id: Any, session_id: Any) -> str:
        return generate_cache_key("users", user_id, "sessions", session_id)

    @staticmethod
    def organization_by_slug(slug: str) -> str:
        return generate_cache_key("orgs", "slug", slug)

    @staticmethod
    def organization_member(organization_id: Any, user_id: Any) -> str:
        return generate_cache_key("orgs", organization_id, "members", user_id)

    @staticmethod
    def organization_role(role_id: Any) -> str:
        return generate_cache_key("orgs", "roles", role_id)


class CacheTags:
    """Tags grouping cached records for bulk invalidation."""

    USERS = generate_cache_tag("users")
    SESSIONS = generate_cache_tag("sessions")

    @staticmethod
    def user(user_id: Any) -> str:
        return generate_cache_tag("users", user_id)

    @staticmethod
    def role(role_id: Any) -> str:
        return generate_cache_tag("roles", role_id)

    @staticmethod
    def session(session_id: Any) -> str:
        return generate_cache_tag("sessions", session_id)

    @staticmethod
    def user_sessions(user_id: Any) -> str:
        return generate_cache_tag("users", user_id, "sessions")

    @staticmethod
    def organization(organization_id: Any) -> str:
        return generate_cache_tag("orgs", organization_id)

    @staticmethod
    def organization_slug(slug: str) -> str:
        return generate_cache_tag("orgs", "slug", slug)

    @staticmethod
    def organization_role(role_id: Any) -> str:
        return generate_cache_tag("orgs", "roles", role_id)
