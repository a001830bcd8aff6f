"""Cache layer shared by the platform servers.

Provides a Redis-backed tagged cache with read-through memoization and
tag-based bulk invalidation.
"""

from .redis_client import (
    RedisClient,
    get_redis_client,
    close_redis_client,
    redis_health_check,
)

from .tag_cache import (
    TagCache,
    init_tag_cache,
    get_tag_cache,
    reset_tag_cache,
)

from .decorators import cacheable, cache_invalidate

from .keys import (
    CacheTime,
    CacheKeys,
    CacheTags,
    generate_cache_key,
    generate_cache_tag,
)

__all__ = [
    # Redis Client
    "RedisClient",
    "get_redis_client",
    "close_redis_client",
    "redis_health_check",
    # Tag Cache
    "TagCache",
    "init_tag_cache",
    "get_tag_cache",
    "reset_tag_cache",
    # Decorators
    "cacheable",
    "cache_invalidate",
    # Keys
    "CacheTime",
    "CacheKeys",
    "CacheTags",
    "generate_cache_key",
    "generate_cache_tag",
]
