"""Tagged key-value cache over Redis.

Every cached value may belong to any number of tags. A tag is a Redis set
holding the keys that belong to it, so invalidating a tag deletes every
member key together with the set itself.

The cache is strictly best effort: store errors are logged and reported as
a miss (reads) or ignored (writes and invalidations). Callers never see a
Redis failure.

``set_tagged`` uses ``EXPIRE NX`` and ``EXPIRE GT`` and therefore needs
Redis 7.0 or newer; ``RedisClient.connect`` rejects older servers.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, List, Optional

from redis.asyncio import Redis

from .keys import TTL

logger = logging.getLogger(__name__)

# Global cache instance
_tag_cache: Optional["TagCache"] = None


class TagCache:
    """Read/write/invalidate JSON values with tag-based bulk invalidation.

    Usage:
        cache = TagCache(redis)
        await cache.set_tagged("roles:1", role, CacheTime.ONE_HOUR, ["tag:roles:1"])
        role = await cache.get("roles:1")
        await cache.invalidate_by_tag("tag:roles:1")
    """

    def __init__(self, client: Optional[Redis] = None, key_prefix: str = ""):
        """Initialize the cache.

        Args:
            client: ``redis.asyncio`` client. With no client every read is a
                miss and every write is dropped.
            key_prefix: Prefix applied to keys and tags.
        """
        self._client = client
        self._prefix = key_prefix

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}{key}" if self._prefix else key

    @staticmethod
    def _serialize(value: Any) -> str:
        return json.dumps(value, default=str)

    @staticmethod
    def _deserialize(data: Optional[str]) -> Any:
        if data is None:
            return None
        return json.loads(data)

    async def get(self, key: str) -> Any:
        """Get a cached value.

        Args:
            key: Cache key.

        Returns:
            Decoded value, or None on a miss or any store error.
        """
        if not self._client:
            return None

        try:
            data = await self._client.get(self._full_key(key))
            return self._deserialize(data)
        except Exception as e:
            logger.warning(f"Cache GET error for {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: TTL) -> None:
        """Store a value with a TTL. None values are never stored."""
        if not self._client or value is None:
            return

        try:
            await self._client.set(self._full_key(key), self._serialize(value), ex=int(ttl))
        except Exception as e:
            logger.warning(f"Cache SET error for {key}: {e}")

    async def set_tagged(self, key: str, value: Any, ttl: TTL, tags: Iterable[str]) -> None:
        """Store a value and register it under every tag.

        A tag's own expiry is set when it has none and otherwise only ever
        extended, so a tag outlives its longest-lived member.
        """
        if not self._client or value is None:
            return

        seconds = int(ttl)
        full_key = self._full_key(key)

        try:
            pipe = self._client.pipeline(transaction=True)
            pipe.set(full_key, self._serialize(value), ex=seconds)
            for tag in tags:
                full_tag = self._full_key(tag)
                pipe.sadd(full_tag, full_key)
                pipe.expire(full_tag, seconds, nx=True)
                pipe.expire(full_tag, seconds, gt=True)
            await pipe.execute()
        except Exception as e:
            logger.warning(f"Cache SET (tagged) error for {key}: {e}")

    async def invalidate(self, *keys: str) -> None:
        """Delete keys outright."""
        if not self._client or not keys:
            return

        try:
            await self._client.delete(*(self._full_key(k) for k in keys))
        except Exception as e:
            logger.warning(f"Cache DELETE error for {keys}: {e}")

    async def invalidate_by_tag(self, *tags: str) -> None:
        """Delete every key registered under the tags, then the tag sets."""
        if not self._client or not tags:
            return

        try:
            full_tags = [self._full_key(tag) for tag in tags]
            members: List[str] = []
            for full_tag in full_tags:
                members.extend(await self._client.smembers(full_tag))

            pipe = self._client.pipeline(transaction=True)
            if members:
                pipe.delete(*members)
            pipe.delete(*full_tags)
            await pipe.execute()

            logger.debug(f"Invalidated {len(members)} cache entries for tags {list(tags)}")
        except Exception as e:
            logger.warning(f"Cache tag invalidation error for {tags}: {e}")


def init_tag_cache(client: Optional[Redis] = None, key_prefix: str = "") -> TagCache:
    """Install the process-wide cache instance."""
    global _tag_cache
    _tag_cache = TagCache(client, key_prefix=key_prefix)
    return _tag_cache


def get_tag_cache() -> TagCache:
    """Get the process-wide cache, a disabled one if none was installed."""
    global _tag_cache
    if _tag_cache is None:
        _tag_cache = TagCache()
    return _tag_cache


def reset_tag_cache() -> None:
    """Drop the process-wide cache instance (for testing)."""
    global _tag_cache
    _tag_cache = None
