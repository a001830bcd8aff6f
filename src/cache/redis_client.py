"""Redis connection shared by the tag cache.

Each server process holds one ``RedisClient``. It owns the connection pool
and nothing else; cache semantics live in ``cache.tag_cache``.

Tag expiry is maintained with ``EXPIRE ... NX`` and ``EXPIRE ... GT``, which
Redis only understands from 7.0 on. Inside the MULTI/EXEC transaction of
``TagCache.set_tagged`` an older server would abort every write, so
``connect`` refuses such servers and startup falls back to running uncached.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from config.settings import RedisSettings, get_settings

logger = logging.getLogger(__name__)

MIN_SERVER_VERSION: Tuple[int, int] = (7, 0)

_redis_client: Optional["RedisClient"] = None


def parse_server_version(version: Any) -> Tuple[int, ...]:
    """``"7.2.4"`` -> ``(7, 2, 4)``. Unparseable parts count as 0."""
    parts = []
    for part in str(version).split("."):
        parts.append(int(part) if part.isdigit() else 0)
    return tuple(parts)


class RedisClient:
    """Pooled ``redis.asyncio`` connection for the tag cache.

    Usage:
        client = RedisClient()
        redis = await client.connect()
        init_tag_cache(redis, key_prefix=client.settings.key_prefix)
        ...
        await client.close()
    """

    def __init__(self, settings: Optional[RedisSettings] = None):
        self.settings = settings or get_settings().redis
        self._client: Optional[Redis] = None

    @property
    def client(self) -> Optional[Redis]:
        return self._client

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> Redis:
        """
        Open the pool and check the server.

        Raises:
            RedisError: The server cannot be reached
            RuntimeError: The server is older than Redis 7
        """
        if self._client is not None:
            return self._client

        pool = ConnectionPool.from_url(
            self.settings.url,
            max_connections=self.settings.max_connections,
            decode_responses=True,
            socket_timeout=self.settings.socket_timeout,
            socket_connect_timeout=self.settings.socket_connect_timeout,
        )
        client = Redis(connection_pool=pool)

        try:
            server = await client.info("server")
            version = server.get("redis_version", "0")
            if parse_server_version(version)[:2] < MIN_SERVER_VERSION:
                raise RuntimeError(
                    f"Redis {version} does not support EXPIRE NX/GT; "
                    f"the tag cache needs Redis {MIN_SERVER_VERSION[0]}.{MIN_SERVER_VERSION[1]}+"
                )
        except Exception:
            await client.aclose(close_connection_pool=True)
            raise

        self._client = client
        logger.info(f"Connected to Redis {version} at {self.settings.host}:{self.settings.port}")
        return client

    async def close(self) -> None:
        if self._client is None:
            return

        await self._client.aclose(close_connection_pool=True)
        self._client = None
        logger.info("Redis connection closed")

    async def ping(self) -> bool:
        if self._client is None:
            return False

        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False


async def get_redis_client() -> RedisClient:
    """Connected process-wide client, created on first call."""
    global _redis_client

    if _redis_client is None:
        client = RedisClient()
        await client.connect()
        _redis_client = client
    return _redis_client


async def close_redis_client() -> None:
    global _redis_client

    if _redis_client is not None:
        await _redis_client.close()
        _redis_client = None


async def redis_health_check() -> Dict[str, Any]:
    """Cache status for ``/health``: unavailable, healthy or unhealthy."""
    if _redis_client is None:
        return {"status": "unavailable", "connected": False}

    healthy = await _redis_client.ping()
    return {
        "status": "healthy" if healthy else "unhealthy",
        "connected": _redis_client.is_connected,
    }
