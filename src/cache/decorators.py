"""Read-through caching and write-then-invalidate decorators.

Usage:
    @cacheable(
        key=lambda role_id: CacheKeys.role(role_id),
        ttl=CacheTime.ONE_HOUR,
        tags=[lambda role_id: CacheTags.role(role_id)],
        model=RoleWithPermissions,
    )
    async def resolve_global_role(role_id): ...

    @cache_invalidate(tags=[lambda role_id, **_: CacheTags.role(role_id)])
    async def update_role(role_id, **changes): ...
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

from pydantic import TypeAdapter, ValidationError

from .keys import TTL
from .tag_cache import get_tag_cache

logger = logging.getLogger(__name__)

T = TypeVar("T")

KeyFunc = Callable[..., str]


def cacheable(
    key: KeyFunc,
    ttl: TTL,
    tags: Optional[Sequence[KeyFunc]] = None,
    model: Optional[Any] = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Memoize an async function in the tag cache.

    The key (and every tag) is derived from the call arguments. On a miss
    the function runs and a non-None result is stored, registered under the
    tags when any are given.

    Args:
        key: Builds the cache key from the call arguments.
        ttl: Lifetime of the cached value.
        tags: Build tag names from the call arguments.
        model: Result type. Results are dumped to JSON and cached payloads
            validated back into this type. Without it values are cached as
            plain JSON.

    Returns:
        Decorator function.
    """
    adapter = TypeAdapter(model) if model is not None else None

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            cache = get_tag_cache()
            cache_key = key(*args, **kwargs)

            cached = await cache.get(cache_key)
            if cached is not None:
                if adapter is None:
                    return cached
                try:
                    return adapter.validate_python(cached)
                except ValidationError as e:
                    logger.warning(f"Discarding malformed cache entry {cache_key}: {e}")

            result = await func(*args, **kwargs)
            if result is None:
                return result

            payload = adapter.dump_python(result, mode="json") if adapter is not None else result
            if tags:
                tag_names = [tag(*args, **kwargs) for tag in tags]
                await cache.set_tagged(cache_key, payload, ttl, tag_names)
            else:
                await cache.set(cache_key, payload, ttl)

            return result

        return wrapper
    return decorator


def cache_invalidate(
    keys: Sequence[KeyFunc] = (),
    tags: Sequence[KeyFunc] = (),
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Invalidate cache entries after an async write succeeds.

    The wrapped function runs first; if it raises nothing is invalidated.
    Keys and tags are derived from the same call arguments.
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            result = await func(*args, **kwargs)

            cache = get_tag_cache()
            if keys:
                await cache.invalidate(*(k(*args, **kwargs) for k in keys))
            if tags:
                await cache.invalidate_by_tag(*(t(*args, **kwargs) for t in tags))

            return result

        return wrapper
    return decorator
