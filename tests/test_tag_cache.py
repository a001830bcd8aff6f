"""Tests for the tagged cache (TagCache) and cache key registry."""

import json
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from cache.keys import CacheKeys, CacheTags, CacheTime, generate_cache_key, generate_cache_tag
from cache.tag_cache import TagCache, get_tag_cache, init_tag_cache


class TestCacheKeys:
    """Tests for key and tag naming."""

    def test_generate_cache_key_joins_with_colons(self):
        assert generate_cache_key("users", 1, "sessions", "abc") == "users:1:sessions:abc"

    def test_generate_cache_tag_is_prefixed(self):
        assert generate_cache_tag("roles", 7) == "tag:roles:7"

    def test_registry_layout(self):
        assert CacheKeys.user("u") == "users:u"
        assert CacheKeys.role("r") == "roles:r"
        assert CacheKeys.user_session("u", "s") == "users:u:sessions:s"
        assert CacheKeys.organization_by_slug("acme") == "orgs:slug:acme"
        assert CacheKeys.organization_role("r") == "orgs:roles:r"
        assert CacheTags.SESSIONS == "tag:sessions"
        assert CacheTags.user_sessions("u") == "tag:users:u:sessions"
        assert CacheTags.organization_role("r") == "tag:orgs:roles:r"

    def test_cache_times(self):
        assert CacheTime.ONE_MINUTE == 60
        assert CacheTime.ONE_HOUR == 3600
        assert CacheTime.ONE_DAY == 86400


class TestTagCacheReadWrite:
    """Tests for get/set."""

    @pytest.mark.asyncio
    async def test_round_trip(self, fake_redis):
        cache = TagCache(fake_redis)

        await cache.set("k", {"a": 1, "b": [1, 2]}, CacheTime.ONE_MINUTE)

        assert await cache.get("k") == {"a": 1, "b": [1, 2]}
        assert fake_redis.ttl("k") == 60

    @pytest.mark.asyncio
    async def test_miss_returns_none(self, fake_redis):
        cache = TagCache(fake_redis)
        assert await cache.get("missing") is None

    @pytest.mark.asyncio
    async def test_none_is_never_stored(self, fake_redis):
        cache = TagCache(fake_redis)

        await cache.set("k", None, 60)
        await cache.set_tagged("k2", None, 60, ["tag:x"])

        assert fake_redis.values == {}
        assert fake_redis.sets == {}

    @pytest.mark.asyncio
    async def test_key_prefix_is_applied(self, fake_redis):
        cache = TagCache(fake_redis, key_prefix="app:")

        await cache.set_tagged("k", 1, 60, ["tag:t"])

        assert "app:k" in fake_redis.values
        assert fake_redis.sets["app:tag:t"] == {"app:k"}
        assert await cache.get("k") == 1

    @pytest.mark.asyncio
    async def test_disabled_cache_is_a_no_op(self):
        cache = TagCache(None)

        await cache.set("k", 1, 60)
        await cache.invalidate_by_tag("tag:t")

        assert cache.enabled is False
        assert await cache.get("k") is None


class TestTagCacheTags:
    """Tests for tag membership and invalidation."""

    @pytest.mark.asyncio
    async def test_set_tagged_registers_key_under_every_tag(self, fake_redis):
        cache = TagCache(fake_redis)

        await cache.set_tagged("users:1", {"id": 1}, 300, ["tag:users", "tag:users:1"])

        assert fake_redis.sets["tag:users"] == {"users:1"}
        assert fake_redis.sets["tag:users:1"] == {"users:1"}
        assert fake_redis.ttl("tag:users") == 300

    @pytest.mark.asyncio
    async def test_tag_expiry_only_grows(self, fake_redis):
        cache = TagCache(fake_redis)

        await cache.set_tagged("a", 1, CacheTime.ONE_DAY, ["tag:t"])
        await cache.set_tagged("b", 2, CacheTime.ONE_MINUTE, ["tag:t"])
        assert fake_redis.ttl("tag:t") == CacheTime.ONE_DAY

        await cache.set_tagged("c", 3, CacheTime.ONE_WEEK, ["tag:t"])
        assert fake_redis.ttl("tag:t") == CacheTime.ONE_WEEK

    @pytest.mark.asyncio
    async def test_invalidate_by_tag_removes_members_and_tag(self, fake_redis):
        cache = TagCache(fake_redis)
        await cache.set_tagged("k1", 1, 60, ["tag:t"])
        await cache.set_tagged("k2", 2, 60, ["tag:t", "tag:other"])
        await cache.set_tagged("k3", 3, 60, ["tag:other"])

        await cache.invalidate_by_tag("tag:t")

        assert await cache.get("k1") is None
        assert await cache.get("k2") is None
        assert await cache.get("k3") == 3
        assert "tag:t" not in fake_redis.sets

    @pytest.mark.asyncio
    async def test_invalidate_by_multiple_tags(self, fake_redis):
        cache = TagCache(fake_redis)
        await cache.set_tagged("k1", 1, 60, ["tag:a"])
        await cache.set_tagged("k2", 2, 60, ["tag:b"])

        await cache.invalidate_by_tag("tag:a", "tag:b")

        assert fake_redis.values == {}
        assert fake_redis.sets == {}

    @pytest.mark.asyncio
    async def test_invalidate_unknown_tag_is_a_no_op(self, fake_redis):
        cache = TagCache(fake_redis)
        await cache.set("k", 1, 60)

        await cache.invalidate_by_tag("tag:nothing")

        assert await cache.get("k") == 1

    @pytest.mark.asyncio
    async def test_invalidate_deletes_keys(self, fake_redis):
        cache = TagCache(fake_redis)
        await cache.set("k1", 1, 60)
        await cache.set("k2", 2, 60)

        await cache.invalidate("k1", "k2")

        assert fake_redis.values == {}


class TestTagCacheErrors:
    """Store failures are logged and never propagate."""

    @pytest.mark.asyncio
    async def test_get_error_is_a_miss(self, mock_redis_client, caplog):
        cache = TagCache(mock_redis_client)

        with caplog.at_level(logging.WARNING, logger="cache.tag_cache"):
            assert await cache.get("k") is None

        assert "Cache GET error for k" in caplog.text

    @pytest.mark.asyncio
    async def test_write_errors_are_swallowed(self, mock_redis_client):
        cache = TagCache(mock_redis_client)

        await cache.set("k", 1, 60)
        await cache.set_tagged("k", 1, 60, ["tag:t"])
        await cache.invalidate("k")
        await cache.invalidate_by_tag("tag:t")

    @pytest.mark.asyncio
    async def test_corrupt_payload_is_a_miss(self, fake_redis):
        fake_redis.values["k"] = "{not json"
        cache = TagCache(fake_redis)

        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_set_tagged_uses_one_transaction_and_swallows_failure(self):
        client = MagicMock()
        pipeline = MagicMock()
        pipeline.execute = AsyncMock(side_effect=TimeoutError("slow"))
        client.pipeline = MagicMock(return_value=pipeline)
        cache = TagCache(client)

        await cache.set_tagged("k", {"v": 1}, 60, ["tag:t"])

        client.pipeline.assert_called_once_with(transaction=True)
        pipeline.set.assert_called_once_with("k", json.dumps({"v": 1}), ex=60)


class TestGlobalTagCache:
    """Tests for the process-wide instance."""

    def test_defaults_to_disabled(self):
        assert get_tag_cache().enabled is False

    def test_init_installs_instance(self, fake_redis):
        cache = init_tag_cache(fake_redis, key_prefix="p:")
        assert get_tag_cache() is cache
        assert cache.enabled is True
