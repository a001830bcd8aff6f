"""Pytest configuration and fixtures for test suite."""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple
from uuid import uuid4

import pytest
import pytest_asyncio

# Set test environment BEFORE any other imports
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("DB_DRIVER", "sqlite+aiosqlite")

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


def _reset_db_modules():
    """Reset database module globals to ensure clean state."""
    import database.async_engine as module
    module._async_engine = None
    module._async_session_factory = None


@pytest.fixture(autouse=True)
def reset_database_globals():
    """Reset database module globals before and after each test."""
    _reset_db_modules()
    yield
    _reset_db_modules()


# =============================================================================
# IN-MEMORY REDIS
# =============================================================================


class FakeRedis:
    """In-memory stand-in for the subset of ``redis.asyncio.Redis`` the cache uses.

    Expiry is recorded but never enforced; tests inspect it through ``ttl``.
    """

    def __init__(self):
        self.values: Dict[str, str] = {}
        self.sets: Dict[str, Set[str]] = {}
        self.expiry: Dict[str, int] = {}

    def _exists(self, key: str) -> bool:
        return key in self.values or key in self.sets

    def ttl(self, key: str) -> int:
        if not self._exists(key):
            return -2
        return self.expiry.get(key, -1)

    def _set(self, key, value, ex=None):
        self.values[key] = value
        if ex is None:
            self.expiry.pop(key, None)
        else:
            self.expiry[key] = ex
        return True

    def _delete(self, *keys):
        removed = 0
        for key in keys:
            if self._exists(key):
                removed += 1
            self.values.pop(key, None)
            self.sets.pop(key, None)
            self.expiry.pop(key, None)
        return removed

    def _expire(self, key, seconds, nx=False, gt=False):
        if not self._exists(key):
            return False
        current = self.expiry.get(key)
        if nx and current is not None:
            return False
        if gt and (current is None or seconds <= current):
            return False
        self.expiry[key] = seconds
        return True

    def _sadd(self, key, *members):
        bucket = self.sets.setdefault(key, set())
        before = len(bucket)
        bucket.update(members)
        return len(bucket) - before

    async def get(self, key):
        return self.values.get(key)

    async def set(self, key, value, ex=None):
        return self._set(key, value, ex)

    async def delete(self, *keys):
        return self._delete(*keys)

    async def expire(self, key, seconds, nx=False, gt=False):
        return self._expire(key, seconds, nx=nx, gt=gt)

    async def sadd(self, key, *members):
        return self._sadd(key, *members)

    async def smembers(self, key):
        return set(self.sets.get(key, set()))

    async def ping(self):
        return True

    def pipeline(self, transaction=True):
        return FakePipeline(self)


class FakePipeline:
    """Queues commands and applies them in order on ``execute``."""

    def __init__(self, redis: FakeRedis):
        self._redis = redis
        self._commands: List[Tuple[str, tuple, dict]] = []

    def _queue(self, name, *args, **kwargs):
        self._commands.append((name, args, kwargs))
        return self

    def set(self, key, value, ex=None):
        return self._queue("_set", key, value, ex=ex)

    def delete(self, *keys):
        return self._queue("_delete", *keys)

    def expire(self, key, seconds, nx=False, gt=False):
        return self._queue("_expire", key, seconds, nx=nx, gt=gt)

    def sadd(self, key, *members):
        return self._queue("_sadd", key, *members)

    async def execute(self) -> List[Any]:
        commands, self._commands = self._commands, []
        return [getattr(self._redis, name)(*args, **kwargs) for name, args, kwargs in commands]


@pytest.fixture
def fake_redis():
    """Provide an empty in-memory Redis."""
    return FakeRedis()


@pytest.fixture
def tag_cache(fake_redis):
    """Install a process-wide tag cache backed by the in-memory Redis."""
    from cache.tag_cache import init_tag_cache

    return init_tag_cache(fake_redis)


@pytest.fixture
def mock_redis_client():
    """Provide a Redis client whose every command fails."""
    from unittest.mock import AsyncMock, MagicMock

    error = ConnectionError("redis down")
    client = MagicMock()
    client.get = AsyncMock(side_effect=error)
    client.set = AsyncMock(side_effect=error)
    client.delete = AsyncMock(side_effect=error)
    client.smembers = AsyncMock(side_effect=error)
    pipeline = MagicMock()
    pipeline.execute = AsyncMock(side_effect=error)
    client.pipeline = MagicMock(return_value=pipeline)
    return client


# =============================================================================
# DATABASE
# =============================================================================


@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite database with all tables, installed as the global engine."""
    from sqlalchemy.ext.asyncio import create_async_engine
    from sqlalchemy.pool import StaticPool

    import database.async_engine as module

    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    module.enable_sqlite_foreign_keys(engine)
    await module.init_models(engine)

    module._async_engine = engine
    module._async_session_factory = module.get_session_factory(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def seeded_db(db_engine):
    """Database with permissions and system roles seeded."""
    from rbac.seed import seed_rbac

    await seed_rbac()
    return db_engine


@pytest.fixture
def make_user(seeded_db):
    """Factory creating a user holding a global role (by name)."""
    from sqlalchemy import select

    from database.async_engine import get_async_session
    from database.models import Role, User
    from rbac.context import UserStatus

    async def _make_user(
        role_name: Optional[str] = "user",
        status: UserStatus = UserStatus.ACTIVE,
        email: Optional[str] = None,
    ):
        async with get_async_session() as session:
            role_id = None
            if role_name is not None:
                role_id = await session.scalar(
                    select(Role.id).where(Role.name == role_name, Role.organization_id.is_(None))
                )
            user = User(
                id=uuid4(),
                first_name="Test",
                last_name="User",
                email=email or f"{uuid4().hex[:12]}@example.com",
                password="hashed",
                status=status.value,
                role_id=role_id,
            )
            session.add(user)
        return user

    return _make_user


@pytest.fixture
def make_session(seeded_db):
    """Factory creating a login session for a user."""
    from database.async_engine import get_async_session
    from database.models import UserSession

    async def _make_session(user_id, expires_in: timedelta = timedelta(hours=1)):
        async with get_async_session() as session:
            record = UserSession(
                id=uuid4(),
                user_id=user_id,
                expires_at=datetime.now(timezone.utc) + expires_in,
            )
            session.add(record)
        return record

    return _make_session
