"""Async engine and unit of work for the RBAC store.

One engine and one session factory per process, built on first use from
``config.database``. ``get_async_session`` is the transaction every service
runs in: it commits when the block exits cleanly and rolls back when the
block raises.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config.database import DatabaseSettings, get_database_settings

logger = logging.getLogger(__name__)

_async_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def create_engine(settings: Optional[DatabaseSettings] = None) -> AsyncEngine:
    """Engine for the configured database."""
    settings = settings or get_database_settings()
    engine = create_async_engine(settings.async_url, **settings.engine_options())

    if settings.is_sqlite:
        enable_sqlite_foreign_keys(engine)

    logger.info(
        f"Database engine ready: {engine.url.render_as_string(hide_password=True)}"
    )
    return engine


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """Enforce foreign keys on every SQLite connection; memberships and sessions cascade."""

    @event.listens_for(engine.sync_engine, "connect")
    def _enable(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Records are read after commit to build cached views.
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_async_engine() -> AsyncEngine:
    global _async_engine

    if _async_engine is None:
        _async_engine = create_engine()
    return _async_engine


def get_async_session_factory() -> async_sessionmaker[AsyncSession]:
    global _async_session_factory

    if _async_session_factory is None:
        _async_session_factory = get_session_factory(get_async_engine())
    return _async_session_factory


@asynccontextmanager
async def get_async_session() -> AsyncIterator[AsyncSession]:
    """
    Run a block in one transaction.

    Usage:
        async with get_async_session() as session:
            role = await session.get(Role, role_id)
            role.name = "support"
    """
    async with get_async_session_factory().begin() as session:
        yield session


async def init_models(engine: Optional[AsyncEngine] = None) -> None:
    """Create missing tables. SQLite deployments and tests only."""
    from database.models import Base

    engine = engine or get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("RBAC tables created")


async def check_database_connection() -> bool:
    """Round-trip a trivial query for the health endpoint."""
    try:
        async with get_async_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
    return True


async def close_database() -> None:
    """Dispose of the process engine; the next session builds a new one."""
    global _async_engine, _async_session_factory

    if _async_engine is None:
        return

    await _async_engine.dispose()
    _async_engine = None
    _async_session_factory = None
    logger.info("Database engine disposed")
