"""Tests for database settings and engine creation."""

import pytest
from sqlalchemy import text
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool

from config.database import DatabaseSettings
from database.async_engine import create_engine


class TestDatabaseSettings:
    """Tests for URL assembly and engine options."""

    def test_url_wins(self):
        settings = DatabaseSettings(url="postgresql+asyncpg://platform:secret@db:5432/platform")

        assert settings.async_url == "postgresql+asyncpg://platform:secret@db:5432/platform"
        assert settings.is_sqlite is False

    def test_url_from_environment(self, monkeypatch):
        monkeypatch.setenv("DB_URL", "postgresql+asyncpg://db/platform")

        assert DatabaseSettings().async_url == "postgresql+asyncpg://db/platform"

    def test_postgres_url_is_assembled(self):
        settings = DatabaseSettings(
            driver="postgresql+asyncpg", user="platform", password="secret", host="db", name="rbac"
        )

        assert settings.async_url == "postgresql+asyncpg://platform:secret@db:5432/rbac"

    def test_postgres_without_credentials(self):
        settings = DatabaseSettings(driver="postgresql+asyncpg", host="db")

        assert settings.async_url == "postgresql+asyncpg://db:5432/platform"

    def test_postgres_engine_is_pooled(self):
        options = DatabaseSettings(driver="postgresql+asyncpg", pool_size=5).engine_options()

        assert options["poolclass"] is AsyncAdaptedQueuePool
        assert options["pool_size"] == 5
        assert options["connect_args"] == {"command_timeout": 30}

    def test_sqlite_file_is_prepared(self, tmp_path):
        path = tmp_path / "data" / "platform.db"
        settings = DatabaseSettings(driver="sqlite+aiosqlite", sqlite_path=path)

        assert settings.async_url == f"sqlite+aiosqlite:///{path.absolute()}"
        assert path.parent.is_dir()
        assert settings.is_sqlite is True
        assert settings.engine_options()["poolclass"] is NullPool


class TestCreateEngine:
    """Tests for engine construction."""

    @pytest.mark.asyncio
    async def test_sqlite_enforces_foreign_keys(self, tmp_path):
        engine = create_engine(
            DatabaseSettings(driver="sqlite+aiosqlite", sqlite_path=tmp_path / "platform.db")
        )
        try:
            async with engine.connect() as conn:
                assert (await conn.execute(text("PRAGMA foreign_keys"))).scalar() == 1
        finally:
            await engine.dispose()
