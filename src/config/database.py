"""Database settings for the RBAC store.

Every server process reads the same ``DB_`` environment. ``DB_URL`` wins
when set; otherwise the URL is assembled from the individual fields. SQLite
backs development and tests, PostgreSQL (asyncpg) backs deployments.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool


class DatabaseSettings(BaseSettings):
    """
    Connection and pool settings.

    Example environment variables:
        DB_URL=postgresql+asyncpg://platform:secret@db:5432/platform
        DB_POOL_SIZE=20
        DB_SQLITE_PATH=data/platform.db
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: Optional[str] = Field(default=None, description="Full async database URL")

    driver: str = Field(default="sqlite+aiosqlite", description="Async SQLAlchemy driver")
    host: str = Field(default="localhost")
    port: int = Field(default=5432)
    name: str = Field(default="platform")
    user: str = Field(default="")
    password: str = Field(default="")
    sqlite_path: Path = Field(default=Path("data/platform.db"))

    # PostgreSQL pool; SQLite connections are never pooled
    pool_size: int = Field(default=10, ge=1, le=100)
    max_overflow: int = Field(default=20, ge=0, le=100)
    pool_timeout: int = Field(default=30, ge=1)
    pool_recycle: int = Field(default=1800, ge=60)

    echo_sql: bool = Field(default=False, description="Log every SQL statement")
    statement_timeout: int = Field(default=30, ge=1, description="Seconds per statement")

    @computed_field
    @property
    def async_url(self) -> str:
        if self.url:
            return self.url

        if "sqlite" in self.driver:
            self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
            return f"{self.driver}:///{self.sqlite_path.absolute()}"

        credentials = self.user
        if self.password:
            credentials += f":{self.password}"
        if credentials:
            credentials += "@"
        return f"{self.driver}://{credentials}{self.host}:{self.port}/{self.name}"

    @computed_field
    @property
    def is_sqlite(self) -> bool:
        """True when the URL targets SQLite (tables are then created at startup)."""
        return make_url(self.url or f"{self.driver}://").get_backend_name() == "sqlite"

    def engine_options(self) -> Dict[str, Any]:
        """Keyword arguments for ``create_async_engine``."""
        if self.is_sqlite:
            return {
                "echo": self.echo_sql,
                "poolclass": NullPool,
                "connect_args": {"timeout": self.statement_timeout},
            }

        return {
            "echo": self.echo_sql,
            "poolclass": AsyncAdaptedQueuePool,
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.pool_timeout,
            "pool_recycle": self.pool_recycle,
            "pool_pre_ping": True,
            "connect_args": {"command_timeout": self.statement_timeout},
        }


@lru_cache
def get_database_settings() -> DatabaseSettings:
    """Database settings, read from the environment once per process."""
    return DatabaseSettings()
