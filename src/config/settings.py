"""Application settings using Pydantic Settings.

Centralized configuration for the platform servers.

SECURITY: Production requires the following environment variables:
- AUTH_ACCESS_TOKEN_SECRET: Access token signing key (min 32 chars)
- AUTH_REFRESH_TOKEN_SECRET: Refresh token signing key (min 32 chars)

Generate secrets with: python -c "import secrets; print(secrets.token_hex(32))"
"""

import sys
import logging
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

INSECURE_SECRET_MARKER = "INSECURE"


class RedisSettings(BaseSettings):
    """Redis configuration for the shared cache. Requires Redis 7.0 or newer."""

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    db: int = Field(default=0, description="Redis database number")
    password: Optional[str] = Field(default=None, description="Redis password")
    ssl: bool = Field(default=False, description="Use SSL for Redis connection")

    # Connection pool settings
    max_connections: int = Field(default=50, description="Max Redis connections")
    socket_timeout: int = Field(default=5, description="Socket timeout in seconds")
    socket_connect_timeout: int = Field(default=5, description="Connection timeout")

    key_prefix: str = Field(default="", description="Prefix for all cache keys")

    @property
    def url(self) -> str:
        """Get Redis URL."""
        auth = f":{self.password}@" if self.password else ""
        protocol = "rediss" if self.ssl else "redis"
        return f"{protocol}://{auth}{self.host}:{self.port}/{self.db}"


class AuthSettings(BaseSettings):
    """Token, cookie and header settings shared by every server process."""

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        extra="ignore",
    )

    # CRITICAL: Must be set via environment variables in production
    access_token_secret: str = Field(
        default="dev-access-secret-INSECURE-change-me-0000000000",
        description="Access token signing key",
    )
    refresh_token_secret: str = Field(
        default="dev-refresh-secret-INSECURE-change-me-000000000",
        description="Refresh token signing key",
    )
    algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    access_token_expire_minutes: int = Field(default=15, description="Access token lifetime")
    refresh_token_expire_days: int = Field(default=30, description="Refresh token lifetime")

    # Credential cookies
    access_cookie_name: str = Field(default="access_token", description="Access token cookie")
    refresh_cookie_name: str = Field(default="refresh_token", description="Refresh token cookie")
    cookie_path: str = Field(default="/", description="Cookie path")
    cookie_domain: Optional[str] = Field(default=None, description="Cookie domain")
    cookie_secure: bool = Field(default=False, description="Send cookies over HTTPS only")
    cookie_samesite: str = Field(default="lax", description="Cookie SameSite policy")

    # Organization-scoped routes
    organization_header: str = Field(
        default="X-Organization-Slug",
        description="Header carrying the organization slug",
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application info
    name: str = Field(default="Platform Server", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="development", description="Environment name")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=False, description="Emit JSON formatted logs")

    # Feature flags
    enable_caching: bool = Field(default=True, description="Enable Redis caching")

    # Nested settings (loaded separately)
    @property
    def redis(self) -> RedisSettings:
        return RedisSettings()

    @property
    def auth(self) -> AuthSettings:
        return AuthSettings()

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment in ("production", "prod", "staging")

    def validate_production_security(self) -> List[str]:
        """
        Validate all security requirements for production.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.is_production:
            return errors

        auth = self.auth
        for env_name, secret in (
            ("AUTH_ACCESS_TOKEN_SECRET", auth.access_token_secret),
            ("AUTH_REFRESH_TOKEN_SECRET", auth.refresh_token_secret),
        ):
            if INSECURE_SECRET_MARKER in secret:
                errors.append(
                    f"{env_name}: Must be set in production. "
                    "Generate with: python -c \"import secrets; print(secrets.token_hex(32))\""
                )
            elif len(secret) < 32:
                errors.append(f"{env_name}: Must be at least 32 characters")

        if auth.access_token_secret == auth.refresh_token_secret:
            errors.append("AUTH_REFRESH_TOKEN_SECRET: Must differ from the access token secret")

        if not auth.cookie_secure:
            errors.append("AUTH_COOKIE_SECURE: Should be True in production")

        return errors


# =============================================================================
# STARTUP VALIDATION
# =============================================================================

class StartupSecurityError(Exception):
    """Raised when security validation fails at startup."""
    pass


def validate_startup_security(settings: Settings, exit_on_failure: bool = True) -> bool:
    """
    Validate security settings at application startup.

    In production, fails fast if critical security settings are missing.

    Args:
        settings: Application settings instance
        exit_on_failure: If True, exit the process on failure (default)

    Returns:
        True if validation passes

    Raises:
        StartupSecurityError: If validation fails and exit_on_failure is False
    """
    errors = settings.validate_production_security()

    if not errors:
        if settings.is_production:
            logger.info("Production security validation PASSED")
        return True

    error_msg = (
        "\n" + "=" * 60 + "\n"
        "CRITICAL SECURITY CONFIGURATION ERROR\n"
        "=" * 60 + "\n\n"
        "The following security settings are missing or invalid:\n\n"
    )
    for i, err in enumerate(errors, 1):
        error_msg += f"  {i}. {err}\n\n"

    logger.critical(error_msg)

    if exit_on_failure:
        print(error_msg, file=sys.stderr)
        sys.exit(1)
    else:
        raise StartupSecurityError(error_msg)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    Returns:
        Settings: Cached settings loaded from environment.
    """
    return Settings()


@lru_cache
def get_auth_settings() -> AuthSettings:
    """Get cached auth settings instance."""
    return AuthSettings()
