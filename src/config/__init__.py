"""Configuration module for the platform servers."""

from .database import DatabaseSettings, get_database_settings
from .settings import (
    AuthSettings,
    RedisSettings,
    Settings,
    get_auth_settings,
    get_settings,
    validate_startup_security,
)

__all__ = [
    "DatabaseSettings",
    "get_database_settings",
    "AuthSettings",
    "RedisSettings",
    "Settings",
    "get_auth_settings",
    "get_settings",
    "validate_startup_security",
]
