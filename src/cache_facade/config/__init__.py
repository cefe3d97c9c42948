"""Configuration management module.

This module provides:
- Environment-based configuration with validation
- Redis connection settings
- Cached settings access via get_settings()
"""

from .settings import (
    Environment,
    LogFormat,
    LogLevel,
    RedisSettings,
    Settings,
    get_settings,
)

__all__ = [
    # Main settings
    "Settings",
    "get_settings",
    # Enums
    "Environment",
    "LogLevel",
    "LogFormat",
    # Component settings
    "RedisSettings",
]
