"""Configuration management using pydantic-settings.

Provides environment-based configuration with type safety and validation.
"""

from .settings import (
    LoggingSettings,
    PathStyle,
    WherrSettings,
    clear_settings_cache,
    display_path,
    get_settings,
)

__all__ = [
    "LoggingSettings",
    "PathStyle",
    "WherrSettings",
    "clear_settings_cache",
    "display_path",
    "get_settings",
]
