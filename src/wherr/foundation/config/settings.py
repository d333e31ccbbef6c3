"""Environment-based configuration using pydantic-settings.

Example:
    >>> from wherr.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.path_style
    'relative'

    # Or with environment variables:
    # WHERR_ENABLED=false
    # WHERR_PATH_STYLE=name
    # WHERR_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PathStyle = Literal["full", "relative", "name"]


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="WHERR_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class WherrSettings(BaseSettings):
    """Root settings for the instrumentation pass.

    Example environment variables:
        WHERR_ENABLED=false        # @wherr keeps the early-return boundary only
        WHERR_PATH_STYLE=full      # file literal is the compiled filename verbatim
        WHERR_PATH_ROOT=/srv/app   # base for the "relative" path style
    """

    model_config = SettingsConfigDict(
        env_prefix="WHERR_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    enabled: bool = Field(default=True, description="Rewrite propagation sites in @wherr functions")
    path_style: PathStyle = Field(default="relative", description="How the injected file literal is rendered")
    path_root: Path | None = Field(default=None, description="Base directory for relative paths (default: cwd)")

    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("path_style", mode="before")
    @classmethod
    def _normalize_style(cls, v: str) -> str:
        return v.lower() if isinstance(v, str) else v


def display_path(filename: str, style: PathStyle = "relative", root: Path | None = None) -> str:
    """Render a compiled filename the way it is injected at propagation sites.

    Pseudo-filenames such as "<string>" are returned unchanged.
    """
    if style == "full" or filename.startswith("<"):
        return filename
    path = Path(filename)
    if style == "name":
        return path.name
    base = (root or Path.cwd()).resolve()
    try:
        return path.resolve().relative_to(base).as_posix()
    except ValueError:
        return filename
    except OSError:
        return os.path.normpath(filename)


# Singleton pattern for settings
@lru_cache(maxsize=1)
def get_settings() -> WherrSettings:
    """Get the global settings instance (cached)."""
    return WherrSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing).

    After calling this, the next get_settings() call will
    reload configuration from environment.
    """
    get_settings.cache_clear()
