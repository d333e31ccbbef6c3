"""Foundation - building blocks shared by the transformer and the runtime.

Contains: Result monad, provenance models, decoration-time errors, config.
"""

from __future__ import annotations

__all__ = [
    # Errors
    "ErrorCode", "TransformError",
    "Result", "Ok", "Err", "Propagation",
    "Location", "WherrReport", "location",
    "sequence", "traverse", "collect_results",
    # Config
    "WherrSettings", "LoggingSettings", "get_settings", "clear_settings_cache", "display_path",
]


def __getattr__(name: str):
    """Lazy imports to avoid circular dependencies."""
    if name in ("ErrorCode", "TransformError",
                "Result", "Ok", "Err", "Propagation",
                "Location", "WherrReport", "location",
                "sequence", "traverse", "collect_results"):
        from . import errors
        return getattr(errors, name)

    if name in ("WherrSettings", "LoggingSettings", "get_settings", "clear_settings_cache", "display_path"):
        from . import config
        return getattr(config, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
