"""Run-time half: the Wherr envelope and the instrumentation call."""

from .wrapper import Wherr, WherrError, wherrapper

__all__ = ["Wherr", "WherrError", "wherrapper"]
