"""Annotation surface: @wherr and the plain @early_return boundary."""

from .decorator import early_return, is_instrumented, wherr

__all__ = ["wherr", "early_return", "is_instrumented"]
