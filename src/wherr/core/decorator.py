"""Decorators marking functions for propagation-site instrumentation.

Example:
    >>> @wherr
    ... def load(path: str) -> Result[Config, Wherr]:
    ...     text = read(path).propagate()          # site 1
    ...     return Ok(parse(text).propagate())     # site 2
    ...
    >>> err = load("missing.toml").unwrap_err()
    >>> print(err)
    [Errno 2] No such file or directory: 'missing.toml'
    at app/io.py:14
    at app/config.py:3

@wherr must be the innermost decorator, and applies to plain and async
functions. For staticmethod/classmethod, put it below those decorators.
"""

from __future__ import annotations

import inspect
from functools import wraps
from typing import Callable, ParamSpec, TypeVar

from wherr.foundation.config import get_settings
from wherr.foundation.errors import Propagation
from wherr.transform.compiler import check_target, instrument_function

P = ParamSpec("P")
T = TypeVar("T")

_MARKER = "__wherr__"


def early_return(func: Callable[P, T]) -> Callable[P, T]:
    """Boundary turning a `.propagate()` short-circuit into `return <Err>`.

    Plain propagation without provenance; @wherr installs the same boundary
    around the instrumented function.
    """
    if inspect.iscoroutinefunction(func):

        @wraps(func)
        async def async_boundary(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await func(*args, **kwargs)  # type: ignore[misc]
            except Propagation as signal:
                return signal.result  # type: ignore[return-value]

        return async_boundary  # type: ignore[return-value]

    @wraps(func)
    def boundary(*args: P.args, **kwargs: P.kwargs) -> T:
        try:
            return func(*args, **kwargs)
        except Propagation as signal:
            return signal.result  # type: ignore[return-value]

    return boundary


def wherr(func: Callable[P, T]) -> Callable[P, T]:
    """Instrument every `.propagate()` in func with its file and line.

    Rewriting happens here, at decoration time; any TransformError surfaces at
    the decorator site. With WHERR_ENABLED=false only the boundary is installed.
    Applying @wherr to an already-instrumented function returns it unchanged.
    """
    if getattr(func, _MARKER, False):
        return func
    check_target(func)
    target = instrument_function(func) if get_settings().enabled else func
    boundary = early_return(target)
    setattr(boundary, _MARKER, True)
    return boundary


def is_instrumented(func: object) -> bool:
    return bool(getattr(func, _MARKER, False))
