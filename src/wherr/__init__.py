"""wherr - file and line provenance for errors propagated through Result chains.

Mark a function with @wherr and every `.propagate()` in it reports where the
error passed through. The first annotated frame wraps the error in a Wherr;
every later frame appends its location to that same envelope.

Quick Start:
    >>> from wherr import Err, Ok, Result, wherr
    >>>
    >>> @wherr
    ... def parse(s: str) -> Result[int, str]:
    ...     return Ok(int(s)) if s.isdigit() else Err(f"not a number: {s!r}")
    ...
    >>> @wherr
    ... def total(a: str, b: str) -> Result[int, object]:
    ...     return Ok(parse(a).propagate() + parse(b).propagate())
    ...
    >>> err = total("1", "x").unwrap_err()
    >>> print(err)
    not a number: 'x'
    at example.py:8
    >>> err.downcast(str)
    "not a number: 'x'"

Inspection:
    >>> err.locations          # [Location(file='example.py', line=8)]
    >>> err.take_inner()       # moves the original error out
    >>> err.report().model_dump_json()

Ahead-of-time (no import-time rewrite):
    $ wherr rewrite app/service.py -o build/service.py
"""

from __future__ import annotations

__version__ = "0.1.0"

# Annotation surface
from .core import early_return, is_instrumented, wherr

# Result monad and provenance
from .foundation.errors import (
    Err,
    ErrorCode,
    Location,
    Ok,
    Propagation,
    Result,
    TransformError,
    WherrReport,
    collect_results,
    sequence,
    traverse,
)

# Runtime
from .runtime import Wherr, WherrError, wherrapper

# Transformer
from .transform import find_sites, instrument, instrument_function, transform_source

__all__ = [
    "__version__",
    # Decorators
    "wherr", "early_return", "is_instrumented",
    # Runtime
    "Wherr", "WherrError", "wherrapper",
    # Result
    "Result", "Ok", "Err", "Propagation", "sequence", "traverse", "collect_results",
    # Provenance
    "Location", "WherrReport",
    # Transformer
    "instrument", "instrument_function", "transform_source", "find_sites",
    # Errors
    "ErrorCode", "TransformError",
]
