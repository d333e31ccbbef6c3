"""Error primitives for wherr.

- Result/Ok/Err: Monadic error handling, with propagate() for early return
- Propagation: control-flow signal carrying an Err to the early_return boundary
- ErrorCode/TransformError: Decoration-time failures of the rewriter
- Location/WherrReport: Propagation provenance and its serialisable form
"""

from .errors import ErrorCode, TransformError
from .result import Err, Ok, Propagation, Result, collect_results, sequence, traverse
from .types import (
    JsonDict,
    Location,
    WherrReport,
    location,
    validate_location,
    validate_report,
)

__all__ = [
    # Decoration-time errors
    "ErrorCode", "TransformError",
    # Result monad
    "Result", "Ok", "Err", "Propagation",
    # Provenance
    "Location", "WherrReport", "location", "validate_location", "validate_report", "JsonDict",
    # Collection ops
    "sequence", "traverse", "collect_results",
]
