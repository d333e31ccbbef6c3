"""Decoration-time failures of the propagation rewriter.

Provides error codes and a structured exception raised at the `@wherr` site
(or by the source pass) when a function cannot be instrumented.
"""

from __future__ import annotations

import ast
from enum import StrEnum
from typing import Self


class ErrorCode(StrEnum):
    """Why a function could not be instrumented.

    Using StrEnum allows these to serialize cleanly and be pattern-matched.
    """
    NOT_A_FUNCTION = "NOT_A_FUNCTION"
    NOT_INNERMOST = "NOT_INNERMOST"
    UNSUPPORTED = "UNSUPPORTED"
    SOURCE_UNAVAILABLE = "SOURCE_UNAVAILABLE"
    PARSE_FAILED = "PARSE_FAILED"
    COMPILE_FAILED = "COMPILE_FAILED"


class TransformError(Exception):
    """Build-time failure to instrument a function. Never deferred to call time.

    Attributes:
        code: Machine-readable failure classification
        message: Human-readable description
        target: Qualified name (or repr) of the decorated object
        node: AST node the failure refers to, when one is known
    """

    __slots__ = ("code", "message", "target", "node")

    def __init__(self, code: ErrorCode, message: str, *, target: str = "", node: ast.AST | None = None) -> None:
        self.code = code
        self.message = message
        self.target = target
        self.node = node
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        where = f" in {self.target}" if self.target else ""
        lineno = getattr(self.node, "lineno", None)
        line = f" (line {lineno})" if lineno is not None else ""
        return f"[{self.code}] {self.message}{where}{line}"

    @classmethod
    def create(cls, code: ErrorCode, message: str, *, target: str = "", node: ast.AST | None = None) -> Self:
        """Factory method for construction."""
        return cls(code, message, target=target, node=node)

    @classmethod
    def from_exc(cls, code: ErrorCode, exc: Exception, *, target: str = "") -> Self:
        """Create from an underlying exception, chaining is left to the caller."""
        return cls(code, f"{type(exc).__name__}: {exc}", target=target)
