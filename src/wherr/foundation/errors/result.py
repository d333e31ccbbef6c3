"""Result/Either monad for type-safe error handling.

Discriminated union for success/failure with the combinators wherr users chain:
- map, map_err, flat_map, or_else, match
- Early return: propagate() + the early_return boundary, Python's stand-in for `?`

Performance notes:
- Uses __slots__ for minimal memory footprint
- Direct attribute access (no method calls) in hot paths
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Iterable

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")
F = TypeVar("F")

# Sentinel for faster Ok/Err construction
_OK = True
_ERR = False


class Propagation(BaseException):
    """Control-flow signal raised by Result.propagate() on Err.

    Derives from BaseException so ordinary `except Exception` handlers between
    the propagation site and the enclosing early_return boundary never see it.
    """

    __slots__ = ("result",)

    def __init__(self, result: Result[object, object]) -> None:
        self.result = result
        super().__init__(result)

    def __str__(self) -> str:
        return f"propagate() on {self.result!r} escaped without an early_return boundary"


class Result(Generic[T, E]):
    """Discriminated union representing success (Ok) or failure (Err).

    Examples:
        >>> Ok(42).map(lambda x: x * 2).unwrap()
        84
        >>> Err("fail").map(lambda x: x * 2).unwrap_err()
        'fail'
        >>> Ok(5).flat_map(lambda x: Ok(x * 2) if x > 0 else Err("neg")).unwrap()
        10

    Early return (requires an early_return or wherr boundary on the function):
        >>> @early_return
        ... def double(s: str) -> Result[int, str]:
        ...     n = parse(s).propagate()
        ...     return Ok(n * 2)
    """

    __slots__ = ("_value", "_is_ok")
    __match_args__ = ("_value",)

    def __init__(self, value: T | E, is_ok: bool) -> None:
        self._value = value
        self._is_ok = is_ok

    # ─── Type Checking ───────────────────────────────────────────────

    def is_ok(self) -> bool:
        """Check if Result is Ok variant."""
        return self._is_ok

    def is_err(self) -> bool:
        """Check if Result is Err variant."""
        return not self._is_ok

    # ─── Value Extraction ──────────────────────────────────────────────

    def unwrap(self) -> T:
        """Extract Ok value. Raises RuntimeError on Err, chained from the error if it is an exception."""
        if self._is_ok:
            return self._value  # type: ignore[return-value]
        cause = self._value if isinstance(self._value, BaseException) else None
        raise RuntimeError(f"unwrap() on Err: {self._value}") from cause

    def unwrap_err(self) -> E:
        """Extract Err value. Raises RuntimeError on Ok."""
        if not self._is_ok:
            return self._value  # type: ignore[return-value]
        raise RuntimeError(f"unwrap_err() on Ok: {self._value}")

    def unwrap_or(self, default: T) -> T:
        """Extract Ok value or return default."""
        return self._value if self._is_ok else default  # type: ignore[return-value]

    def unwrap_or_else(self, f: Callable[[E], T]) -> T:
        """Extract Ok value or compute from error via f."""
        return self._value if self._is_ok else f(self._value)  # type: ignore[return-value,arg-type]

    def expect(self, msg: str) -> T:
        """Extract Ok value with custom error message."""
        if self._is_ok:
            return self._value  # type: ignore[return-value]
        raise RuntimeError(f"{msg}: {self._value}")

    def propagate(self) -> T:
        """Yield the Ok value, or short-circuit the enclosing function with this Err.

        The short-circuit raises Propagation; the early_return boundary around the
        enclosing function turns it back into `return <this Err>`.
        """
        if self._is_ok:
            return self._value  # type: ignore[return-value]
        raise Propagation(self)

    # ─── Combinators ───────────────────────────────────────────────────

    def map(self, f: Callable[[T], U]) -> Result[U, E]:
        """Transform the Ok value; an Err is returned as is."""
        return Result(f(self._value), _OK) if self._is_ok else self  # type: ignore[arg-type,return-value]

    def map_err(self, f: Callable[[E], F]) -> Result[T, F]:
        """Transform the Err value, e.g. to attach context before propagating."""
        return self if self._is_ok else Result(f(self._value), _ERR)  # type: ignore[arg-type,return-value]

    def flat_map(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Monadic bind (>>=): chain a step that can itself fail."""
        return f(self._value) if self._is_ok else self  # type: ignore[arg-type,return-value]

    def or_else(self, f: Callable[[E], Result[T, F]]) -> Result[T, F]:
        """Recover from Err with f; Ok passes through."""
        return self if self._is_ok else f(self._value)  # type: ignore[arg-type,return-value]

    def ok(self) -> T | None:
        return self._value if self._is_ok else None  # type: ignore[return-value]

    def err(self) -> E | None:
        return None if self._is_ok else self._value  # type: ignore[return-value]

    def match(self, *, ok: Callable[[T], U], err: Callable[[E], U]) -> U:
        """Handle both variants; each keyword receives its variant's payload."""
        return ok(self._value) if self._is_ok else err(self._value)  # type: ignore[arg-type]

    # ─── Dunder Methods ──────────────────────────────────────────────────

    def __bool__(self) -> bool:
        return self._is_ok

    def __hash__(self) -> int:
        return hash((self._is_ok, self._value))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Result):
            return NotImplemented
        return self._is_ok == other._is_ok and self._value == other._value

    def __repr__(self) -> str:
        return f"{'Ok' if self._is_ok else 'Err'}({self._value!r})"

    __str__ = __repr__


def Ok(value: T) -> Result[T, E]:  # noqa: N802
    return Result(value, _OK)


def Err(error: E) -> Result[T, E]:  # noqa: N802
    return Result(error, _ERR)


# ═══════════════════════════════════════════════════════════════════════════════
# Collection Operations
# ═══════════════════════════════════════════════════════════════════════════════


def sequence(results: Iterable[Result[T, E]]) -> Result[list[T], E]:
    """Ok of every value, or the first Err. Stops consuming results at that Err."""
    values: list[T] = []
    for r in results:
        if not r._is_ok:
            return r  # type: ignore[return-value]
        values.append(r._value)  # type: ignore[arg-type]
    return Result(values, _OK)


def traverse(items: Iterable[T], f: Callable[[T], Result[U, E]]) -> Result[list[U], E]:
    """sequence(map(f, items)); f is not called past the first failing item."""
    return sequence(f(item) for item in items)


def collect_results(results: Iterable[Result[T, E]]) -> Result[list[T], list[E]]:
    """Like sequence, but gathers every error instead of stopping at the first."""
    oks: list[T] = []
    errs: list[E] = []
    for r in results:
        if r._is_ok:
            oks.append(r._value)  # type: ignore[arg-type]
        else:
            errs.append(r._value)  # type: ignore[arg-type]
    return Result(errs, _ERR) if errs else Result(oks, _OK)
