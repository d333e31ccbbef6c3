"""Error envelope that accumulates propagation sites.

Every rewritten `.propagate()` call routes its outcome through `wherrapper`
first. An Err is wrapped in a `Wherr` on the first annotated frame it crosses
and that same envelope is extended, never re-wrapped, at every later frame:

    >>> r = wherrapper(Err(ValueError("bad digit")), "parse.py", 10)
    >>> r = wherrapper(r, "load.py", 20)
    >>> print(r.unwrap_err())
    bad digit
    at parse.py:10
    at load.py:20
    >>> r.unwrap_err().downcast(ValueError)
    ValueError('bad digit')
"""

from __future__ import annotations

from typing import Protocol, TypeVar, runtime_checkable

from wherr.foundation.errors import Location, Result, WherrReport, location
from wherr.foundation.errors.result import _ERR

T = TypeVar("T")
X = TypeVar("X")


@runtime_checkable
class WherrError(Protocol):
    """Capability of an error that records propagation sites.

    `wherrapper` extends anything satisfying this protocol instead of wrapping it,
    so envelopes from other libraries implementing it are never nested either.
    """

    inner: object

    @property
    def locations(self) -> list[Location]: ...
    def push_location(self, file: str, line: int) -> None: ...
    def take_inner(self) -> object: ...
    def stack(self) -> str: ...


class Wherr(Exception):
    """An original error plus the ordered trail of sites it was propagated through.

    Attributes:
        inner: The original error, any object; None once taken with take_inner()
        locations: Propagation sites, innermost (earliest) first
    """

    def __init__(self, inner: object = None, locations: list[Location] | None = None) -> None:
        super().__init__()
        self.inner = inner
        self._locations: list[Location] = list(locations) if locations is not None else []
        if isinstance(inner, BaseException):
            self.__cause__ = inner

    @classmethod
    def new(cls, err: object, file: str, line: int) -> Wherr:
        """Wrap err with a single location."""
        return cls(err, [location(file, line)])

    @property
    def locations(self) -> list[Location]:
        return self._locations

    @property
    def origin(self) -> Location | None:
        """Site where the error was first observed."""
        return self._locations[0] if self._locations else None

    def push_location(self, file: str, line: int) -> None:
        self._locations.append(location(file, line))

    # ─── Inner-error access ───────────────────────────────────────────

    def downcast(self, kind: type[X]) -> X | None:
        """Return the inner error if it is an instance of kind, else None."""
        return self.inner if isinstance(self.inner, kind) else None

    def is_(self, kind: type) -> bool:
        return isinstance(self.inner, kind)

    def take_inner(self) -> object:
        """Move the inner error out, leaving None behind."""
        inner, self.inner = self.inner, None
        return inner

    # ─── Presentation ────────────────────────────────────────────────

    def stack(self) -> str:
        return "".join(f"at {loc}\n" for loc in self._locations)

    def report(self) -> WherrReport:
        return WherrReport.model_construct(
            message="" if self.inner is None else str(self.inner),
            error_type=type(self.inner).__name__,
            locations=tuple(self._locations),
        )

    def __str__(self) -> str:
        head = "" if self.inner is None else str(self.inner)
        return head + "".join(f"\nat {loc}" for loc in self._locations)

    def __repr__(self) -> str:
        return repr(self.inner) + "".join(f"\nat {loc}" for loc in self._locations)

    def __reduce__(self) -> tuple[type[Wherr], tuple[object, list[Location]]]:
        return (type(self), (self.inner, self._locations))


def wherrapper(result: Result[T, object], file: str, line: int) -> Result[T, object]:
    """Instrumentation call emitted at every rewritten propagation site.

    Ok (and anything that is not a Result) passes through untouched. An Err whose
    error already records locations gets this site appended and is returned as is;
    any other Err is wrapped in a new Wherr holding exactly this site.
    """
    if not isinstance(result, Result) or result._is_ok:
        return result
    error = result._value
    if isinstance(error, WherrError):
        error.push_location(file, line)
        return result
    return Result(Wherr.new(error, file, line), _ERR)
