"""Propagation-site locations and the serialisable envelope report.

Uses Pydantic models for validation/serialization. Optimized for the error hot
path: instrumentation builds locations with model_construct (no validation) since
the file and line are literals emitted by the rewriter.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, TypeAdapter, computed_field, field_serializer

JsonDict = dict[str, Any]


class Location(BaseModel):
    """One propagation site: the file and line of a `.propagate()` call. Frozen and hashable."""

    model_config = ConfigDict(
        frozen=True, extra="forbid", revalidate_instances="never",
        json_schema_extra={"title": "Location", "examples": [{"file": "app/parse.py", "line": 10}]},
    )

    file: Annotated[str, Field(min_length=1)]
    line: NonNegativeInt

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


# Pre-allocated empty tuple for reports without locations
_EMPTY_LOCATIONS: tuple[Location, ...] = ()


class WherrReport(BaseModel):
    """Snapshot of a wrapped error: original message, its type, and the location trail."""

    model_config = ConfigDict(
        frozen=True, extra="ignore", revalidate_instances="never",
        json_schema_extra={"title": "Wherr Report", "description": "Original error with propagation provenance"},
    )

    message: str
    error_type: str
    locations: tuple[Location, ...] = _EMPTY_LOCATIONS

    @field_serializer("locations")
    def _serialize_locations(self, v: tuple[Location, ...]) -> list[JsonDict]:
        return [loc.model_dump() for loc in v]

    @computed_field
    @property
    def depth(self) -> int:
        """Number of annotated frames the error crossed."""
        return len(self.locations)

    @computed_field
    @property
    def origin(self) -> str | None:
        """First propagation site (innermost frame)."""
        return str(self.locations[0]) if self.locations else None

    def format(self) -> str:
        """Human-readable form matching the envelope's str()."""
        return "".join([self.message, *(f"\nat {loc}" for loc in self.locations)])

    __str__ = format


# ═══════════════════════════════════════════════════════════════════════════════
# Helpers (use model_construct for hot paths)
# ═══════════════════════════════════════════════════════════════════════════════

_LocationAdapter: TypeAdapter[Location] = TypeAdapter(Location)
_ReportAdapter: TypeAdapter[WherrReport] = TypeAdapter(WherrReport)


def location(file: str, line: int) -> Location:
    """Create Location concisely (bypasses validation for performance)."""
    return Location.model_construct(file=file, line=line)


def validate_location(data: JsonDict) -> Location:
    """Validate dict as Location (use when validation is needed)."""
    return _LocationAdapter.validate_python(data)


def validate_report(data: JsonDict) -> WherrReport:
    """Validate dict as WherrReport, e.g. when reading a JSON log line back."""
    return _ReportAdapter.validate_python(data)
