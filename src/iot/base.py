"""Canonical data models for the Device Monitor telemetry engine.

The platform returns loosely typed JSON for both sample times and sample
values.  Everything downstream of the query client works with the types in
this module instead:

    RawSample            one ``{time, value}`` entry decoded into tagged raw values
    NormalizedSample     canonical UTC timestamp plus a value typed per data point
    PointResult          all samples for one data point from one sync
    PointSummary         count / min / max / avg over the numeric samples
    SessionReport        session metadata + summaries + series for reporting
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Union

from src.sessions.base import DeviceSession


#: Fallback instant for sample times the platform encodes in a way we cannot read.
ZERO_INSTANT = datetime(1, 1, 1, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Data point registry entries
# ---------------------------------------------------------------------------


class ValueKind(str, Enum):
    """How a data point's values are interpreted."""

    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"


@dataclass(frozen=True)
class DataPointSpec:
    """One statically configured telemetry channel.

    Attributes:
        name:         Platform identifier (e.g. 'temperature', 'shake').
        display_name: Human-readable label for reports.
        unit:         Measurement unit, empty for flags and arrays.
        value_kind:   Declared value type; drives value normalization.
    """

    name: str
    display_name: str
    unit: str
    value_kind: ValueKind

    def to_json(self) -> dict:
        return {
            "name": self.name,
            "displayName": self.display_name,
            "unit": self.unit,
            "type": self.value_kind.value,
        }


# ---------------------------------------------------------------------------
# Raw values (tagged union)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NumberValue:
    value: int | float


@dataclass(frozen=True)
class TextValue:
    value: str


@dataclass(frozen=True)
class BooleanValue:
    value: bool


@dataclass(frozen=True)
class OpaqueValue:
    """Anything else the platform sends: arrays, objects, null."""

    value: Any


RawValue = Union[NumberValue, TextValue, BooleanValue, OpaqueValue]


def decode_raw(obj: Any) -> RawValue:
    """Tag a decoded JSON scalar/structure with its raw value type.

    ``bool`` is checked before numbers since it subclasses ``int``.
    """
    if isinstance(obj, bool):
        return BooleanValue(obj)
    if isinstance(obj, (int, float)):
        return NumberValue(obj)
    if isinstance(obj, str):
        return TextValue(obj)
    return OpaqueValue(obj)


@dataclass(frozen=True)
class RawSample:
    """One ``dataList`` entry exactly as the platform returned it."""

    raw_time: RawValue
    raw_value: RawValue

    @classmethod
    def from_json(cls, item: dict) -> "RawSample":
        return cls(
            raw_time=decode_raw(item.get("time")),
            raw_value=decode_raw(item.get("value")),
        )


# ---------------------------------------------------------------------------
# Normalized results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NormalizedSample:
    """A sample with a canonical UTC timestamp and a value typed per spec."""

    timestamp: datetime
    value: Any

    def to_json(self) -> dict:
        return {"time": _format_time(self.timestamp), "value": self.value}


@dataclass
class PointResult:
    """Everything one sync produced for a single data point.

    A point whose query failed is still present, with no samples and the
    failure cause in ``error``.

    Attributes:
        spec:    The registry entry that was queried.
        samples: Normalized samples in platform order.
        error:   Failure description when the query failed, else None.
    """

    spec: DataPointSpec
    samples: list[NormalizedSample] = field(default_factory=list)
    error: str | None = None

    @property
    def display_name(self) -> str:
        return self.spec.display_name

    @property
    def unit(self) -> str:
        return self.spec.unit

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_json(self) -> dict:
        return {
            "displayName": self.spec.display_name,
            "unit": self.spec.unit,
            "type": self.spec.value_kind.value,
            "data": [s.to_json() for s in self.samples],
        }


def failed_points(results: dict[str, PointResult]) -> list[str]:
    """Return the names of data points whose query failed in a sync."""
    return [name for name, result in results.items() if result.failed]


@dataclass
class PointSummary:
    """Statistics over the numeric samples of one data point."""

    point_name: str
    unit: str
    display_name: str = ""
    count: int = 0
    min_value: float = 0.0
    max_value: float = 0.0
    avg_value: float = 0.0

    def to_json(self) -> dict:
        return {
            "point_name": self.point_name,
            "display_name": self.display_name,
            "unit": self.unit,
            "count": self.count,
            "min_value": self.min_value,
            "max_value": self.max_value,
            "avg_value": self.avg_value,
        }


@dataclass(frozen=True)
class SeriesPoint:
    """One entry of a report time series (one per sample, not bucketed)."""

    time: datetime
    value: Any

    def to_json(self) -> dict:
        return {"time_bucket": _format_time(self.time), "avg_value": self.value}


@dataclass
class StoredSample:
    """A telemetry sample as a persistent telemetry store would hold it."""

    session_id: str
    point_name: str
    point_value: float
    unit: str
    timestamp: datetime
    raw_data: str = ""

    def to_json(self) -> dict:
        return {
            "session_id": self.session_id,
            "point_name": self.point_name,
            "point_value": self.point_value,
            "unit": self.unit,
            "timestamp": _format_time(self.timestamp),
            "raw_data": self.raw_data,
        }


@dataclass
class SessionReport:
    """The composed report for one monitoring session.

    Attributes:
        session:       The session the report covers.
        points:        point name → summary.
        series:        point name → per-sample series in sample order.
        raw_samples:   Stored raw samples (empty without a persistent store).
        stored_points: Summaries that came from the telemetry store, if any.
    """

    session: DeviceSession
    points: dict[str, PointSummary] = field(default_factory=dict)
    series: dict[str, list[SeriesPoint]] = field(default_factory=dict)
    raw_samples: list[StoredSample] = field(default_factory=list)
    stored_points: list[PointSummary] = field(default_factory=list)

    def to_json(self) -> dict:
        return {
            "session": self.session.to_json(),
            "iotData": {
                "points": [p.to_json() for p in self.stored_points],
                "aggregated": {
                    name: {
                        "summary": summary.to_json(),
                        "timeSeries": [s.to_json() for s in self.series.get(name, [])],
                    }
                    for name, summary in self.points.items()
                },
                "raw": [r.to_json() for r in self.raw_samples],
            },
        }


# ---------------------------------------------------------------------------
# Auth token
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CachedToken:
    """Platform access token plus the local policy deciding when it expires.

    The platform does not report a lifetime; ``ttl`` is configured locally.
    """

    value: str
    issued_at: datetime
    ttl: timedelta

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + self.ttl

    def is_valid(self, now: datetime) -> bool:
        return bool(self.value) and now < self.expires_at


def _format_time(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
