"""Device session records shared by the session store and the telemetry engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any


class SessionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass
class DeviceSession:
    """One on/off monitoring session of a device.

    ``end_time`` is set exactly when ``status`` is COMPLETED.

    Attributes:
        device_id:  Platform device name the telemetry is queried for.
        session_id: Public UUID string identifying the session.
        start_time: UTC timestamp the device was switched on.
        end_time:   UTC timestamp the device was switched off, None while running.
        status:     Lifecycle state.
        id:         Database row id.
        duration:   Whole seconds between start and end, once completed.
        metadata:   Free-form JSON object sent with the webhooks.
        created_at: Row creation timestamp.
        updated_at: Row update timestamp.
    """

    device_id: str
    session_id: str
    start_time: datetime
    end_time: datetime | None = None
    status: SessionStatus = SessionStatus.RUNNING
    id: int | None = None
    duration: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED and self.end_time is not None

    def sync_window_end(self, now: datetime) -> datetime:
        """Return the end of the telemetry window: end_time if completed, else now."""
        if self.is_completed:
            return self.end_time  # type: ignore[return-value]
        return now

    def to_json(self) -> dict:
        return {
            "id": self.id,
            "device_id": self.device_id,
            "session_id": self.session_id,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "duration": self.duration,
            "status": self.status.value,
            "metadata": self.metadata or None,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class SessionFilter:
    """Filter and pagination for session listings.

    Date bounds apply to the calendar date of ``start_time`` and are inclusive.
    """

    device_id: str | None = None
    status: SessionStatus | None = None
    start_date: date | None = None
    end_date: date | None = None
    limit: int = 50
    offset: int = 0


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
