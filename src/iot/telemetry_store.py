"""Telemetry persistence seam.

Device Monitor does not store telemetry: every report is recomputed from the
live platform.  The report builder still asks a TelemetryStore first so a
persistent backend can be substituted later without touching the engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.iot.base import PointSummary, SeriesPoint, StoredSample


class TelemetryStore(ABC):
    """Read access to telemetry stored for a session."""

    @abstractmethod
    async def get_point_summaries(self, session_id: str) -> list[PointSummary]:
        """Return one stored summary per data point of the session."""

    @abstractmethod
    async def get_time_series(
        self, session_id: str, point_name: str, interval: str = "minute"
    ) -> list[SeriesPoint]:
        """Return the stored series of one data point, bucketed by ``interval``."""

    @abstractmethod
    async def get_raw_samples(self, session_id: str) -> list[StoredSample]:
        """Return every stored raw sample of the session."""


class NullTelemetryStore(TelemetryStore):
    """The store used in production: nothing is ever persisted."""

    async def get_point_summaries(self, session_id: str) -> list[PointSummary]:
        return []

    async def get_time_series(
        self, session_id: str, point_name: str, interval: str = "minute"
    ) -> list[SeriesPoint]:
        return []

    async def get_raw_samples(self, session_id: str) -> list[StoredSample]:
        return []
