"""Assemble the session report consumed by the reporting endpoint."""

from __future__ import annotations

import logging

from src.iot.aggregator import build_series, summarize
from src.iot.base import SessionReport
from src.iot.orchestrator import FetchOrchestrator
from src.iot.telemetry_store import TelemetryStore
from src.sessions.base import DeviceSession

logger = logging.getLogger("devmon.iot.report")


class ReportBuilder:
    """Build a SessionReport from stored telemetry, or from a live sync.

    Stored summaries win when the telemetry store has any.  Otherwise all
    data points are synced from the platform and summarized in place; the
    report is produced even if every point failed (zero summaries, empty
    series).
    """

    def __init__(self, orchestrator: FetchOrchestrator, store: TelemetryStore) -> None:
        self._orchestrator = orchestrator
        self._store = store

    async def build_report(self, session: DeviceSession) -> SessionReport:
        """Return the report for ``session``."""
        report = SessionReport(session=session)

        stored = await self._store.get_point_summaries(session.session_id)
        if stored:
            logger.debug("Using %d stored summaries for session %s", len(stored), session.session_id)
            report.stored_points = stored
            for summary in stored:
                report.points[summary.point_name] = summary
                report.series[summary.point_name] = await self._store.get_time_series(
                    session.session_id, summary.point_name, "minute"
                )
        else:
            logger.info(
                "No stored telemetry for session %s (status=%s), syncing from platform",
                session.session_id,
                session.status.value,
            )
            results = await self._orchestrator.sync(session)
            for name, result in results.items():
                report.points[name] = summarize(result)
                report.series[name] = build_series(result)

        report.raw_samples = await self._store.get_raw_samples(session.session_id)
        return report
