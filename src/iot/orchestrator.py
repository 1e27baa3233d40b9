"""Concurrent fan-out of telemetry queries across the data point registry.

One task per data point is launched for every sync and all are joined
before returning, so a sync costs roughly its slowest point query.  Each
task returns its own PointResult; results are merged only after the join.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Sequence

from src.iot.base import DataPointSpec, PointResult, failed_points
from src.iot.client import QueryClient
from src.iot.errors import IotError
from src.iot.normalizer import normalize
from src.sessions.base import DeviceSession

logger = logging.getLogger("devmon.iot.orchestrator")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FetchOrchestrator:
    """Sync every registered data point for a session.

    A failing point never fails the sync: it is reported with no samples
    and its error recorded on the PointResult.
    """

    def __init__(
        self,
        client: QueryClient,
        data_points: Sequence[DataPointSpec],
        default_device_code: str = "",
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client:              Query client for single-point queries.
            data_points:         Registry of data points to query.
            default_device_code: Device name used when a session has none.
            clock:               Returns the current aware UTC time.
        """
        self._client = client
        self._data_points = tuple(data_points)
        self._default_device_code = default_device_code
        self._clock = clock

    @property
    def data_points(self) -> tuple[DataPointSpec, ...]:
        return self._data_points

    async def sync(self, session: DeviceSession) -> dict[str, PointResult]:
        """Query and normalize all data points over the session's window.

        Args:
            session: Session whose window is synced.

        Returns:
            point name → PointResult, with one entry per registry item.
        """
        device_id = session.device_id or self._default_device_code
        window_start = session.start_time
        window_end = session.sync_window_end(self._clock())

        logger.info(
            "Syncing IoT data for device %s, session %s, window %s → %s",
            device_id,
            session.session_id,
            window_start.isoformat(),
            window_end.isoformat(),
        )

        results = await asyncio.gather(
            *(
                self._fetch_point(spec, device_id, window_start, window_end)
                for spec in self._data_points
            )
        )
        merged = {result.spec.name: result for result in results}

        failed = failed_points(merged)
        if failed:
            logger.warning(
                "IoT sync for session %s: %d/%d points failed (%s)",
                session.session_id,
                len(failed),
                len(merged),
                ", ".join(failed),
            )
        logger.info(
            "IoT sync for session %s complete: %d samples across %d points",
            session.session_id,
            sum(len(r.samples) for r in merged.values()),
            len(merged),
        )
        return merged

    async def _fetch_point(
        self,
        spec: DataPointSpec,
        device_id: str,
        window_start: datetime,
        window_end: datetime,
    ) -> PointResult:
        try:
            raw_samples = await self._client.query(
                device_id, spec.name, window_start, window_end
            )
        except IotError as exc:
            logger.warning("Error querying %s for %s: %s", spec.name, device_id, exc)
            return PointResult(spec=spec, error=f"{type(exc).__name__}: {exc}")
        except Exception as exc:
            logger.exception("Unexpected error querying %s for %s", spec.name, device_id)
            return PointResult(spec=spec, error=f"{type(exc).__name__}: {exc}")

        return PointResult(spec=spec, samples=[normalize(raw, spec) for raw in raw_samples])
