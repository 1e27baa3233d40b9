"""The telemetry engine as seen by the request layer.

``IotService`` wires one TokenManager, QueryClient, FetchOrchestrator and
ReportBuilder around a shared ``httpx.AsyncClient``.  One instance is created
at application startup and handed to routers through a dependency.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Sequence

import httpx

from src.config import Settings
from src.iot.base import CachedToken, DataPointSpec, PointResult, SessionReport
from src.iot.client import QueryClient
from src.iot.orchestrator import FetchOrchestrator
from src.iot.registry import get_data_points
from src.iot.report import ReportBuilder
from src.iot.telemetry_store import NullTelemetryStore, TelemetryStore
from src.iot.token_manager import TokenManager
from src.sessions.base import DeviceSession

logger = logging.getLogger("devmon.iot.service")


class IotService:
    """Sync, connection test and report operations against the platform."""

    def __init__(
        self,
        tokens: TokenManager,
        orchestrator: FetchOrchestrator,
        reports: ReportBuilder,
    ) -> None:
        self._tokens = tokens
        self._orchestrator = orchestrator
        self._reports = reports

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        http_client: httpx.AsyncClient,
        data_points: Sequence[DataPointSpec] | None = None,
        store: TelemetryStore | None = None,
    ) -> "IotService":
        """Build the service graph from application settings.

        Args:
            settings:    Application settings.
            http_client: Shared async client; its timeout bounds every query.
            data_points: Registry override. Defaults to data_points.yaml.
            store:       Telemetry store. Defaults to NullTelemetryStore.
        """
        tokens = TokenManager(
            http_client,
            base_url=settings.iot_api_base_url,
            app_id=settings.iot_app_key,
            app_secret=settings.iot_app_secret,
            ttl=timedelta(hours=settings.iot_token_ttl_hours),
        )
        client = QueryClient(
            http_client,
            tokens,
            base_url=settings.iot_api_base_url,
            platform_tz=settings.iot_platform_timezone,
        )
        orchestrator = FetchOrchestrator(
            client,
            data_points if data_points is not None else get_data_points(),
            default_device_code=settings.iot_device_code,
        )
        reports = ReportBuilder(orchestrator, store or NullTelemetryStore())
        return cls(tokens, orchestrator, reports)

    @property
    def data_points(self) -> tuple[DataPointSpec, ...]:
        return self._orchestrator.data_points

    @property
    def cached_token(self) -> CachedToken | None:
        """The currently cached platform token, if any (never refreshes)."""
        return self._tokens.cached

    async def sync_session_data(self, session: DeviceSession) -> dict[str, PointResult]:
        """Pull every data point for the session window. Never raises per point."""
        return await self._orchestrator.sync(session)

    async def test_connection(self) -> None:
        """Check the credentials by obtaining a token.

        Raises:
            AuthError: If no token can be obtained.
        """
        await self._tokens.get_token()
        logger.info("IoT platform connection test succeeded")

    async def build_session_report(self, session: DeviceSession) -> SessionReport:
        return await self._reports.build_report(session)
