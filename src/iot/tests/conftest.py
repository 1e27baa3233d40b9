"""Shared fixtures and mock platform responses for telemetry engine tests."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx
import pytest

from src.iot.base import DataPointSpec, ValueKind
from src.iot.client import QUERY_PATH, QueryClient
from src.iot.token_manager import AUTH_PATH, TokenManager
from src.sessions.base import DeviceSession, SessionStatus

BASE_URL = "https://iot.test"
TEST_DEVICE = "device-001"
T0 = datetime(2026, 2, 23, 8, 0, tzinfo=timezone.utc)
T0_MS = int(T0.timestamp() * 1000)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class FakePlatform:
    """In-memory stand-in for the telemetry platform behind httpx.MockTransport.

    ``points`` maps identifier → dataList; ``query_status`` maps identifier →
    HTTP status to return instead of data.
    """

    def __init__(self) -> None:
        self.tokens_issued = 0
        self.auth_calls = 0
        self.auth_status = 200
        self.auth_body: dict[str, Any] | None = None
        self.points: dict[str, list[dict]] = {}
        self.query_status: dict[str, int] = {}
        self.query_bodies: list[dict] = []
        self.query_tokens: list[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == AUTH_PATH:
            return self._auth(request)
        if request.url.path == QUERY_PATH:
            return self._query(request)
        return httpx.Response(404)

    def _auth(self, request: httpx.Request) -> httpx.Response:
        self.auth_calls += 1
        if self.auth_body is not None:
            return httpx.Response(self.auth_status, json=self.auth_body)
        self.tokens_issued += 1
        return httpx.Response(
            self.auth_status,
            json={"success": True, "code": 200, "data": f"token-{self.tokens_issued}"},
        )

    def _query(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.query_bodies.append(body)
        self.query_tokens.append(request.headers.get("token", ""))
        name = body["identifier"][0]
        status = self.query_status.get(name)
        if status is not None:
            return httpx.Response(status, json={"message": "token expired"})
        return httpx.Response(
            200,
            json={"data": [{"point": {"identifier": name}, "dataList": self.points.get(name, [])}]},
        )


# ---------------------------------------------------------------------------
# Registry fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def data_points() -> tuple[DataPointSpec, ...]:
    """A small registry covering every value kind."""
    return (
        DataPointSpec("temperature", "Temperature", "°C", ValueKind.NUMBER),
        DataPointSpec("shake", "Vibration", "g", ValueKind.NUMBER),
        DataPointSpec("feature_hilbert_2_hb", "Hilbert envelope", "", ValueKind.ARRAY),
        DataPointSpec("controlledvariable", "Running", "", ValueKind.BOOLEAN),
    )


@pytest.fixture
def temperature_spec(data_points: tuple[DataPointSpec, ...]) -> DataPointSpec:
    return data_points[0]


# ---------------------------------------------------------------------------
# Session fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def running_session() -> DeviceSession:
    return DeviceSession(
        device_id=TEST_DEVICE,
        session_id="5f0c7d2e-0000-4000-8000-000000000001",
        start_time=T0,
        status=SessionStatus.RUNNING,
    )


@pytest.fixture
def completed_session() -> DeviceSession:
    return DeviceSession(
        device_id=TEST_DEVICE,
        session_id="5f0c7d2e-0000-4000-8000-000000000002",
        start_time=T0,
        end_time=T0 + timedelta(minutes=30),
        status=SessionStatus.COMPLETED,
        duration=1800,
    )


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(T0 + timedelta(minutes=10))


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()


def make_http_client(handler: Callable) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def http_client(platform: FakePlatform) -> httpx.AsyncClient:
    return make_http_client(platform.handler)


@pytest.fixture
def token_manager(http_client: httpx.AsyncClient, clock: FakeClock) -> TokenManager:
    return TokenManager(
        http_client,
        base_url=BASE_URL,
        app_id="test_app_id",
        app_secret="test_app_secret",
        clock=clock,
    )


@pytest.fixture
def query_client(http_client: httpx.AsyncClient, token_manager: TokenManager) -> QueryClient:
    return QueryClient(http_client, token_manager, base_url=BASE_URL)
