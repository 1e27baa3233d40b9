"""Query client for the telemetry platform's device property history.

Endpoint used:
    POST /api/v1/thing/queryDevicePropertiesData

Request body::

    {"deviceName": "...", "identifier": ["temperature"],
     "startTime": "2026-02-23 08:00:00", "endTime": "2026-02-23 09:00:00"}

Response body::

    {"data": [{"point": {"identifier": "temperature"},
               "dataList": [{"time": 1771833600000, "value": "21.5"}, ...]}]}
"""

from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo

import httpx

from src.iot.base import RawSample
from src.iot.errors import AuthError, NetworkError, ParseError
from src.iot.token_manager import TokenManager
from src.sessions.base import ensure_utc

logger = logging.getLogger("devmon.iot.client")

QUERY_PATH = "/api/v1/thing/queryDevicePropertiesData"
PLATFORM_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class QueryClient:
    """Issue one telemetry query per (device, data point, window).

    The client never retries.  A 401 clears the cached token so the next
    query (from any caller) triggers a fresh login.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        tokens: TokenManager,
        base_url: str,
        platform_tz: tzinfo | str = "UTC",
    ) -> None:
        """Initialize the query client.

        Args:
            http_client: Shared async HTTP client.
            tokens:      Token manager supplying the ``token`` header.
            base_url:    Platform base URL.
            platform_tz: Timezone the platform expects window bounds in.
        """
        self._http_client = http_client
        self._tokens = tokens
        self._query_url = base_url.rstrip("/") + QUERY_PATH
        self._platform_tz = ZoneInfo(platform_tz) if isinstance(platform_tz, str) else platform_tz

    def format_time(self, value: datetime) -> str:
        """Render a window bound as the platform's local ``YYYY-MM-DD HH:MM:SS``."""
        return ensure_utc(value).astimezone(self._platform_tz).strftime(PLATFORM_TIME_FORMAT)

    async def query(
        self,
        device_id: str,
        point_name: str,
        window_start: datetime,
        window_end: datetime,
    ) -> list[RawSample]:
        """Fetch the raw samples of one data point in a time window.

        Args:
            device_id:    Platform device name.
            point_name:   Data point identifier.
            window_start: Window start (naive values are taken as UTC).
            window_end:   Window end.

        Returns:
            Raw samples in platform order; empty if the platform has none.

        Raises:
            AuthError:    Token could not be obtained or was rejected.
            NetworkError: Transport failure, timeout or non-2xx status.
            ParseError:   Response body is not a JSON object.
        """
        token = await self._tokens.get_token()
        body = {
            "deviceName": device_id,
            "identifier": [point_name],
            "startTime": self.format_time(window_start),
            "endTime": self.format_time(window_end),
        }
        logger.debug("Querying %s with %s", self._query_url, body)

        try:
            response = await self._http_client.post(
                self._query_url, json=body, headers={"token": token}
            )
        except httpx.TimeoutException as exc:
            raise NetworkError(f"Query for {point_name} timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"Failed to query device data: {exc}") from exc

        if response.status_code == 401:
            self._tokens.invalidate()
            raise AuthError(f"Authentication failed: {_error_message(response)}")
        if not response.is_success:
            raise NetworkError(
                f"Query failed with status {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ParseError(f"Failed to parse query response: {exc}") from exc
        if not isinstance(payload, dict):
            raise ParseError(
                f"Failed to parse query response: expected object, got {type(payload).__name__}"
            )

        samples = extract_samples(payload, point_name)
        logger.debug("Got %d samples for %s/%s", len(samples), device_id, point_name)
        return samples


def extract_samples(payload: dict, point_name: str) -> list[RawSample]:
    """Pull the ``dataList`` of ``point_name`` out of a query response.

    Entries for other identifiers are dropped.  A missing or non-list
    ``data`` means no samples.
    """
    data = payload.get("data")
    if not isinstance(data, list):
        logger.warning("Query response 'data' is %s, not a list", type(data).__name__)
        return []

    samples: list[RawSample] = []
    for entry in data:
        if not isinstance(entry, dict):
            continue
        point = entry.get("point")
        if not isinstance(point, dict) or point.get("identifier") != point_name:
            continue
        data_list = entry.get("dataList")
        if not isinstance(data_list, list):
            continue
        samples.extend(RawSample.from_json(item) for item in data_list if isinstance(item, dict))
    return samples


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or "token rejected"
    if isinstance(body, dict):
        return str(body.get("message") or "token rejected")
    return "token rejected"
