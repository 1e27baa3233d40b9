"""Access token cache for the telemetry platform.

The platform issues an opaque token from ``POST /api/v1/oauth/auth`` and
does not say how long it lives; the lifetime is a local policy
(``IOT_TOKEN_TTL_HOURS``, 24 hours by default).

Refresh is single-flight: however many coroutines find the cache cold at
once, one auth request is sent and every waiter receives its token or its
error.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

import httpx

from src.iot.base import CachedToken
from src.iot.errors import AuthError

logger = logging.getLogger("devmon.iot.token")

AUTH_PATH = "/api/v1/oauth/auth"
DEFAULT_TOKEN_TTL = timedelta(hours=24)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenManager:
    """Owns the cached platform token and its refresh.

    Usage::

        tokens = TokenManager(http_client, base_url, app_id, app_secret)
        token = await tokens.get_token()
        ...
        tokens.invalidate()   # after the platform rejects the token
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        app_id: str,
        app_secret: str,
        ttl: timedelta = DEFAULT_TOKEN_TTL,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the token manager.

        Args:
            http_client: Shared async HTTP client.
            base_url:    Platform base URL, without trailing slash.
            app_id:      Platform application key.
            app_secret:  Platform application secret.
            ttl:         How long a freshly issued token is trusted.
            clock:       Returns the current aware UTC time (injectable for tests).
        """
        self._http_client = http_client
        self._auth_url = base_url.rstrip("/") + AUTH_PATH
        self._app_id = app_id
        self._app_secret = app_secret
        self._ttl = ttl
        self._clock = clock
        self._cached: CachedToken | None = None
        self._lock = asyncio.Lock()
        self._inflight: asyncio.Future[str] | None = None

    @property
    def cached(self) -> CachedToken | None:
        return self._cached

    async def get_token(self) -> str:
        """Return a valid access token, refreshing it if needed.

        Raises:
            AuthError: If the platform rejects the credentials or the auth
                request cannot be completed.
        """
        cached = self._cached
        if cached is not None and cached.is_valid(self._clock()):
            return cached.value

        async with self._lock:
            # Re-check: another caller may have refreshed while we waited.
            cached = self._cached
            if cached is not None and cached.is_valid(self._clock()):
                return cached.value
            if self._inflight is None:
                self._inflight = asyncio.ensure_future(self._refresh())
                self._inflight.add_done_callback(self._clear_inflight)
            inflight = self._inflight

        return await asyncio.shield(inflight)

    def invalidate(self) -> None:
        """Drop the cached token so the next caller refreshes."""
        if self._cached is not None:
            logger.info("Invalidating cached IoT access token")
        self._cached = None

    def _clear_inflight(self, future: asyncio.Future) -> None:
        if self._inflight is future:
            self._inflight = None

    async def _refresh(self) -> str:
        """Request a new token from the platform and cache it."""
        logger.info("Requesting IoT access token from %s", self._auth_url)
        try:
            response = await self._http_client.post(
                self._auth_url,
                json={"appId": self._app_id, "appSecret": self._app_secret},
            )
        except httpx.HTTPError as exc:
            raise AuthError(f"Failed to get access token: {exc}") from exc

        if response.status_code != 200:
            raise AuthError(
                f"Token request failed with status {response.status_code}: {response.text}"
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise AuthError(f"Failed to parse token response: {exc}") from exc
        if not isinstance(body, dict):
            raise AuthError("Failed to parse token response: expected a JSON object")

        token = body.get("data")
        if body.get("success") is not True or body.get("code") != 200:
            raise AuthError(f"Authentication failed: {body.get('errorMessage') or 'unknown error'}")
        if not token or not isinstance(token, str):
            raise AuthError("Authentication failed: response carried no token")

        self._cached = CachedToken(value=token, issued_at=self._clock(), ttl=self._ttl)
        logger.info(
            "Obtained IoT access token (valid until %s)", self._cached.expires_at.isoformat()
        )
        return token
