"""Tests for TokenManager: caching, expiry and single-flight refresh."""

from __future__ import annotations

import asyncio
import json
from datetime import timedelta

import httpx
import pytest

from src.iot.errors import AuthError
from src.iot.tests.conftest import BASE_URL, FakeClock, FakePlatform, make_http_client
from src.iot.token_manager import AUTH_PATH, TokenManager


def _manager(handler, clock: FakeClock | None = None, ttl: timedelta = timedelta(hours=24)) -> TokenManager:
    return TokenManager(
        make_http_client(handler),
        base_url=BASE_URL,
        app_id="test_app_id",
        app_secret="test_app_secret",
        ttl=ttl,
        clock=clock or FakeClock(),
    )


class TestTokenCaching:
    @pytest.mark.asyncio
    async def test_first_call_authenticates(
        self, token_manager: TokenManager, platform: FakePlatform
    ) -> None:
        token = await token_manager.get_token()
        assert token == "token-1"
        assert platform.auth_calls == 1

    @pytest.mark.asyncio
    async def test_auth_request_body(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "code": 200, "data": "abc"})

        await _manager(handler).get_token()

        assert str(seen[0].url) == BASE_URL + AUTH_PATH
        assert seen[0].method == "POST"
        assert json.loads(seen[0].content) == {
            "appId": "test_app_id",
            "appSecret": "test_app_secret",
        }

    @pytest.mark.asyncio
    async def test_cached_token_reused(
        self, token_manager: TokenManager, platform: FakePlatform
    ) -> None:
        first = await token_manager.get_token()
        second = await token_manager.get_token()
        assert first == second
        assert platform.auth_calls == 1

    @pytest.mark.asyncio
    async def test_expired_token_refreshed(
        self, token_manager: TokenManager, platform: FakePlatform, clock: FakeClock
    ) -> None:
        await token_manager.get_token()
        clock.advance(timedelta(hours=24))
        token = await token_manager.get_token()
        assert token == "token-2"
        assert platform.auth_calls == 2

    @pytest.mark.asyncio
    async def test_token_valid_just_before_ttl(
        self, token_manager: TokenManager, platform: FakePlatform, clock: FakeClock
    ) -> None:
        await token_manager.get_token()
        clock.advance(timedelta(hours=23, minutes=59))
        await token_manager.get_token()
        assert platform.auth_calls == 1

    @pytest.mark.asyncio
    async def test_cached_exposes_expiry(
        self, token_manager: TokenManager, clock: FakeClock
    ) -> None:
        assert token_manager.cached is None
        await token_manager.get_token()
        assert token_manager.cached is not None
        assert token_manager.cached.expires_at == clock.now + timedelta(hours=24)

    @pytest.mark.asyncio
    async def test_invalidate_forces_refresh(
        self, token_manager: TokenManager, platform: FakePlatform
    ) -> None:
        await token_manager.get_token()
        token_manager.invalidate()
        assert token_manager.cached is None
        token = await token_manager.get_token()
        assert token == "token-2"
        assert platform.auth_calls == 2


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_refresh(self) -> None:
        calls = 0

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return httpx.Response(
                200, json={"success": True, "code": 200, "data": f"token-{calls}"}
            )

        manager = _manager(handler)
        tokens = await asyncio.gather(*(manager.get_token() for _ in range(20)))

        assert calls == 1
        assert set(tokens) == {"token-1"}

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_failure(self) -> None:
        calls = 0

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return httpx.Response(
                200, json={"success": False, "code": 401, "errorMessage": "bad secret"}
            )

        manager = _manager(handler)
        results = await asyncio.gather(
            *(manager.get_token() for _ in range(5)), return_exceptions=True
        )

        assert calls == 1
        assert all(isinstance(r, AuthError) for r in results)

    @pytest.mark.asyncio
    async def test_failed_refresh_is_retried_by_next_caller(self) -> None:
        responses = [
            httpx.Response(503, text="unavailable"),
            httpx.Response(200, json={"success": True, "code": 200, "data": "recovered"}),
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        manager = _manager(handler)
        with pytest.raises(AuthError):
            await manager.get_token()
        assert await manager.get_token() == "recovered"


class TestAuthFailures:
    @pytest.mark.asyncio
    async def test_rejected_credentials(self, token_manager: TokenManager, platform: FakePlatform) -> None:
        platform.auth_body = {"success": False, "code": 401, "errorMessage": "invalid appSecret"}
        with pytest.raises(AuthError, match="invalid appSecret"):
            await token_manager.get_token()
        assert token_manager.cached is None

    @pytest.mark.asyncio
    async def test_non_200_status(self, token_manager: TokenManager, platform: FakePlatform) -> None:
        platform.auth_status = 500
        with pytest.raises(AuthError, match="status 500"):
            await token_manager.get_token()

    @pytest.mark.asyncio
    async def test_success_without_token(self, token_manager: TokenManager, platform: FakePlatform) -> None:
        platform.auth_body = {"success": True, "code": 200, "data": ""}
        with pytest.raises(AuthError, match="no token"):
            await token_manager.get_token()

    @pytest.mark.asyncio
    async def test_malformed_json(self) -> None:
        manager = _manager(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(AuthError, match="parse"):
            await manager.get_token()

    @pytest.mark.asyncio
    async def test_transport_error_chained(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        manager = _manager(handler)
        with pytest.raises(AuthError) as exc_info:
            await manager.get_token()
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
