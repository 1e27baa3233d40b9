"""Device power webhooks.

The device gateway posts ``power: on`` when a device starts and
``power: off`` when it stops.  Each start opens a session; each stop
completes either the named session or the device's newest running one.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from src.dependencies import AppSettings, SessionStoreDep
from src.models.base import utc_now
from src.models.sessions import WebhookRequest
from src.sessions.store import SessionNotFoundError, SessionStateError, SessionStore

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = logging.getLogger("devmon.webhooks")


def _resolve_device_id(query_device: str | None, body_device: str | None, default: str) -> str:
    """Query ``deviceName`` first, then the body, then the configured default."""
    return query_device or body_device or default


async def _latest_running_session_id(store: SessionStore, device_id: str) -> str:
    running = await store.running_for_device(device_id)
    if not running:
        raise HTTPException(status_code=404, detail="No running session found for device")
    return running[0].session_id


async def _end_session(
    store: SessionStore, session_id: str, body: WebhookRequest | None = None, metadata: dict | None = None
) -> Any:
    end_time = body.event_time() if body else utc_now()
    try:
        return await store.end(session_id, end_time, metadata)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found") from None
    except SessionStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.post("/device/start")
async def device_start(
    body: WebhookRequest,
    store: SessionStoreDep,
    settings: AppSettings,
    device_name: str | None = Query(default=None, alias="deviceName"),
) -> dict:
    if body.power != "on":
        raise HTTPException(status_code=400, detail="Invalid power status")

    device_id = _resolve_device_id(device_name, body.device_id, settings.iot_device_code)
    session = await store.create(device_id, body.event_time(), body.metadata)
    logger.info("Device %s started, session %s", device_id, session.session_id)

    return {
        "message": "Device started successfully",
        "sessionId": session.session_id,
        "deviceId": device_id,
        "startTime": session.start_time.isoformat(),
    }


@router.post("/device/end")
async def device_end(
    body: WebhookRequest,
    store: SessionStoreDep,
    settings: AppSettings,
    device_name: str | None = Query(default=None, alias="deviceName"),
) -> dict:
    if body.power != "off":
        raise HTTPException(status_code=400, detail="Invalid power status")

    device_id = _resolve_device_id(device_name, body.device_id, settings.iot_device_code)
    session_id = body.session_id or await _latest_running_session_id(store, device_id)
    session = await _end_session(store, session_id, body, body.metadata)
    logger.info("Device %s stopped, session %s", device_id, session_id)

    return {
        "message": "Device stopped successfully",
        "sessionId": session_id,
        "deviceId": device_id,
        "endTime": session.end_time.isoformat() if session.end_time else None,
    }


@router.post("/test/start")
async def test_start(
    store: SessionStoreDep,
    settings: AppSettings,
    device_id: str | None = Query(default=None, alias="deviceId"),
) -> dict:
    device = device_id or settings.iot_device_code
    session = await store.create(device, utc_now(), {"test": True})
    return {
        "message": "Test device started successfully",
        "sessionId": session.session_id,
        "deviceId": device,
    }


@router.post("/test/end")
async def test_end(
    store: SessionStoreDep,
    session_id: str | None = Query(default=None, alias="sessionId"),
    device_id: str | None = Query(default=None, alias="deviceId"),
) -> dict:
    if not session_id and not device_id:
        raise HTTPException(status_code=400, detail="Either sessionId or deviceId is required")

    target = session_id or await _latest_running_session_id(store, device_id or "")
    await _end_session(store, target, metadata={"test": True})
    return {"message": "Test device stopped successfully", "sessionId": target}
