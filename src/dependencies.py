"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from src.config import Settings, get_settings
from src.iot.service import IotService
from src.sessions.base import DeviceSession
from src.sessions.store import SessionNotFoundError, SessionStore


def get_iot_service(request: Request) -> IotService:
    """Return the IotService created in the app lifespan."""
    return request.app.state.iot_service


def get_session_store(request: Request) -> SessionStore:
    """Return the SessionStore created in the app lifespan."""
    return request.app.state.session_store


async def load_session(session_id: str, store: SessionStore, what: str = "Session") -> DeviceSession:
    """Fetch a session or raise a 404."""
    try:
        return await store.get_by_id(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail=f"{what} not found") from None


# Annotated shortcuts for route signatures
IotServiceDep = Annotated[IotService, Depends(get_iot_service)]
SessionStoreDep = Annotated[SessionStore, Depends(get_session_store)]
AppSettings = Annotated[Settings, Depends(get_settings)]
