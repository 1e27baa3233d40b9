"""Session listing, statistics and report endpoints."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from src.dependencies import IotServiceDep, SessionStoreDep, load_session
from src.models.base import PaginatedResponse, Pagination
from src.sessions.base import SessionFilter, SessionStatus

router = APIRouter(prefix="/sessions", tags=["sessions"])
logger = logging.getLogger("devmon.routers.sessions")


@router.get("")
async def list_sessions(
    store: SessionStoreDep,
    device_id: str | None = Query(default=None, alias="deviceId"),
    status: SessionStatus | None = Query(default=None),
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    limit: int = Query(default=50, ge=0, le=500),
    offset: int = Query(default=0, ge=0),
) -> PaginatedResponse:
    flt = SessionFilter(
        device_id=device_id,
        status=status,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    sessions, total = await store.list(flt)
    return PaginatedResponse(
        data=[s.to_json() for s in sessions],
        pagination=Pagination(limit=limit, offset=offset, total=total),
    )


@router.get("/statistics")
async def get_statistics(
    store: SessionStoreDep,
    device_id: str | None = Query(default=None, alias="deviceId"),
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
) -> Any:
    stats = await store.statistics(device_id, start_date, end_date)
    return stats.to_json()


@router.get("/device/{device_id}/statistics")
async def get_device_statistics(
    device_id: str,
    store: SessionStoreDep,
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
) -> Any:
    stats = await store.statistics(device_id, start_date, end_date)
    return {"success": True, "data": stats.to_json()}


@router.get("/{session_id}")
async def get_session(session_id: str, store: SessionStoreDep) -> Any:
    session = await load_session(session_id, store)
    return session.to_json()


@router.get("/{session_id}/report")
async def get_session_report(
    session_id: str, store: SessionStoreDep, iot: IotServiceDep
) -> Any:
    """Session metadata plus per-point summaries and series.

    Always answers 200 for a known session: when the platform is unreachable
    the summaries are zero and the series empty.
    """
    session = await load_session(session_id, store)
    report = await iot.build_session_report(session)
    return {"success": True, "data": report.to_json()}


@router.delete("/{session_id}")
async def delete_session(session_id: str, store: SessionStoreDep) -> Any:
    if not await store.delete(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    logger.info("Deleted session %s", session_id)
    return {"message": "Session deleted successfully"}
