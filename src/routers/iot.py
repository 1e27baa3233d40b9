"""IoT platform endpoints: manual sync, data point catalogue, connection test."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException

from src.dependencies import IotServiceDep, SessionStoreDep, load_session
from src.iot.base import failed_points
from src.iot.errors import AuthError

router = APIRouter(prefix="/iot", tags=["iot"])
logger = logging.getLogger("devmon.routers.iot")


@router.post("/sync/{session_id}")
async def sync_iot_data(session_id: str, store: SessionStoreDep, iot: IotServiceDep) -> Any:
    """Pull all data points for a session and return them as flat rows."""
    session = await load_session(session_id, store)
    results = await iot.sync_session_data(session)

    rows: list[dict[str, Any]] = []
    for name, result in results.items():
        for sample in result.samples:
            entry = sample.to_json()
            rows.append(
                {
                    "pointName": name,
                    "pointValue": entry["value"],
                    "timestamp": entry["time"],
                    "unit": result.unit,
                }
            )

    return {
        "message": "IoT data synced successfully",
        "data": rows,
        "dataCount": len(rows),
        "failedPoints": failed_points(results),
    }


@router.get("/data-points")
async def get_data_points(iot: IotServiceDep) -> Any:
    return {"dataPoints": [spec.to_json() for spec in iot.data_points]}


@router.get("/device/{device_id}/points")
async def get_device_points(device_id: str, iot: IotServiceDep) -> Any:
    """Every device exposes the same thing model, so this is the registry."""
    return {
        "success": True,
        "data": [
            {"name": spec.name, "displayName": spec.display_name, "unit": spec.unit}
            for spec in iot.data_points
        ],
    }


@router.get("/test-connection")
async def test_iot_connection(iot: IotServiceDep) -> Any:
    try:
        await iot.test_connection()
    except AuthError as exc:
        logger.warning("IoT connection test failed: %s", exc)
        raise HTTPException(
            status_code=502, detail=f"IoT connection test failed: {exc}"
        ) from exc
    return {"message": "IoT connection test successful", "success": True}
