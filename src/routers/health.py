"""Liveness probe for the API process, its database and the IoT token cache."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from src.dependencies import AppSettings, IotServiceDep
from src.services.database import fetchval

router = APIRouter(tags=["system"])
logger = logging.getLogger("devmon.health")


@router.get("/health")
async def health_check(settings: AppSettings, iot: IotServiceDep) -> dict:
    """Always 200 while the process is up; ``status`` says whether the DB answers.

    The IoT platform is not contacted here; use ``/api/iot/test-connection``.
    """
    db_ok = False
    try:
        db_ok = await fetchval("SELECT 1") == 1
    except Exception as exc:
        logger.warning("Health check DB probe failed: %s", exc)

    token = iot.cached_token
    return {
        "status": "healthy" if db_ok else "degraded",
        "environment": settings.environment,
        "version": settings.app_version,
        "database": "connected" if db_ok else "unreachable",
        "iot": {
            "base_url": settings.iot_api_base_url,
            "data_points": len(iot.data_points),
            "token_expires_at": token.expires_at.isoformat() if token else None,
        },
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
