"""Device Monitor API: FastAPI application entry point.

Run locally:
    uvicorn src.main:app --reload --port 3000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.config import Settings, get_settings
from src.iot.service import IotService
from src.routers import health, iot, sessions, webhooks
from src.services.database import close_pool, init_pool, init_schema
from src.sessions.store import PostgresSessionStore

# ---------- Logging ----------

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)-8s %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("devmon")


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    """The one outbound client for the IoT platform; its timeout applies per request."""
    return httpx.AsyncClient(
        timeout=settings.iot_request_timeout_seconds,
        proxy=settings.outbound_proxy,
        verify=settings.iot_verify_ssl,
        headers={"Content-Type": "application/json"},
    )


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings = get_settings()
    logger.info(
        "Starting Device Monitor API v%s [%s]",
        settings.app_version,
        settings.environment,
    )
    await init_pool(settings)
    await init_schema()

    http_client = build_http_client(settings)
    app.state.iot_service = IotService.from_settings(settings, http_client)
    app.state.session_store = PostgresSessionStore()
    if not settings.iot_app_key:
        logger.warning("IOT_APP_KEY is not set; IoT platform calls will be rejected")

    yield

    await http_client.aclose()
    await close_pool()
    logger.info("Device Monitor API shut down")


# ---------- App factory ----------

def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Device on/off session tracking with telemetry reports "
            "pulled from the IoT cloud platform."
        ),
        version=settings.app_version,
        debug=settings.debug,
        docs_url=None if settings.is_production else "/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_prefix = "/api"
    app.include_router(health.router, prefix=api_prefix)
    app.include_router(sessions.router, prefix=api_prefix)
    app.include_router(iot.router, prefix=api_prefix)
    app.include_router(webhooks.router, prefix=api_prefix)

    return app


app = create_app()
