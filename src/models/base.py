"""Shared Pydantic base models and utilities."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DeviceMonitorBase(BaseModel):
    """Base model with shared config for all request/response schemas."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# ---------- Generic pagination / response wrappers ----------


class Pagination(BaseModel):
    limit: int
    offset: int
    total: int


class PaginatedResponse(BaseModel):
    success: bool = True
    data: list[Any]
    pagination: Pagination
