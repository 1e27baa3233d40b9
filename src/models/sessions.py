"""Request models for session webhooks."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from pydantic import Field

from src.models.base import DeviceMonitorBase, utc_now

logger = logging.getLogger("devmon.models.sessions")


class WebhookRequest(DeviceMonitorBase):
    """Body of the device power webhooks.

    ``timestamp`` is RFC 3339; a missing or unparseable value means "now".
    """

    power: str = ""
    device_id: str | None = Field(default=None, alias="deviceId")
    session_id: str | None = Field(default=None, alias="sessionId")
    timestamp: str | None = None
    metadata: dict[str, Any] | None = None

    def event_time(self) -> datetime:
        if not self.timestamp:
            return utc_now()
        try:
            parsed = datetime.fromisoformat(self.timestamp.replace("Z", "+00:00"))
        except ValueError:
            logger.warning("Ignoring unparseable webhook timestamp %r", self.timestamp)
            return utc_now()
        if parsed.tzinfo is None:
            logger.warning("Ignoring webhook timestamp without offset %r", self.timestamp)
            return utc_now()
        return parsed
