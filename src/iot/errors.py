"""Exception taxonomy for the IoT telemetry platform integration.

All platform failures derive from :class:`IotError` so callers that fan out
across data points can isolate one failure without catching unrelated bugs.
"""

from __future__ import annotations


class IotError(Exception):
    """Base class for every telemetry platform failure."""


class AuthError(IotError):
    """Credentials were rejected, or a query's token was refused (HTTP 401)."""


class NetworkError(IotError):
    """Transport failure, timeout, or a non-2xx HTTP status from the platform.

    Attributes:
        status_code: HTTP status when one was received, else None.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseError(IotError):
    """The platform answered with a body that is not the expected JSON shape."""
