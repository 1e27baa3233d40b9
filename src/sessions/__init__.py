"""Device on/off monitoring sessions.

Modules:
    base    DeviceSession record, SessionStatus, SessionFilter
    store   SessionStore interface and its Postgres implementation
"""

from src.sessions.base import DeviceSession, SessionFilter, SessionStatus
from src.sessions.store import (
    PostgresSessionStore,
    SessionNotFoundError,
    SessionStateError,
    SessionStore,
)

__all__ = [
    "DeviceSession",
    "SessionFilter",
    "SessionStatus",
    "SessionStore",
    "PostgresSessionStore",
    "SessionNotFoundError",
    "SessionStateError",
]
