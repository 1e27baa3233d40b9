"""Session persistence.

``SessionStore`` is the interface the routers and the telemetry engine rely
on; ``PostgresSessionStore`` implements it on the asyncpg pool from
``src.services.database``.
"""

from __future__ import annotations

import json
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

import asyncpg

from src.services import database
from src.sessions.base import DeviceSession, SessionFilter, SessionStatus, ensure_utc

logger = logging.getLogger("devmon.sessions")


class SessionNotFoundError(LookupError):
    """No session exists with the requested id."""


class SessionStateError(ValueError):
    """The session is not in a state that allows the operation."""


@dataclass
class DailySessionCount:
    date: date
    count: int
    total_duration: int

    def to_json(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "count": self.count,
            "total_duration": self.total_duration,
        }


@dataclass
class SessionStatistics:
    """Aggregate session figures for a device and/or date range.

    Durations are in seconds.  Average, max and min consider completed
    sessions only; min also ignores zero-length sessions.
    """

    total_sessions: int = 0
    completed_sessions: int = 0
    running_sessions: int = 0
    total_duration: int = 0
    avg_duration: float = 0.0
    max_duration: int = 0
    min_duration: int = 0
    daily_distribution: list[DailySessionCount] = field(default_factory=list)

    def to_json(self) -> dict:
        return {
            "total_sessions": self.total_sessions,
            "completed_sessions": self.completed_sessions,
            "running_sessions": self.running_sessions,
            "total_duration": self.total_duration,
            "avg_duration": self.avg_duration,
            "max_duration": self.max_duration,
            "min_duration": self.min_duration,
            "daily_distribution": [d.to_json() for d in self.daily_distribution],
        }


class SessionStore(ABC):
    """Create, end, look up and list device sessions."""

    @abstractmethod
    async def create(
        self, device_id: str, start_time: datetime, metadata: dict[str, Any] | None = None
    ) -> DeviceSession:
        """Open a new running session for a device."""

    @abstractmethod
    async def end(
        self, session_id: str, end_time: datetime, metadata: dict[str, Any] | None = None
    ) -> DeviceSession:
        """Complete a running session.

        Raises:
            SessionNotFoundError: Unknown session id.
            SessionStateError:    Session is not running.
        """

    @abstractmethod
    async def get_by_id(self, session_id: str) -> DeviceSession:
        """Raises SessionNotFoundError for unknown ids."""

    @abstractmethod
    async def list(self, flt: SessionFilter) -> tuple[list[DeviceSession], int]:
        """Return one page of matching sessions and the total match count."""

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Delete a session. Returns False if it did not exist."""

    @abstractmethod
    async def running_for_device(self, device_id: str) -> list[DeviceSession]:
        """Running sessions of a device, newest first."""

    @abstractmethod
    async def statistics(
        self,
        device_id: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> SessionStatistics:
        """Aggregate figures over sessions matching the filters."""


# ---------------------------------------------------------------------------
# SQL helpers
# ---------------------------------------------------------------------------

_START_DATE_SQL = "(start_time AT TIME ZONE 'UTC')::date"


def build_where(
    device_id: str | None = None,
    status: SessionStatus | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> tuple[str, list[Any]]:
    """Build a WHERE clause with positional ``$n`` parameters.

    Returns:
        (clause, params); clause is ``TRUE`` when no filter is set.
    """
    conditions: list[str] = []
    params: list[Any] = []

    if device_id:
        params.append(device_id)
        conditions.append(f"device_id = ${len(params)}")
    if status:
        params.append(status.value)
        conditions.append(f"status = ${len(params)}")
    if start_date:
        params.append(start_date)
        conditions.append(f"{_START_DATE_SQL} >= ${len(params)}")
    if end_date:
        params.append(end_date)
        conditions.append(f"{_START_DATE_SQL} <= ${len(params)}")

    return (" AND ".join(conditions) or "TRUE"), params


def row_to_session(row: asyncpg.Record | dict) -> DeviceSession:
    """Convert a ``device_sessions`` row to a DeviceSession."""
    metadata = row["metadata"]
    if isinstance(metadata, str):
        metadata = json.loads(metadata) if metadata else {}
    end_time = row["end_time"]
    return DeviceSession(
        id=row["id"],
        device_id=row["device_id"],
        session_id=row["session_id"],
        start_time=ensure_utc(row["start_time"]),
        end_time=ensure_utc(end_time) if end_time is not None else None,
        duration=row["duration"],
        status=SessionStatus(row["status"]),
        metadata=metadata or {},
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _dump_metadata(metadata: dict[str, Any] | None) -> str | None:
    return json.dumps(metadata, default=str) if metadata else None


# ---------------------------------------------------------------------------
# Postgres implementation
# ---------------------------------------------------------------------------


class PostgresSessionStore(SessionStore):
    """SessionStore backed by the ``device_sessions`` table."""

    async def create(
        self, device_id: str, start_time: datetime, metadata: dict[str, Any] | None = None
    ) -> DeviceSession:
        row = await database.fetchrow(
            """
            INSERT INTO device_sessions (device_id, session_id, start_time, status, metadata)
            VALUES ($1, $2, $3, $4, $5::jsonb)
            RETURNING *
            """,
            device_id,
            str(uuid.uuid4()),
            ensure_utc(start_time),
            SessionStatus.RUNNING.value,
            _dump_metadata(metadata),
        )
        session = row_to_session(row)
        logger.info("Created session %s for device %s", session.session_id, device_id)
        return session

    async def end(
        self, session_id: str, end_time: datetime, metadata: dict[str, Any] | None = None
    ) -> DeviceSession:
        end_time = ensure_utc(end_time)
        async with database.get_connection() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM device_sessions WHERE session_id = $1 FOR UPDATE", session_id
            )
            if row is None:
                raise SessionNotFoundError(session_id)
            session = row_to_session(row)
            if session.status != SessionStatus.RUNNING:
                raise SessionStateError(f"Session {session_id} is not running")

            merged = {**session.metadata, **(metadata or {})}
            duration = int((end_time - session.start_time).total_seconds())
            row = await conn.fetchrow(
                """
                UPDATE device_sessions
                SET end_time = $1, duration = $2, status = $3, metadata = $4::jsonb,
                    updated_at = NOW()
                WHERE session_id = $5
                RETURNING *
                """,
                end_time,
                duration,
                SessionStatus.COMPLETED.value,
                _dump_metadata(merged),
                session_id,
            )
        logger.info("Ended session %s after %ds", session_id, duration)
        return row_to_session(row)

    async def get_by_id(self, session_id: str) -> DeviceSession:
        row = await database.fetchrow(
            "SELECT * FROM device_sessions WHERE session_id = $1", session_id
        )
        if row is None:
            raise SessionNotFoundError(session_id)
        return row_to_session(row)

    async def list(self, flt: SessionFilter) -> tuple[list[DeviceSession], int]:
        where, params = build_where(flt.device_id, flt.status, flt.start_date, flt.end_date)
        total = await database.fetchval(
            f"SELECT COUNT(*) FROM device_sessions WHERE {where}", *params
        )

        query = f"SELECT * FROM device_sessions WHERE {where} ORDER BY start_time DESC"
        page_params = list(params)
        if flt.limit > 0:
            page_params.append(flt.limit)
            query += f" LIMIT ${len(page_params)}"
        if flt.offset > 0:
            page_params.append(flt.offset)
            query += f" OFFSET ${len(page_params)}"

        rows = await database.fetch(query, *page_params)
        return [row_to_session(r) for r in rows], int(total or 0)

    async def delete(self, session_id: str) -> bool:
        result = await database.execute(
            "DELETE FROM device_sessions WHERE session_id = $1", session_id
        )
        return result != "DELETE 0"

    async def running_for_device(self, device_id: str) -> list[DeviceSession]:
        rows = await database.fetch(
            """
            SELECT * FROM device_sessions
            WHERE device_id = $1 AND status = $2
            ORDER BY start_time DESC
            """,
            device_id,
            SessionStatus.RUNNING.value,
        )
        return [row_to_session(r) for r in rows]

    async def statistics(
        self,
        device_id: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> SessionStatistics:
        where, params = build_where(device_id, None, start_date, end_date)
        row = await database.fetchrow(
            f"""
            SELECT
                COUNT(*) AS total_sessions,
                COUNT(*) FILTER (WHERE status = 'completed') AS completed_sessions,
                COUNT(*) FILTER (WHERE status = 'running') AS running_sessions,
                COALESCE(SUM(duration), 0) AS total_duration,
                AVG(duration) FILTER (WHERE status = 'completed') AS avg_duration,
                MAX(duration) FILTER (WHERE status = 'completed') AS max_duration,
                MIN(duration) FILTER (WHERE status = 'completed' AND duration > 0) AS min_duration
            FROM device_sessions
            WHERE {where}
            """,
            *params,
        )
        daily_rows = await database.fetch(
            f"""
            SELECT {_START_DATE_SQL} AS date,
                   COUNT(*) AS count,
                   COALESCE(SUM(duration), 0) AS total_duration
            FROM device_sessions
            WHERE {where}
            GROUP BY 1
            ORDER BY 1
            """,
            *params,
        )
        return SessionStatistics(
            total_sessions=int(row["total_sessions"]),
            completed_sessions=int(row["completed_sessions"]),
            running_sessions=int(row["running_sessions"]),
            total_duration=int(row["total_duration"]),
            avg_duration=float(row["avg_duration"] or 0.0),
            max_duration=int(row["max_duration"] or 0),
            min_duration=int(row["min_duration"] or 0),
            daily_distribution=[
                DailySessionCount(
                    date=r["date"], count=int(r["count"]), total_duration=int(r["total_duration"])
                )
                for r in daily_rows
            ],
        )
