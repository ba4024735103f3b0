from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone
from .model import LocationSample
from .repository import LocationRepository

_COLUMNS = "location_id, user_id, attendance_log_id, latitude, longitude, captured_at"


def _to_sample(r: Dict[str, Any]) -> LocationSample:
    return LocationSample(
        sample_id=int(r["location_id"]),
        user_id=int(r["user_id"]),
        session_id=int(r["attendance_log_id"]),
        latitude=as_float(r["latitude"]),
        longitude=as_float(r["longitude"]),
        captured_at=r["captured_at"],
    )


class MySQLLocationRepository(LocationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def insert(
        self,
        *,
        user_id: int,
        session_id: int,
        latitude: float,
        longitude: float,
        captured_at: datetime,
    ) -> LocationSample:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO employee_locations(user_id, attendance_log_id, latitude, longitude, captured_at)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(user_id), int(session_id), latitude, longitude, captured_at),
            )
            return LocationSample(
                sample_id=int(cur.lastrowid),
                user_id=int(user_id),
                session_id=int(session_id),
                latitude=float(latitude),
                longitude=float(longitude),
                captured_at=captured_at,
            )

    def list_recent(self, *, user_id: int, session_id: int, since: datetime, limit: int = 5) -> Sequence[LocationSample]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM employee_locations
                WHERE user_id=%s AND attendance_log_id=%s AND captured_at >= %s
                ORDER BY captured_at DESC
                LIMIT %s
                """,
                (int(user_id), int(session_id), since, int(limit)),
            )
            return [_to_sample(r) for r in fetchall(cur)]

    def list_for_session(self, session_id: int) -> Sequence[LocationSample]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM employee_locations WHERE attendance_log_id=%s ORDER BY captured_at ASC",
                (int(session_id),),
            )
            return [_to_sample(r) for r in fetchall(cur)]

    def latest_for_user(self, user_id: int) -> Optional[LocationSample]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM employee_locations
                WHERE user_id=%s
                ORDER BY captured_at DESC
                LIMIT 1
                """,
                (int(user_id),),
            )
            r = fetchone(cur)
            return _to_sample(r) if r else None
