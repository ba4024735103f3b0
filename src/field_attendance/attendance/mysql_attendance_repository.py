from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from mysql.connector.errors import IntegrityError

from ..core.exceptions import OpenSessionExistsError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone, is_duplicate_key
from .model import AttendanceSession, CheckOutFields
from .repository import AttendanceRepository

_COLUMNS = """
    log_id, user_id, check_in, check_out,
    check_in_meter_reading, check_out_meter_reading,
    check_in_meter_image, check_out_meter_image,
    duration_minutes, distance_traveled
"""


def _to_session(r: Dict[str, Any]) -> AttendanceSession:
    return AttendanceSession(
        session_id=int(r["log_id"]),
        user_id=int(r["user_id"]),
        check_in_time=r["check_in"],
        check_in_reading=as_float(r["check_in_meter_reading"]) or 0.0,
        check_out_time=r.get("check_out"),
        check_out_reading=as_float(r.get("check_out_meter_reading")),
        check_in_photo=r.get("check_in_meter_image"),
        check_out_photo=r.get("check_out_meter_image"),
        duration_minutes=int(r["duration_minutes"]) if r.get("duration_minutes") is not None else None,
        distance_traveled=as_float(r.get("distance_traveled")),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create_session(
        self,
        *,
        user_id: int,
        check_in_time: datetime,
        check_in_reading: float,
        check_in_photo: Optional[str] = None,
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_logs(user_id, check_in, check_in_meter_reading, check_in_meter_image)
                    VALUES(%s,%s,%s,%s)
                    """,
                    (int(user_id), check_in_time, check_in_reading, check_in_photo),
                )
                return int(cur.lastrowid)
        except IntegrityError as exc:
            if is_duplicate_key(exc):
                raise OpenSessionExistsError("You are already checked in") from exc
            raise

    def get_by_id(self, session_id: int) -> Optional[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_logs WHERE log_id=%s", (int(session_id),))
            r = fetchone(cur)
            return _to_session(r) if r else None

    def get_open_for_user(self, user_id: int) -> Optional[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance_logs
                WHERE user_id=%s AND check_out IS NULL
                ORDER BY check_in DESC
                LIMIT 1
                """,
                (int(user_id),),
            )
            r = fetchone(cur)
            return _to_session(r) if r else None

    def update_checkout(self, session_id: int, fields: CheckOutFields) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_logs
                SET check_out=%s, check_out_meter_reading=%s, check_out_meter_image=%s,
                    duration_minutes=%s, distance_traveled=%s
                WHERE log_id=%s AND check_out IS NULL
                """,
                (
                    fields.check_out_time,
                    fields.check_out_reading,
                    fields.check_out_photo,
                    int(fields.duration_minutes),
                    fields.distance_traveled,
                    int(session_id),
                ),
            )
            return cur.rowcount > 0

    def delete(self, session_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_logs WHERE log_id=%s", (int(session_id),))
            return cur.rowcount > 0

    def list_for_user_between(self, user_id: int, *, start: datetime, end: datetime) -> Sequence[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance_logs
                WHERE user_id=%s AND check_in >= %s AND check_in < %s
                ORDER BY check_in ASC
                """,
                (int(user_id), start, end),
            )
            return [_to_session(r) for r in fetchall(cur)]
