from __future__ import annotations

from datetime import date
from typing import Any, Dict, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall
from .model import DailyWorkSummary
from .repository import DailySummaryRepository

_COLUMNS = "user_id, work_date, total_minutes, total_distance, first_check_in, last_check_out, check_in_count"


def _to_summary(r: Dict[str, Any]) -> DailyWorkSummary:
    return DailyWorkSummary(
        user_id=int(r["user_id"]),
        work_date=r["work_date"],
        total_minutes=int(r["total_minutes"] or 0),
        total_distance=as_float(r["total_distance"]) or 0.0,
        first_check_in=r.get("first_check_in"),
        last_check_out=r.get("last_check_out"),
        check_in_count=int(r["check_in_count"] or 0),
    )


class MySQLDailySummaryRepository(DailySummaryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def upsert(self, summary: DailyWorkSummary) -> None:
        # Overwrite, never accumulate: the row is recomputed from the day's sessions.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                INSERT INTO daily_work_summary({_COLUMNS})
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    total_minutes=VALUES(total_minutes),
                    total_distance=VALUES(total_distance),
                    first_check_in=VALUES(first_check_in),
                    last_check_out=VALUES(last_check_out),
                    check_in_count=VALUES(check_in_count)
                """,
                (
                    int(summary.user_id),
                    summary.work_date,
                    int(summary.total_minutes),
                    summary.total_distance,
                    summary.first_check_in,
                    summary.last_check_out,
                    int(summary.check_in_count),
                ),
            )

    def list_for_user_between(self, user_id: int, *, start_date: date, end_date: date) -> Sequence[DailyWorkSummary]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM daily_work_summary
                WHERE user_id=%s AND work_date BETWEEN %s AND %s
                ORDER BY work_date ASC
                """,
                (int(user_id), start_date, end_date),
            )
            return [_to_summary(r) for r in fetchall(cur)]
