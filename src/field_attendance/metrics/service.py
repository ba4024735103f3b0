from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional

from ..attendance.model import AttendanceSession, DailyWorkSummary


class DailySummaryBuilder:
    """Rebuilds a user's DailyWorkSummary from that day's sessions."""

    def build(
        self,
        *,
        user_id: int,
        work_date: date,
        sessions: Iterable[AttendanceSession],
        last_check_out: Optional[datetime],
    ) -> DailyWorkSummary:
        day_sessions = sorted(sessions, key=lambda s: s.check_in_time)

        total_minutes = sum(int(s.duration_minutes or 0) for s in day_sessions)
        total_distance = sum(float(s.distance_traveled or 0.0) for s in day_sessions)

        return DailyWorkSummary(
            user_id=int(user_id),
            work_date=work_date,
            total_minutes=total_minutes,
            total_distance=total_distance,
            first_check_in=day_sessions[0].check_in_time if day_sessions else None,
            last_check_out=last_check_out,
            check_in_count=len(day_sessions),
        )
