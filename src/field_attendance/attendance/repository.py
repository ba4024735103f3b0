from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceSession, CheckOutFields, DailyWorkSummary


class AttendanceRepository(Protocol):
    def create_session(
        self,
        *,
        user_id: int,
        check_in_time: datetime,
        check_in_reading: float,
        check_in_photo: Optional[str] = None,
    ) -> int:
        """Insert an open session; raises OpenSessionExistsError if one is already open."""

        raise NotImplementedError

    def get_by_id(self, session_id: int) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def get_open_for_user(self, user_id: int) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def update_checkout(self, session_id: int, fields: CheckOutFields) -> bool:
        """Close an open session; False when it is missing or already closed."""

        raise NotImplementedError

    def delete(self, session_id: int) -> bool:
        raise NotImplementedError

    def list_for_user_between(self, user_id: int, *, start: datetime, end: datetime) -> Sequence[AttendanceSession]:
        """Sessions whose check-in falls in [start, end), oldest first."""

        raise NotImplementedError


class DailySummaryRepository(Protocol):
    def upsert(self, summary: DailyWorkSummary) -> None:
        raise NotImplementedError

    def list_for_user_between(self, user_id: int, *, start_date: date, end_date: date) -> Sequence[DailyWorkSummary]:
        raise NotImplementedError
