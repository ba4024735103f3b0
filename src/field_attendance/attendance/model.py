from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class AttendanceSession:
    """Domain entity: one check-in to check-out work period."""

    session_id: int
    user_id: int
    check_in_time: datetime
    check_in_reading: float
    check_out_time: Optional[datetime] = None
    check_out_reading: Optional[float] = None
    check_in_photo: Optional[str] = None
    check_out_photo: Optional[str] = None
    duration_minutes: Optional[int] = None
    distance_traveled: Optional[float] = None

    @property
    def is_open(self) -> bool:
        return self.check_out_time is None


@dataclass(frozen=True)
class CheckOutFields:
    """Fields written to a session when it is closed."""

    check_out_time: datetime
    check_out_reading: float
    duration_minutes: int
    distance_traveled: float
    check_out_photo: Optional[str] = None


@dataclass(frozen=True)
class DailyWorkSummary:
    """Per user, per calendar day aggregate, rewritten at every check-out."""

    user_id: int
    work_date: date
    total_minutes: int
    total_distance: float
    first_check_in: Optional[datetime]
    last_check_out: Optional[datetime]
    check_in_count: int

    @property
    def total_hours(self) -> float:
        return round(self.total_minutes / 60, 2)
