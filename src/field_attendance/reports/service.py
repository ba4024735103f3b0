from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from ..attendance.model import AttendanceSession, DailyWorkSummary
from ..attendance.repository import AttendanceRepository, DailySummaryRepository
from ..core.enums import Role
from ..core.exceptions import NotFoundError, ValidationError
from ..locations.model import LocationSample
from ..locations.service import LocationService
from ..metrics.service import DailySummaryBuilder
from ..users.service import AccessPolicy

logger = logging.getLogger(__name__)

MAX_REPORT_DAYS = 366


@dataclass(frozen=True)
class EmployeeLogReport:
    employee_id: int
    employee_name: str
    start_date: date
    end_date: date
    days: list[DailyWorkSummary]
    source: str  # "summary" | "sessions"

    @property
    def total_days(self) -> int:
        return len(self.days)

    @property
    def total_hours(self) -> float:
        return round(sum(d.total_minutes for d in self.days) / 60, 2)

    @property
    def total_distance(self) -> float:
        return round(sum(d.total_distance for d in self.days), 2)

    @property
    def average_hours_per_day(self) -> float:
        return round(self.total_hours / self.total_days, 2) if self.days else 0.0


class EmployeeLogService:
    """Read side: per-day work logs, routes and last known positions."""

    def __init__(
        self,
        *,
        policy: AccessPolicy,
        attendance: AttendanceRepository,
        summaries: DailySummaryRepository,
        locations: LocationService,
        summary_builder: Optional[DailySummaryBuilder] = None,
    ):
        self._policy = policy
        self._attendance = attendance
        self._summaries = summaries
        self._locations = locations
        self._builder = summary_builder or DailySummaryBuilder()

    def daily_logs(
        self,
        *,
        viewer_id: int,
        viewer_role: Role,
        employee_id: int,
        start_date: date,
        end_date: date,
    ) -> EmployeeLogReport:
        if end_date < start_date:
            raise ValidationError("End date must not be before start date")
        if (end_date - start_date).days >= MAX_REPORT_DAYS:
            raise ValidationError(f"Date range must not exceed {MAX_REPORT_DAYS} days")

        employee = self._policy.require_can_view(viewer_id=viewer_id, viewer_role=viewer_role, employee_id=employee_id)

        days = list(
            self._summaries.list_for_user_between(employee.user_id, start_date=start_date, end_date=end_date)
        )
        source = "summary"
        if not days:
            # Older sessions may predate the summary table; derive the days from the sessions.
            sessions = self._attendance.list_for_user_between(
                employee.user_id,
                start=datetime.combine(start_date, datetime.min.time()),
                end=datetime.combine(end_date + timedelta(days=1), datetime.min.time()),
            )
            days = self._group_by_day(employee.user_id, sessions)
            source = "sessions"

        days.sort(key=lambda d: d.work_date)
        return EmployeeLogReport(
            employee_id=employee.user_id,
            employee_name=employee.full_name,
            start_date=start_date,
            end_date=end_date,
            days=days,
            source=source,
        )

    def _group_by_day(self, user_id: int, sessions: Sequence[AttendanceSession]) -> list[DailyWorkSummary]:
        by_day: dict[date, list[AttendanceSession]] = {}
        for s in sessions:
            by_day.setdefault(s.check_in_time.date(), []).append(s)

        days = []
        for work_date, day_sessions in by_day.items():
            check_outs = [s.check_out_time for s in day_sessions if s.check_out_time is not None]
            days.append(
                self._builder.build(
                    user_id=user_id,
                    work_date=work_date,
                    sessions=day_sessions,
                    last_check_out=max(check_outs) if check_outs else None,
                )
            )
        return days

    def session_route(
        self,
        *,
        viewer_id: int,
        viewer_role: Role,
        session_id: int,
        only_day: Optional[date] = None,
    ) -> Sequence[LocationSample]:
        session = self._attendance.get_by_id(int(session_id))
        if not session:
            raise NotFoundError("Attendance log not found")
        self._policy.require_can_view(viewer_id=viewer_id, viewer_role=viewer_role, employee_id=session.user_id)
        return self._locations.route_for_session(session.session_id, only_day=only_day)

    def latest_location(self, *, viewer_id: int, viewer_role: Role, employee_id: int) -> LocationSample:
        employee = self._policy.require_can_view(viewer_id=viewer_id, viewer_role=viewer_role, employee_id=employee_id)
        return self._locations.latest_for_user(employee.user_id)
