from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..attendance.model import AttendanceSession, CheckOutFields, DailyWorkSummary
from ..locations.model import LocationSample


class AttendanceGateway(Protocol):
    """Persistence operations the session lifecycle depends on.

    Implementations raise the ``core.exceptions`` taxonomy: ValidationError
    (OpenSessionExistsError), NotFoundError and BackendError.
    """

    async def create_session(
        self,
        user_id: int,
        check_in_time: datetime,
        odometer_reading: float,
        photo_ref: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    async def get_session(self, session_id: int) -> AttendanceSession:
        raise NotImplementedError

    async def update_session(self, session_id: int, fields: CheckOutFields) -> None:
        """Close the session once; SessionAlreadyClosedError if it already has a check-out."""

        raise NotImplementedError

    async def delete_session(self, session_id: int) -> None:
        raise NotImplementedError

    async def insert_location_sample(
        self,
        user_id: int,
        session_id: int,
        latitude: float,
        longitude: float,
        captured_at: datetime,
    ) -> LocationSample:
        raise NotImplementedError

    async def set_user_active(self, user_id: int, active: bool) -> None:
        raise NotImplementedError

    async def list_sessions_for_day(self, user_id: int, day: date) -> Sequence[AttendanceSession]:
        raise NotImplementedError

    async def upsert_daily_summary(self, summary: DailyWorkSummary) -> None:
        raise NotImplementedError

    async def get_open_session(self, user_id: int) -> Optional[AttendanceSession]:
        raise NotImplementedError
