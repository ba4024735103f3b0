from __future__ import annotations

import asyncio
import functools
import logging
from datetime import date, datetime
from typing import Callable, Optional, Sequence, TypeVar

import mysql.connector

from ..common.datetime_utils import day_bounds
from ..common.validators import require_odometer_reading
from ..core.exceptions import BackendError, NotFoundError, SessionAlreadyClosedError
from ..locations.model import LocationSample
from ..locations.service import LocationService
from ..users.repository import UserRepository
from .model import AttendanceSession, CheckOutFields, DailyWorkSummary
from .repository import AttendanceRepository, DailySummaryRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RepositoryGateway:
    """Async face of the MySQL repositories for the tracking runtime.

    Each call runs the blocking repository method in a worker thread. Driver
    and OS errors come back as BackendError; domain errors raised by the
    repositories (OpenSessionExistsError, NotFoundError) pass through.
    """

    def __init__(
        self,
        *,
        users: UserRepository,
        attendance: AttendanceRepository,
        summaries: DailySummaryRepository,
        locations: LocationService,
    ):
        self._users = users
        self._attendance = attendance
        self._summaries = summaries
        self._locations = locations

    async def _call(self, what: str, fn: Callable[..., T], *args, **kwargs) -> T:
        try:
            return await asyncio.to_thread(functools.partial(fn, *args, **kwargs))
        except (mysql.connector.Error, OSError) as exc:
            logger.error("%s failed: %s", what, exc)
            raise BackendError(f"Database error while trying to {what}") from exc

    async def create_session(
        self,
        user_id: int,
        check_in_time: datetime,
        odometer_reading: float,
        photo_ref: Optional[str] = None,
    ) -> int:
        reading = require_odometer_reading(odometer_reading)
        return await self._call(
            "create attendance log",
            self._attendance.create_session,
            user_id=int(user_id),
            check_in_time=check_in_time,
            check_in_reading=reading,
            check_in_photo=photo_ref,
        )

    async def get_session(self, session_id: int) -> AttendanceSession:
        session = await self._call("load attendance log", self._attendance.get_by_id, int(session_id))
        if not session:
            raise NotFoundError(f"Attendance log {session_id} not found")
        return session

    async def update_session(self, session_id: int, fields: CheckOutFields) -> None:
        updated = await self._call("update attendance log", self._attendance.update_checkout, int(session_id), fields)
        if updated:
            return
        existing = await self._call("load attendance log", self._attendance.get_by_id, int(session_id))
        if not existing:
            raise NotFoundError(f"Attendance log {session_id} not found")
        raise SessionAlreadyClosedError(f"Attendance log {session_id} is already checked out")

    async def delete_session(self, session_id: int) -> None:
        deleted = await self._call("delete attendance log", self._attendance.delete, int(session_id))
        if not deleted:
            logger.warning("Attendance log %s was already gone", session_id)

    async def insert_location_sample(
        self,
        user_id: int,
        session_id: int,
        latitude: float,
        longitude: float,
        captured_at: datetime,
    ) -> LocationSample:
        return await self._call(
            "store location",
            self._locations.record,
            user_id=int(user_id),
            session_id=int(session_id),
            latitude=latitude,
            longitude=longitude,
            captured_at=captured_at,
        )

    async def set_user_active(self, user_id: int, active: bool) -> None:
        updated = await self._call("update user status", self._users.set_active, int(user_id), is_active=bool(active))
        if not updated:
            raise NotFoundError(f"User {user_id} not found")

    async def list_sessions_for_day(self, user_id: int, day: date) -> Sequence[AttendanceSession]:
        start, end = day_bounds(day)
        return await self._call(
            "list attendance logs",
            self._attendance.list_for_user_between,
            int(user_id),
            start=start,
            end=end,
        )

    async def upsert_daily_summary(self, summary: DailyWorkSummary) -> None:
        await self._call("update daily summary", self._summaries.upsert, summary)

    async def get_open_session(self, user_id: int) -> Optional[AttendanceSession]:
        return await self._call("load attendance status", self._attendance.get_open_for_user, int(user_id))
