from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional, TypeVar

from ..attendance.model import AttendanceSession, CheckOutFields, DailyWorkSummary
from ..common.datetime_utils import now_local
from ..common.validators import require_coordinates, require_odometer_reading
from ..core.constants import (
    DEFAULT_INITIAL_SAMPLE_GRACE,
    DEFAULT_MAX_OPERATION_TIME,
    DEFAULT_OPERATION_TIMEOUT,
)
from ..core.enums import SessionState
from ..core.exceptions import (
    BackendError,
    DomainError,
    InvalidStateError,
    NotFoundError,
    OpenSessionExistsError,
    OperationInProgressError,
    OperationTimeoutError,
    SessionAlreadyClosedError,
    ValidationError,
)
from ..locations.model import LocationSample
from ..metrics.calculator.base import SessionMetricsCalculator
from ..metrics.calculator.standard_calculator import OdometerMetricsCalculator
from ..metrics.service import DailySummaryBuilder
from .context import TrackingContext
from .gateway import AttendanceGateway
from .sampler import LocationSampler

logger = logging.getLogger(__name__)

T = TypeVar("T")

SamplerFactory = Callable[[int, TrackingContext], Optional[LocationSampler]]


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class CheckOutResult:
    session_id: int
    duration_minutes: int
    distance_traveled: float
    check_out_time: datetime
    summary: Optional[DailyWorkSummary] = None


class SessionStateMachine:
    """CHECKED_OUT <-> CHECKED_IN lifecycle of one user's attendance session.

    Every collaborator failure leaves the machine as a ``core.exceptions``
    error: ValidationError for bad input, InvalidStateError for a call in the
    wrong state (or while another operation is running), BackendError for
    persistence failures and OperationTimeoutError when the backend did not
    answer within ``operation_timeout``. A timed-out write may still have
    landed; the in-flight flag is released so the user can retry.
    """

    def __init__(
        self,
        user_id: int,
        gateway: AttendanceGateway,
        *,
        sampler_factory: Optional[SamplerFactory] = None,
        context: Optional[TrackingContext] = None,
        calculator: Optional[SessionMetricsCalculator] = None,
        summary_builder: Optional[DailySummaryBuilder] = None,
        operation_timeout: float = DEFAULT_OPERATION_TIMEOUT,
        max_operation_time: float = DEFAULT_MAX_OPERATION_TIME,
        initial_sample_grace: float = DEFAULT_INITIAL_SAMPLE_GRACE,
        clock: Callable[[], datetime] = now_local,
    ):
        if max_operation_time < operation_timeout:
            raise ValueError("max_operation_time must not be shorter than operation_timeout")

        self.user_id = int(user_id)
        self._gateway = gateway
        self._sampler_factory = sampler_factory
        self.context = context or TrackingContext()
        self._calculator = calculator or OdometerMetricsCalculator()
        self._summary_builder = summary_builder or DailySummaryBuilder()
        self._operation_timeout = float(operation_timeout)
        self._max_operation_time = float(max_operation_time)
        self._initial_sample_grace = timedelta(seconds=float(initial_sample_grace))
        self._clock = clock

        self._state = SessionState.CHECKED_OUT
        self._session_id: Optional[int] = None
        self._check_in_time: Optional[datetime] = None
        self._in_flight = False
        self._watchdog: Optional[asyncio.TimerHandle] = None
        # Set when an operation timed out and its write may or may not have landed.
        self._outcome_unknown = False
        self.sampler: Optional[LocationSampler] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session_id(self) -> Optional[int]:
        return self._session_id

    @property
    def check_in_time(self) -> Optional[datetime]:
        return self._check_in_time

    @property
    def operation_in_flight(self) -> bool:
        return self._in_flight

    @property
    def outcome_unknown(self) -> bool:
        return self._outcome_unknown

    def is_checkout_in_progress(self) -> bool:
        return self.context.is_checkout_in_progress()

    async def recover(self) -> SessionState:
        """Restore CHECKED_IN from the backend's open session, if there is one."""

        self._acquire("recover")
        try:
            await self._bounded(self._sync_with_backend(), "Loading attendance status")
        finally:
            self._release()
        return self._state

    async def reconcile(self) -> SessionState:
        """Settle the state after a timed-out check-in or check-out.

        Does nothing unless the last operation timed out, or while another
        operation is running.
        """

        if not self._outcome_unknown or self._in_flight:
            return self._state
        return await self.recover()

    async def _sync_with_backend(self) -> Optional[CheckOutResult]:
        """Align with the backend's open session.

        Returns the stored result when the session this machine held open
        turns out to be closed already (a check-out that landed after all).
        """

        previous = self._session_id
        was_unknown = self._outcome_unknown
        session = await self._load_open_session()
        self._outcome_unknown = False

        if session is not None:
            if was_unknown:
                # A timed-out check-in may have created the session but not marked the user.
                try:
                    await self._gateway.set_user_active(self.user_id, True)
                except Exception as exc:
                    logger.error("Marking user=%s active failed while reconciling: %s", self.user_id, exc)
            return None

        if previous is None:
            return None
        return await self._complete_closed_session(previous)

    async def _load_open_session(self) -> Optional[AttendanceSession]:
        try:
            session = await self._gateway.get_open_session(self.user_id)
        except DomainError:
            raise
        except Exception as exc:
            raise BackendError(f"Could not load attendance status: {exc}") from exc

        if session is None:
            if self._state == SessionState.CHECKED_IN:
                await self._enter_checked_out()
            return None

        if self._session_id != session.session_id or self.sampler is None:
            await self._stop_sampler()
            await self._enter_checked_in(session.session_id, session.check_in_time)
        logger.info("Recovered open session %s for user=%s", session.session_id, self.user_id)
        return session

    async def check_in(
        self,
        odometer_reading,
        photo_ref: Optional[str] = None,
        location: Optional[Coordinates] = None,
    ) -> int:
        reading = require_odometer_reading(odometer_reading)
        if location is not None:
            lat, lng = require_coordinates(location.latitude, location.longitude)
            location = Coordinates(lat, lng)

        self._acquire("check-in")
        try:
            if self._outcome_unknown:
                await self._bounded(self._sync_with_backend(), "Check-in")
            if self._state != SessionState.CHECKED_OUT:
                raise InvalidStateError("You are already checked in")
            try:
                return await self._bounded(self._do_check_in(reading, photo_ref, location), "Check-in")
            except OperationTimeoutError:
                self._outcome_unknown = True
                raise
        finally:
            self._release()

    async def check_out(
        self,
        odometer_reading,
        photo_ref: Optional[str] = None,
        location: Optional[Coordinates] = None,
    ) -> CheckOutResult:
        reading = require_odometer_reading(odometer_reading)
        if location is not None:
            lat, lng = require_coordinates(location.latitude, location.longitude)
            location = Coordinates(lat, lng)

        self._acquire("check-out")
        try:
            if self._outcome_unknown:
                landed = await self._bounded(self._sync_with_backend(), "Check-out")
                if landed is not None:
                    logger.info("Earlier check-out of session %s had been recorded", landed.session_id)
                    return landed
            if self._state != SessionState.CHECKED_IN or self._session_id is None:
                raise InvalidStateError("No active check-in found. You may have already checked out.")

            self.context.begin_checkout()
            try:
                return await self._bounded(
                    self._do_check_out(self._session_id, reading, photo_ref, location), "Check-out"
                )
            except OperationTimeoutError:
                # The update may have closed the session; stop sampling until that is known.
                self._outcome_unknown = True
                await self._stop_sampler()
                raise
            finally:
                self.context.end_checkout()
        finally:
            self._release()

    async def record_location(self, session_id: int, location: Coordinates) -> LocationSample:
        """Manual sample for the open session; it counts as the sampler's latest sample."""

        lat, lng = require_coordinates(location.latitude, location.longitude)
        if self._state != SessionState.CHECKED_IN or self._session_id != int(session_id):
            raise ValidationError("Invalid attendance log ID or attendance log is not active")

        sample = await self._bounded(
            self._gateway.insert_location_sample(self.user_id, self._session_id, lat, lng, self._clock()),
            "Location update",
        )
        if self.sampler is not None:
            self.sampler.note_sample(sample.captured_at)
        return sample

    async def close(self) -> None:
        await self._stop_sampler()

    # single-flight

    def _acquire(self, operation: str) -> None:
        if self._in_flight:
            logger.info("Rejected %s for user=%s: another operation is in progress", operation, self.user_id)
            raise OperationInProgressError("Another attendance operation is already in progress")
        self._in_flight = True
        self._watchdog = asyncio.get_running_loop().call_later(self._max_operation_time, self._force_release)

    def _release(self) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None
        self._in_flight = False

    def _force_release(self) -> None:
        logger.warning("Operation for user=%s exceeded %.0fs, clearing in-flight flags", self.user_id, self._max_operation_time)
        self._watchdog = None
        self._in_flight = False
        self.context.end_checkout()

    async def _bounded(self, operation: Awaitable[T], label: str) -> T:
        try:
            return await asyncio.wait_for(operation, timeout=self._operation_timeout)
        except asyncio.TimeoutError:
            logger.warning("%s for user=%s timed out after %.0fs", label, self.user_id, self._operation_timeout)
            raise OperationTimeoutError(
                f"{label} took too long. It may still have been recorded; "
                "check your status before trying again."
            ) from None

    # transitions

    async def _do_check_in(self, reading: float, photo_ref: Optional[str], location: Optional[Coordinates]) -> int:
        now = self._clock()
        try:
            session_id = await self._gateway.create_session(self.user_id, now, reading, photo_ref)
        except OpenSessionExistsError:
            logger.info("User=%s already has an open session, restoring it", self.user_id)
            await self._load_open_session()
            raise InvalidStateError("You are already checked in") from None
        except DomainError:
            raise
        except Exception as exc:
            raise BackendError(f"Failed to create attendance log: {exc}") from exc

        captured_at = None
        if location is not None:
            captured_at = await self._store_location(session_id, location, "check-in")

        try:
            await self._gateway.set_user_active(self.user_id, True)
        except Exception as exc:
            logger.error("Marking user=%s active failed, rolling back session %s", self.user_id, session_id)
            await self._rollback_session(session_id)
            if isinstance(exc, BackendError):
                raise
            raise BackendError(f"Failed to update user status: {exc}") from exc

        if captured_at is not None:
            # The check-in location counts as the first sample.
            self.context.suppress_auto_sample_until(captured_at + self._initial_sample_grace)
        await self._enter_checked_in(session_id, now)
        if captured_at is not None and self.sampler is not None:
            self.sampler.note_sample(captured_at)

        logger.info("User=%s checked in (session %s, reading %.1f)", self.user_id, session_id, reading)
        return session_id

    async def _rollback_session(self, session_id: int) -> None:
        try:
            await self._gateway.delete_session(session_id)
        except Exception:
            logger.exception("Rollback of session %s failed", session_id)

    async def _do_check_out(
        self,
        session_id: int,
        reading: float,
        photo_ref: Optional[str],
        location: Optional[Coordinates],
    ) -> CheckOutResult:
        now = self._clock()

        check_in_time: Optional[datetime] = None
        check_in_reading: Optional[float] = None
        try:
            session = await self._gateway.get_session(session_id)
            check_in_time = session.check_in_time
            check_in_reading = session.check_in_reading
        except Exception as exc:
            logger.warning("Could not read check-in data of session %s, using defaults: %s", session_id, exc)

        fields = CheckOutFields(
            check_out_time=now,
            check_out_reading=reading,
            check_out_photo=photo_ref,
            duration_minutes=self._calculator.duration_minutes(check_in_time, now),
            distance_traveled=self._calculator.distance_traveled(check_in_reading, reading),
        )

        try:
            await self._gateway.update_session(session_id, fields)
        except SessionAlreadyClosedError:
            logger.warning("Session %s was already closed, keeping its recorded check-out", session_id)
            landed = await self._complete_closed_session(session_id)
            if landed is None:
                raise
            return landed
        except NotFoundError:
            logger.warning("Session %s vanished before check-out, resetting user=%s", session_id, self.user_id)
            await self._enter_checked_out()
            raise
        except DomainError:
            raise
        except Exception as exc:
            raise BackendError(f"Failed to update attendance log: {exc}") from exc

        summary = await self._refresh_summary(check_in_time, now)

        try:
            await self._gateway.set_user_active(self.user_id, False)
        except Exception as exc:
            logger.error("Marking user=%s inactive failed after check-out: %s", self.user_id, exc)

        if location is not None:
            await self._store_location(session_id, location, "check-out")

        await self._enter_checked_out()
        logger.info(
            "User=%s checked out (session %s, %d min, %.1f distance)",
            self.user_id, session_id, fields.duration_minutes, fields.distance_traveled,
        )
        return CheckOutResult(
            session_id=session_id,
            duration_minutes=fields.duration_minutes,
            distance_traveled=fields.distance_traveled,
            check_out_time=now,
            summary=summary,
        )

    async def _complete_closed_session(self, session_id: int) -> Optional[CheckOutResult]:
        """Finish the bookkeeping of a check-out whose session update already landed."""

        await self._enter_checked_out()
        try:
            session = await self._gateway.get_session(session_id)
        except Exception as exc:
            logger.error("Could not read closed session %s: %s", session_id, exc)
            return None
        if session.check_out_time is None:
            return None

        summary = await self._refresh_summary(session.check_in_time, session.check_out_time)
        try:
            await self._gateway.set_user_active(self.user_id, False)
        except Exception as exc:
            logger.error("Marking user=%s inactive failed after check-out: %s", self.user_id, exc)

        return CheckOutResult(
            session_id=session.session_id,
            duration_minutes=int(session.duration_minutes or 0),
            distance_traveled=float(session.distance_traveled or 0.0),
            check_out_time=session.check_out_time,
            summary=summary,
        )

    async def _refresh_summary(
        self, check_in_time: Optional[datetime], check_out_time: datetime
    ) -> Optional[DailyWorkSummary]:
        # Sessions count toward the day they started on, so a session that
        # crosses midnight rewrites its check-in day.
        work_date = (check_in_time or check_out_time).date()
        try:
            sessions = await self._gateway.list_sessions_for_day(self.user_id, work_date)
            summary = self._summary_builder.build(
                user_id=self.user_id,
                work_date=work_date,
                sessions=sessions,
                last_check_out=check_out_time,
            )
            await self._gateway.upsert_daily_summary(summary)
            return summary
        except Exception as exc:
            logger.error("Updating daily summary for user=%s failed: %s", self.user_id, exc)
            return None

    async def _store_location(self, session_id: int, location: Coordinates, label: str) -> Optional[datetime]:
        captured_at = self._clock()
        try:
            await self._gateway.insert_location_sample(
                self.user_id, session_id, location.latitude, location.longitude, captured_at
            )
        except Exception as exc:
            logger.error("Saving %s location for user=%s failed: %s", label, self.user_id, exc)
            return None
        return captured_at

    async def _enter_checked_in(self, session_id: int, check_in_time: datetime) -> None:
        self._state = SessionState.CHECKED_IN
        self._session_id = int(session_id)
        self._check_in_time = check_in_time
        if self._sampler_factory is not None:
            self.sampler = self._sampler_factory(self._session_id, self.context)
            if self.sampler is not None:
                self.sampler.start()

    async def _enter_checked_out(self) -> None:
        await self._stop_sampler()
        self._state = SessionState.CHECKED_OUT
        self._session_id = None
        self._check_in_time = None
        self.context.suppress_auto_sample_until(None)

    async def _stop_sampler(self) -> None:
        sampler, self.sampler = self.sampler, None
        if sampler is not None:
            await sampler.stop()
