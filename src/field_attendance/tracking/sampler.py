from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_RETRY_DELAY, DEFAULT_SAMPLE_INTERVAL, DEFAULT_TICK_PERIOD
from ..core.enums import GeolocationErrorCode
from ..core.exceptions import BackendError, GeolocationError
from .context import TrackingContext
from .gateway import AttendanceGateway
from .geolocation import GeolocationSource, Position, PositionOptions
from .scheduler import TickScheduler

logger = logging.getLogger(__name__)


class LocationSampler:
    """Stores a location sample for the open session roughly every ``interval``.

    One sampler belongs to one open session. ``tick()`` decides whether a
    sample is due; a TickScheduler calls it periodically and ``poke()`` asks
    for an immediate tick. Failures never propagate: a permission denial ends
    automatic sampling for the session, other failures are retried once after
    ``retry_delay`` and otherwise wait for the next due cycle.
    """

    def __init__(
        self,
        *,
        user_id: int,
        session_id: int,
        gateway: AttendanceGateway,
        geolocation: GeolocationSource,
        context: TrackingContext,
        interval: float = DEFAULT_SAMPLE_INTERVAL,
        tick_period: float = DEFAULT_TICK_PERIOD,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        options: Optional[PositionOptions] = None,
        clock: Callable[[], datetime] = now_local,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.user_id = int(user_id)
        self.session_id = int(session_id)
        self._gateway = gateway
        self._geolocation = geolocation
        self._context = context
        self._interval = timedelta(seconds=float(interval))
        self._retry_delay = float(retry_delay)
        self._options = options or PositionOptions()
        self._clock = clock
        self._sleep = sleep
        self._scheduler = TickScheduler(self.tick, period=tick_period, name=f"sampler-{self.session_id}")

        self._last_sample_at: Optional[datetime] = None
        self._sampling = False
        self._stopped = False
        self._permission_denied = False
        self.samples_recorded = 0

    @property
    def last_sample_at(self) -> Optional[datetime]:
        return self._last_sample_at

    @property
    def permission_denied(self) -> bool:
        return self._permission_denied

    @property
    def active(self) -> bool:
        return not self._stopped and not self._permission_denied

    def start(self) -> None:
        self._stopped = False
        self._scheduler.start()
        logger.info("Location sampling started for user=%s session=%s", self.user_id, self.session_id)

    async def stop(self) -> None:
        self._stopped = True
        await self._scheduler.stop()
        logger.info(
            "Location sampling stopped for user=%s session=%s (%d samples)",
            self.user_id, self.session_id, self.samples_recorded,
        )

    def poke(self) -> None:
        self._scheduler.poke()

    def note_sample(self, captured_at: datetime) -> None:
        """Count a sample stored elsewhere (e.g. at check-in) as the latest one."""
        if self._last_sample_at is None or captured_at > self._last_sample_at:
            self._last_sample_at = captured_at

    def is_due(self, now: datetime) -> bool:
        return self._last_sample_at is None or now - self._last_sample_at >= self._interval

    async def tick(self) -> None:
        if not self.active or self._sampling:
            return
        if self._context.is_checkout_in_progress():
            return

        now = self._clock()
        if self._context.auto_sampling_suppressed(now) or not self.is_due(now):
            return

        self._sampling = True
        try:
            await self._sample_once()
        finally:
            self._sampling = False

    async def _sample_once(self) -> None:
        position = await self._acquire()
        if position is None or not self.active:
            return
        await self._persist(position)

    async def _acquire(self) -> Optional[Position]:
        for attempt in (1, 2):
            try:
                return await self._geolocation.get_current_position(self._options)
            except GeolocationError as exc:
                if exc.code == GeolocationErrorCode.PERMISSION_DENIED:
                    self._permission_denied = True
                    logger.warning(
                        "Location permission denied for user=%s; automatic sampling stopped for session=%s",
                        self.user_id, self.session_id,
                    )
                    return None
                logger.warning("Geolocation failed for user=%s (attempt %d): %s", self.user_id, attempt, exc)

            if attempt == 1:
                await self._sleep(self._retry_delay)
                if not self.active:
                    return None
        return None

    async def _persist(self, position: Position) -> None:
        for attempt in (1, 2):
            captured_at = self._clock()
            try:
                await self._gateway.insert_location_sample(
                    self.user_id,
                    self.session_id,
                    position.latitude,
                    position.longitude,
                    captured_at,
                )
            except BackendError as exc:
                logger.warning(
                    "Storing location failed for user=%s session=%s (attempt %d): %s",
                    self.user_id, self.session_id, attempt, exc,
                )
                if attempt == 1:
                    await self._sleep(self._retry_delay)
                    if not self.active:
                        return
                continue

            self.note_sample(captured_at)
            self.samples_recorded += 1
            logger.debug(
                "Location stored for user=%s session=%s: %.6f, %.6f",
                self.user_id, self.session_id, position.latitude, position.longitude,
            )
            return
