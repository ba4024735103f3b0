from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol, Union

from ..common.datetime_utils import now_local
from ..common.validators import require_coordinates
from ..core.constants import DEFAULT_GEOLOCATION_TIMEOUT
from ..core.enums import GeolocationErrorCode
from ..core.exceptions import GeolocationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float
    timestamp: datetime


@dataclass(frozen=True)
class PositionOptions:
    """Mirrors the browser options: high accuracy, no cached fixes, 15 s read timeout."""

    enable_high_accuracy: bool = True
    maximum_age: float = 0
    timeout: float = DEFAULT_GEOLOCATION_TIMEOUT


class GeolocationSource(Protocol):
    async def get_current_position(self, options: PositionOptions) -> Position:
        """Return a position or raise GeolocationError."""

        raise NotImplementedError


class DeviceFixSource(GeolocationSource):
    """Position source fed by one user's device.

    The device reports fixes (or its geolocation error) over HTTP; a read
    returns the newest fix no older than ``options.maximum_age`` at the time of
    the request, waiting up to ``options.timeout`` for the device to report
    one. Must be used from the tracking runtime's event loop.
    """

    def __init__(self, *, clock: Callable[[], datetime] = now_local):
        self._clock = clock
        self._latest: Optional[Position] = None
        self._error: Optional[GeolocationError] = None
        self._error_at: Optional[datetime] = None
        self._waiters: list[asyncio.Future] = []

    @property
    def latest(self) -> Optional[Position]:
        return self._latest

    def report(self, latitude, longitude) -> Position:
        lat, lng = require_coordinates(latitude, longitude)
        position = Position(latitude=lat, longitude=lng, timestamp=self._clock())
        self._latest = position
        self._error = None
        self._error_at = None
        self._wake(position)
        return position

    def report_error(self, code: int, message: str = "") -> GeolocationError:
        try:
            code = GeolocationErrorCode(int(code))
        except ValueError:
            code = GeolocationErrorCode.POSITION_UNAVAILABLE
        error = GeolocationError(code, message or code.name.replace("_", " ").lower())
        self._error = error
        self._error_at = self._clock()
        logger.info("Device reported geolocation error %s: %s", int(code), error)
        self._wake(error)
        return error

    def _wake(self, outcome: Union[Position, GeolocationError]) -> None:
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(outcome)

    def _cached(self, fresh_after: datetime) -> Union[Position, GeolocationError, None]:
        # A permission denial stays in force until the device reports a fix again.
        if self._error is not None and self._error.code == GeolocationErrorCode.PERMISSION_DENIED:
            return self._error
        if self._error is not None and self._error_at is not None and self._error_at >= fresh_after:
            return self._error
        if self._latest is not None and self._latest.timestamp >= fresh_after:
            return self._latest
        return None

    async def get_current_position(self, options: PositionOptions) -> Position:
        fresh_after = self._clock() - timedelta(seconds=float(options.maximum_age))
        outcome = self._cached(fresh_after)

        if outcome is None:
            waiter = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            try:
                outcome = await asyncio.wait_for(waiter, timeout=float(options.timeout))
            except asyncio.TimeoutError:
                raise GeolocationError(
                    GeolocationErrorCode.TIMEOUT,
                    "Timed out waiting for a position from the device",
                ) from None
            finally:
                if waiter in self._waiters:
                    self._waiters.remove(waiter)

        if isinstance(outcome, GeolocationError):
            raise GeolocationError(outcome.code, str(outcome))
        return outcome
