from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from ..common.validators import require_coordinates
from ..core.constants import DUPLICATE_EPSILON_DEGREES, DUPLICATE_WINDOW_SECONDS
from ..core.exceptions import NotFoundError
from .model import LocationSample
from .repository import LocationRepository

logger = logging.getLogger(__name__)


class LocationService:
    """Use cases around stored location samples."""

    def __init__(
        self,
        locations: LocationRepository,
        *,
        duplicate_window: timedelta = timedelta(seconds=DUPLICATE_WINDOW_SECONDS),
        epsilon: float = DUPLICATE_EPSILON_DEGREES,
    ):
        self._locations = locations
        self._duplicate_window = duplicate_window
        self._epsilon = float(epsilon)

    def record(
        self,
        *,
        user_id: int,
        session_id: int,
        latitude: float,
        longitude: float,
        captured_at: datetime,
    ) -> LocationSample:
        """Store a sample unless an equivalent one was stored moments ago.

        Several triggers can fire for the same position (check-in capture,
        sampler tick, a manual "update now"); a sample for the same user and
        session captured inside the duplicate window at practically the same
        coordinates is returned instead of inserting another row.
        """

        latitude, longitude = require_coordinates(latitude, longitude)

        recent = self._locations.list_recent(
            user_id=user_id,
            session_id=session_id,
            since=captured_at - self._duplicate_window,
        )
        for existing in recent:
            if existing.same_place(latitude, longitude, epsilon=self._epsilon):
                logger.info(
                    "Skipping duplicate location for user=%s session=%s (%.6f, %.6f)",
                    user_id, session_id, latitude, longitude,
                )
                return existing

        return self._locations.insert(
            user_id=user_id,
            session_id=session_id,
            latitude=latitude,
            longitude=longitude,
            captured_at=captured_at,
        )

    def route_for_session(self, session_id: int, *, only_day: Optional[date] = None) -> Sequence[LocationSample]:
        """Samples of a session in capture order, optionally limited to one day."""

        samples = self._locations.list_for_session(int(session_id))
        if only_day is None:
            return samples
        return [s for s in samples if s.captured_at.date() == only_day]

    def latest_for_user(self, user_id: int) -> LocationSample:
        sample = self._locations.latest_for_user(int(user_id))
        if not sample:
            raise NotFoundError("No location recorded for this employee")
        return sample
