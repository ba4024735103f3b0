from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Optional

from ...core.constants import FALLBACK_DISTANCE, FALLBACK_DURATION_MINUTES
from .base import SessionMetricsCalculator

logger = logging.getLogger(__name__)


class OdometerMetricsCalculator(SessionMetricsCalculator):
    """Standard rule: wall-clock minutes (at least 1), odometer delta (never negative)."""

    def __init__(
        self,
        *,
        fallback_duration: int = FALLBACK_DURATION_MINUTES,
        fallback_distance: float = FALLBACK_DISTANCE,
    ):
        self._fallback_duration = int(fallback_duration)
        self._fallback_distance = float(fallback_distance)

    def duration_minutes(self, check_in_time: Optional[datetime], check_out_time: datetime) -> int:
        if check_in_time is None:
            return self._fallback_duration
        minutes = (check_out_time - check_in_time).total_seconds() / 60
        # Half-up rounding, not Python's banker's rounding.
        return max(1, int(math.floor(minutes + 0.5)))

    def distance_traveled(self, check_in_reading: Optional[float], check_out_reading: float) -> float:
        if check_in_reading is None:
            return self._fallback_distance
        delta = float(check_out_reading) - float(check_in_reading)
        if delta < 0:
            logger.warning(
                "Check-out reading %.1f is below check-in reading %.1f, recording 0 distance",
                float(check_out_reading),
                float(check_in_reading),
            )
        return max(0.0, delta)
