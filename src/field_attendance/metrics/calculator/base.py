from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional


class SessionMetricsCalculator(ABC):
    """Calculator interface (Strategy Pattern for session metrics).

    ``None`` inputs mean the check-in side of the session could not be read
    back; implementations must still return a value so check-out never blocks.
    """

    @abstractmethod
    def duration_minutes(self, check_in_time: Optional[datetime], check_out_time: datetime) -> int:
        raise NotImplementedError

    @abstractmethod
    def distance_traveled(self, check_in_reading: Optional[float], check_out_reading: float) -> float:
        raise NotImplementedError
