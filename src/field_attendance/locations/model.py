from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class LocationSample:
    """Domain entity: one stored geolocation observation of an open session."""

    sample_id: int
    user_id: int
    session_id: int
    latitude: float
    longitude: float
    captured_at: datetime

    def same_place(self, latitude: float, longitude: float, *, epsilon: float) -> bool:
        return abs(self.latitude - latitude) < epsilon and abs(self.longitude - longitude) < epsilon
