from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import LocationSample


class LocationRepository(Protocol):
    def insert(
        self,
        *,
        user_id: int,
        session_id: int,
        latitude: float,
        longitude: float,
        captured_at: datetime,
    ) -> LocationSample:
        raise NotImplementedError

    def list_recent(self, *, user_id: int, session_id: int, since: datetime, limit: int = 5) -> Sequence[LocationSample]:
        """Samples captured at or after ``since``, newest first."""

        raise NotImplementedError

    def list_for_session(self, session_id: int) -> Sequence[LocationSample]:
        """All samples of a session, oldest first."""

        raise NotImplementedError

    def latest_for_user(self, user_id: int) -> Optional[LocationSample]:
        raise NotImplementedError
