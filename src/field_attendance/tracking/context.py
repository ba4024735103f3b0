from __future__ import annotations

from datetime import datetime
from typing import Optional


class TrackingContext:
    """State shared between a user's state machine and its sampler."""

    def __init__(self):
        self._checkout_in_progress = False
        self._suppress_until: Optional[datetime] = None

    def is_checkout_in_progress(self) -> bool:
        return self._checkout_in_progress

    def begin_checkout(self) -> None:
        self._checkout_in_progress = True

    def end_checkout(self) -> None:
        self._checkout_in_progress = False

    def suppress_auto_sample_until(self, until: Optional[datetime]) -> None:
        self._suppress_until = until

    def auto_sampling_suppressed(self, now: datetime) -> bool:
        return self._suppress_until is not None and now < self._suppress_until
