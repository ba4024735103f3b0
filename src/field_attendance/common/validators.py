from __future__ import annotations

import math
import re
from typing import Any

from ..core.exceptions import ValidationError

_PHONE_RE = re.compile(r"^[6-9]\d{9}$")


def require_phone(value: str) -> str:
    phone = (value or "").strip()
    if not _PHONE_RE.match(phone):
        raise ValidationError("Invalid phone number. Must be 10 digits starting with 6-9")
    return phone


def require_odometer_reading(value: Any) -> float:
    """Odometer readings are non-negative finite numbers."""
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError("Odometer reading is required")
    try:
        reading = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Odometer reading must be a number") from None
    if not math.isfinite(reading) or reading < 0:
        raise ValidationError("Odometer reading must be a non-negative number")
    return reading


def require_coordinates(latitude: Any, longitude: Any) -> tuple[float, float]:
    try:
        lat = float(latitude)
        lng = float(longitude)
    except (TypeError, ValueError):
        raise ValidationError("Latitude and longitude must be numbers") from None
    if not (-90 <= lat <= 90):
        raise ValidationError("Latitude must be between -90 and 90")
    if not (-180 <= lng <= 180):
        raise ValidationError("Longitude must be between -180 and 180")
    return lat, lng
