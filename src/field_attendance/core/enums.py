from __future__ import annotations

from enum import Enum, IntEnum


class Role(str, Enum):
    """User roles used for the role-scoped portals."""

    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class SessionState(str, Enum):
    CHECKED_OUT = "CHECKED_OUT"
    CHECKED_IN = "CHECKED_IN"


class GeolocationErrorCode(IntEnum):
    """Browser geolocation error codes, as reported by the device."""

    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3
