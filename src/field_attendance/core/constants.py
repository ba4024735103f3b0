"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

# Location sampling (seconds)
DEFAULT_SAMPLE_INTERVAL = 120
DEFAULT_TICK_PERIOD = 15
DEFAULT_RETRY_DELAY = 30
DEFAULT_INITIAL_SAMPLE_GRACE = 30
DEFAULT_GEOLOCATION_TIMEOUT = 15

# Check-in / check-out bounds (seconds)
DEFAULT_OPERATION_TIMEOUT = 30
DEFAULT_MAX_OPERATION_TIME = 120

# Duplicate sample suppression
DUPLICATE_WINDOW_SECONDS = 5
DUPLICATE_EPSILON_DEGREES = 0.0001

# Fallbacks when the check-in side of a session cannot be read back
FALLBACK_DURATION_MINUTES = 60
FALLBACK_DISTANCE = 5.0

PHOTO_BUCKET = "meter-readings"
DEFAULT_MAX_PHOTO_BYTES = 5 * 1024 * 1024
