import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "field_attendance_db"),
}

DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also create the demo admin/manager/employee accounts
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

# Seconds. Sampling cadence and check-in/check-out bounds.
TRACKING = {
    "SAMPLE_INTERVAL": int(os.getenv("SAMPLE_INTERVAL", "120")),
    "TICK_PERIOD": int(os.getenv("TICK_PERIOD", "15")),
    "RETRY_DELAY": int(os.getenv("RETRY_DELAY", "30")),
    "INITIAL_SAMPLE_GRACE": 30,
    "OPERATION_TIMEOUT": 30,
    "MAX_OPERATION_TIME": 120,
    "GEOLOCATION_TIMEOUT": 15,
}

PHOTO_DIR = os.getenv("PHOTO_DIR", "instance/photos")
PHOTO_URL_PREFIX = "/photos"
MAX_PHOTO_BYTES = 5 * 1024 * 1024

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
LOG_FILE = os.getenv("LOG_FILE", "logs/field_attendance.log")
