import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "field_attendance_test"),
}

DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

TRACKING = {
    "SAMPLE_INTERVAL": 120,
    "TICK_PERIOD": 15,
    "RETRY_DELAY": 30,
    "INITIAL_SAMPLE_GRACE": 30,
    "OPERATION_TIMEOUT": 5,
    "MAX_OPERATION_TIME": 10,
    "GEOLOCATION_TIMEOUT": 1,
}

PHOTO_DIR = os.getenv("PHOTO_DIR", "instance/test-photos")
PHOTO_URL_PREFIX = "/photos"
MAX_PHOTO_BYTES = 1024 * 1024

LOG_LEVEL = "WARNING"
LOG_FILE = None
