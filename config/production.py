import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "field_attendance_db"),
    "connection_timeout": int(os.getenv("DB_CONNECT_TIMEOUT", "10")),
}

DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

TRACKING = {
    "SAMPLE_INTERVAL": int(os.getenv("SAMPLE_INTERVAL", "120")),
    "TICK_PERIOD": int(os.getenv("TICK_PERIOD", "15")),
    "RETRY_DELAY": int(os.getenv("RETRY_DELAY", "30")),
    "INITIAL_SAMPLE_GRACE": 30,
    "OPERATION_TIMEOUT": int(os.getenv("OPERATION_TIMEOUT", "30")),
    "MAX_OPERATION_TIME": int(os.getenv("MAX_OPERATION_TIME", "120")),
    "GEOLOCATION_TIMEOUT": 15,
}

PHOTO_DIR = os.getenv("PHOTO_DIR", "/var/lib/field_attendance/photos")
PHOTO_URL_PREFIX = os.getenv("PHOTO_URL_PREFIX", "/photos")
MAX_PHOTO_BYTES = int(os.getenv("MAX_PHOTO_BYTES", str(5 * 1024 * 1024)))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "/var/log/field_attendance/app.log")
