import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY") or "room-monitor-secret"

    # REST backend
    API_BASE_URL = os.environ.get("API_BASE_URL", "http://localhost:8000")
    API_TIMEOUT = float(os.environ.get("API_TIMEOUT", "10"))

    # Cross-process relay; empty disables it (single process)
    REDIS_URL = os.environ.get("REDIS_URL", "")
    RELAY_PREFIX = os.environ.get("RELAY_PREFIX", "room-monitor")

    # Attendance
    TIMEZONE = os.environ.get("TIMEZONE", "America/Bogota")
    LATE_GRACE_MINUTES = int(os.environ.get("LATE_GRACE_MINUTES", "5"))
    RELOAD_MIN_INTERVAL = float(os.environ.get("RELOAD_MIN_INTERVAL", "1.0"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    LOG_JSON = bool(int(os.environ.get("LOG_JSON", "0")))


SECRET_KEY = Config.SECRET_KEY
API_BASE_URL = Config.API_BASE_URL
API_TIMEOUT = Config.API_TIMEOUT
REDIS_URL = Config.REDIS_URL
RELAY_PREFIX = Config.RELAY_PREFIX
TIMEZONE = Config.TIMEZONE
LATE_GRACE_MINUTES = Config.LATE_GRACE_MINUTES
RELOAD_MIN_INTERVAL = Config.RELOAD_MIN_INTERVAL
LOG_LEVEL = Config.LOG_LEVEL
LOG_JSON = Config.LOG_JSON

DEBUG = bool(int(os.environ.get("DEBUG", "1")))
