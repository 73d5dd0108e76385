from .config import *  # noqa: F401,F403

SECRET_KEY = "test-secret"

API_BASE_URL = "http://backend.test"
REDIS_URL = ""
TIMEZONE = "UTC"

DEBUG = False
TESTING = True
LOG_JSON = False
