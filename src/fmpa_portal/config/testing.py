import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "fmpa_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

# Tests run against the in-memory store unless told otherwise.
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "memory")
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

FMPA_MIN_SEATS = 5
FMPA_MAX_SEATS = 15
