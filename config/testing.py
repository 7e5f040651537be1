import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "smart_attendance_test"),
}

DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

LOG_LEVEL = "WARNING"
LOG_DIR = None

SESSION_DAYS = 7

CAMPUS_LATITUDE = 28.6139
CAMPUS_LONGITUDE = 77.2090
CAMPUS_RADIUS_METERS = 100.0

FACE_SETTLE_SECONDS = 2.0
VOICE_FALLBACK_SECONDS = 2.0
VOICE_FALLBACK_ENABLED = True
SPEECH_LANGUAGE = "en-US"

RATE_LIMIT_MAX_FAILURES = 5
RATE_LIMIT_WINDOW_MINUTES = 15
RATE_LIMIT_FAIL_OPEN = True
LOGIN_ATTEMPT_RETENTION_HOURS = 24

RECORDS_HISTORY_LIMIT = 10
FLOW_SESSION_IDLE_MINUTES = 120
RECORDS_STREAM_KEEPALIVE_SECONDS = 0.1
RECORDS_STREAM_MAX_SECONDS = 1.0
