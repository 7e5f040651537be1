import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "smart_attendance"),
}

DEBUG = True

# Apply database/schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Also create the demo student account
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
LOG_DIR = os.getenv("LOG_DIR", "logs")

SESSION_DAYS = int(os.getenv("SESSION_DAYS", "7"))

# Campus geofence
CAMPUS_LATITUDE = float(os.getenv("CAMPUS_LATITUDE", "28.6139"))
CAMPUS_LONGITUDE = float(os.getenv("CAMPUS_LONGITUDE", "77.2090"))
CAMPUS_RADIUS_METERS = float(os.getenv("CAMPUS_RADIUS_METERS", "100"))

FACE_SETTLE_SECONDS = float(os.getenv("FACE_SETTLE_SECONDS", "2"))
VOICE_FALLBACK_SECONDS = float(os.getenv("VOICE_FALLBACK_SECONDS", "2"))
VOICE_FALLBACK_ENABLED = bool(int(os.getenv("VOICE_FALLBACK_ENABLED", "1")))
SPEECH_LANGUAGE = os.getenv("SPEECH_LANGUAGE", "en-US")

RATE_LIMIT_MAX_FAILURES = int(os.getenv("RATE_LIMIT_MAX_FAILURES", "5"))
RATE_LIMIT_WINDOW_MINUTES = int(os.getenv("RATE_LIMIT_WINDOW_MINUTES", "15"))
RATE_LIMIT_FAIL_OPEN = bool(int(os.getenv("RATE_LIMIT_FAIL_OPEN", "1")))
LOGIN_ATTEMPT_RETENTION_HOURS = int(os.getenv("LOGIN_ATTEMPT_RETENTION_HOURS", "24"))

RECORDS_HISTORY_LIMIT = int(os.getenv("RECORDS_HISTORY_LIMIT", "10"))
FLOW_SESSION_IDLE_MINUTES = int(os.getenv("FLOW_SESSION_IDLE_MINUTES", "120"))
RECORDS_STREAM_KEEPALIVE_SECONDS = float(os.getenv("RECORDS_STREAM_KEEPALIVE_SECONDS", "15"))
RECORDS_STREAM_MAX_SECONDS = float(os.getenv("RECORDS_STREAM_MAX_SECONDS", "300"))
