"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 7

CAMPUS_LATITUDE = 28.6139
CAMPUS_LONGITUDE = 77.2090
CAMPUS_RADIUS_METERS = 100.0
EARTH_RADIUS_METERS = 6371e3

FACE_SETTLE_SECONDS = 2.0
VOICE_FALLBACK_SECONDS = 2.0
SPEECH_LANGUAGE = "en-US"

RATE_LIMIT_MAX_FAILURES = 5
RATE_LIMIT_WINDOW_MINUTES = 15
LOGIN_ATTEMPT_RETENTION_HOURS = 24

RECORDS_HISTORY_LIMIT = 10
FLOW_SESSION_IDLE_MINUTES = 120
