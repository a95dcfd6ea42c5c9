import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "club_attendance"),
}

# "mysql" or "memory" (process-local store, lost on restart)
STORE_BACKEND = os.getenv("STORE_BACKEND", "mysql")

# Day boundaries for grouping records into sessions
CLUB_TIMEZONE = os.getenv("CLUB_TIMEZONE", "Europe/Istanbul")

# Seconds between polls of a MySQL live feed
FEED_POLL_SECONDS = float(os.getenv("FEED_POLL_SECONDS", "2"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
