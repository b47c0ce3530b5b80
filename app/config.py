import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./calendar.db")

# Connection pool (ignored for SQLite)
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))
DB_SLOW_QUERY_SECONDS = float(os.getenv("DB_SLOW_QUERY_SECONDS", "0.5"))

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# Frontend origins allowed by CORS (comma separated)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()]

# Timezone used when neither the request nor the user provides a valid one
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "UTC")

# Availability search
WORKING_HOURS_START = int(os.getenv("WORKING_HOURS_START", "9"))  # 09:00 local
WORKING_HOURS_END = int(os.getenv("WORKING_HOURS_END", "17"))  # 17:00 local
SLOT_STEP_MINUTES = int(os.getenv("SLOT_STEP_MINUTES", "15"))
MAX_CANDIDATES = int(os.getenv("MAX_CANDIDATES", "5000"))  # Hard bound on candidates examined
MAX_SUGGESTIONS = int(os.getenv("MAX_SUGGESTIONS", "5"))
MAX_MEETING_MINUTES = int(os.getenv("MAX_MEETING_MINUTES", "480"))  # 8 hours
PER_ATTENDEE_SUGGESTIONS = int(os.getenv("PER_ATTENDEE_SUGGESTIONS", "3"))
PER_ATTENDEE_LOOKAHEAD_DAYS = int(os.getenv("PER_ATTENDEE_LOOKAHEAD_DAYS", "3"))

# Per-event locking: "memory" (single process) or "redis" (shared across workers)
EVENT_LOCK_BACKEND = os.getenv("EVENT_LOCK_BACKEND", "memory").lower()
EVENT_LOCK_WAIT_SECONDS = float(os.getenv("EVENT_LOCK_WAIT_SECONDS", "5"))
EVENT_LOCK_TTL_SECONDS = float(os.getenv("EVENT_LOCK_TTL_SECONDS", "30"))
REDIS_URL = os.getenv("REDIS_URL")

# Availability endpoint rate limit, per client IP. "memory" or "redis" (shared across workers)
RATE_LIMIT_BACKEND = os.getenv("RATE_LIMIT_BACKEND", "memory").lower()
AVAILABILITY_RATE_LIMIT = int(os.getenv("AVAILABILITY_RATE_LIMIT", "20"))
AVAILABILITY_RATE_WINDOW_SECONDS = int(os.getenv("AVAILABILITY_RATE_WINDOW_SECONDS", "60"))

# Video conference rooms generated for new events
JITSI_BASE_URL = os.getenv("JITSI_BASE_URL", "https://meet.jit.si/")

# Reminder worker
REMINDER_MINUTES_BEFORE = int(os.getenv("REMINDER_MINUTES_BEFORE", "10"))
REMINDER_POLL_SECONDS = int(os.getenv("REMINDER_POLL_SECONDS", "60"))
