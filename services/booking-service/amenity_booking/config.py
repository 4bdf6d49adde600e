import os

SERVICE_NAME = "booking-service"

DATABASE_URL = os.getenv("BOOKING_DB")
RABBIT_URL = os.getenv("RABBIT_URL")  # optional, events are skipped when unset

JWT_SECRET = os.getenv("JWT_SECRET")  # optional, gateway headers are used when unset
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM") or "HS256"

# Reference timezone for calendar dates and display times
BOOKING_TIMEZONE = os.getenv("BOOKING_TIMEZONE") or "UTC"

LOG_LEVEL = os.getenv("LOG_LEVEL") or "INFO"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# ---- Rule defaults (used until /init stores a rules document) ----
MAX_BOOKING_DAYS_AHEAD = _env_int("MAX_BOOKING_DAYS_AHEAD", 7)
MIN_BOOKING_MINUTES = _env_int("MIN_BOOKING_MINUTES", 30)
MAX_BOOKING_MINUTES = _env_int("MAX_BOOKING_MINUTES", 120)
CANCELLATION_DEADLINE_HOURS = _env_int("CANCELLATION_DEADLINE_HOURS", 2)
MAX_PER_FAMILY = _env_int("MAX_PER_FAMILY", 2)

WAITLIST_ENABLED = _env_bool("WAITLIST_ENABLED", False)

# ---- Admission retry ----
ADMISSION_MAX_ATTEMPTS = _env_int("ADMISSION_MAX_ATTEMPTS", 3)
ADMISSION_BACKOFF_SECONDS = _env_float("ADMISSION_BACKOFF_SECONDS", 0.05)
