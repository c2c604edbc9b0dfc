import os
from datetime import time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_time(value: str | None, default: time) -> time:
    if value is None or not value.strip():
        return default
    return time.fromisoformat(value.strip())


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./medibook.db")

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), ["http://localhost:4200"])

# Zone that defines the local day and the slot grid for every provider.
SCHEDULE_TIMEZONE = os.getenv("SCHEDULE_TIMEZONE", "UTC")
BUSINESS_OPEN_TIME = _get_time(os.getenv("BUSINESS_OPEN_TIME"), time(9, 0))
BUSINESS_CLOSE_TIME = _get_time(os.getenv("BUSINESS_CLOSE_TIME"), time(17, 0))
SLOT_MINUTES = int(os.getenv("SLOT_MINUTES", "30"))
AVAILABILITY_COUNTS_CANCELLED = _get_bool(os.getenv("AVAILABILITY_COUNTS_CANCELLED"), default=True)

MAX_NOTE_LENGTH = int(os.getenv("MAX_NOTE_LENGTH", "600"))

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")

    if SLOT_MINUTES <= 0:
        raise RuntimeError("SLOT_MINUTES must be a positive number of minutes.")

    if BUSINESS_CLOSE_TIME < BUSINESS_OPEN_TIME:
        raise RuntimeError("BUSINESS_CLOSE_TIME must not be earlier than BUSINESS_OPEN_TIME.")

    try:
        ZoneInfo(SCHEDULE_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise RuntimeError(f"Unknown SCHEDULE_TIMEZONE {SCHEDULE_TIMEZONE!r}.") from exc
