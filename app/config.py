import logging
import os
from pathlib import Path

from dotenv import load_dotenv


def load_environment() -> None:
    """
    Load environment variables by profile.
    - development (default): .env
    - production: .env.production
    """
    root_dir = Path(__file__).resolve().parents[1]
    environment = os.getenv("ENVIRONMENT", "development").strip().lower()
    env_filename = ".env.production" if environment == "production" else ".env"
    env_path = root_dir / env_filename

    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=False)
    else:
        load_dotenv(override=False)


def str_to_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes")


def configure_logging() -> None:
    level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


load_environment()

# ----- Booking rules -----
# Full-day bookings store this window as their start/end.
BUSINESS_OPEN = os.getenv("BUSINESS_OPEN", "08:00")
BUSINESS_CLOSE = os.getenv("BUSINESS_CLOSE", "18:00")
MIN_BOOKING_MINUTES = int(os.getenv("MIN_BOOKING_MINUTES", "120"))

CANCELLATION_NOTICE_HOURS = float(os.getenv("CANCELLATION_NOTICE_HOURS", "24"))
CANCELLATION_GRACE_HOURS = float(os.getenv("CANCELLATION_GRACE_HOURS", "1"))

RETENTION_MONTHS = int(os.getenv("RETENTION_MONTHS", "3"))

COMPANY_HOURS_ENABLED = str_to_bool(os.getenv("COMPANY_HOURS_ENABLED"), default=True)

# ----- Auth -----
SECRET_KEY = os.getenv("SECRET_KEY", "booking-insecure-default-key-change-me")
TOKEN_MAX_AGE_SECONDS = int(os.getenv("TOKEN_MAX_AGE_SECONDS", str(7 * 24 * 3600)))
ADMIN_SESSION_MAX_AGE_SECONDS = 8 * 3600
