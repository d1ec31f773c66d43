"""
Centralized configuration with environment variable overrides.

Stay rules (default times, minimum stay, guest limits) and backend
connection settings live here. Nothing is hardcoded in validator or
flow logic.
"""

import logging
import os
import re
from dataclasses import dataclass, field

from dotenv import load_dotenv

from hotel_booking.logging_context import LOG_DATE_FORMAT, LOG_FORMAT, install_session_filter

load_dotenv()

logger = logging.getLogger(__name__)

_WALL_CLOCK_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class StayConfig:
    """Stay-interval rules shared by the create and modify flows."""

    default_check_in_time: str = os.getenv("DEFAULT_CHECK_IN_TIME", "14:00")
    default_check_out_time: str = os.getenv("DEFAULT_CHECK_OUT_TIME", "11:00")
    min_stay_hours: int = _safe_int("MIN_STAY_HOURS", "12")
    same_day_checkout_offset_hours: int = _safe_int("SAME_DAY_CHECKOUT_OFFSET_HOURS", "1")
    approaching_check_in_days: int = _safe_int("APPROACHING_CHECK_IN_DAYS", "1")
    max_guests: int = _safe_int("MAX_GUESTS", "4")


@dataclass(frozen=True)
class ApiConfig:
    """Reservation backend connection settings."""

    backend_url: str = os.getenv("BACKEND_URL", "http://localhost:8000")
    request_timeout_sec: float = _safe_float("REQUEST_TIMEOUT_SEC", "10.0")


@dataclass(frozen=True)
class GuestConfig:
    """Phone lookup rules for the returning-guest entry point."""

    phone_digits: int = _safe_int("PHONE_DIGITS", "10")
    phone_country_code: str = os.getenv("PHONE_COUNTRY_CODE", "91")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    stay: StayConfig = field(default_factory=StayConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    guest: GuestConfig = field(default_factory=GuestConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "hotel-booking")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    for name, value in [
        ("DEFAULT_CHECK_IN_TIME", config.stay.default_check_in_time),
        ("DEFAULT_CHECK_OUT_TIME", config.stay.default_check_out_time),
    ]:
        if not _WALL_CLOCK_RE.match(value):
            raise ValueError(f"{name} must be in HH:MM format, got {value!r}")

    if config.stay.min_stay_hours < 0:
        raise ValueError(
            f"MIN_STAY_HOURS must be >= 0, got {config.stay.min_stay_hours}"
        )
    if not 1 <= config.stay.same_day_checkout_offset_hours <= 23:
        raise ValueError(
            "SAME_DAY_CHECKOUT_OFFSET_HOURS must be between 1 and 23, "
            f"got {config.stay.same_day_checkout_offset_hours}"
        )
    if config.stay.approaching_check_in_days < 0:
        raise ValueError(
            "APPROACHING_CHECK_IN_DAYS must be >= 0, "
            f"got {config.stay.approaching_check_in_days}"
        )
    if config.stay.max_guests < 1:
        raise ValueError(f"MAX_GUESTS must be >= 1, got {config.stay.max_guests}")

    if config.guest.phone_digits < 1:
        raise ValueError(f"PHONE_DIGITS must be >= 1, got {config.guest.phone_digits}")
    if not config.guest.phone_country_code.isdigit():
        raise ValueError(
            f"PHONE_COUNTRY_CODE must contain only digits, got {config.guest.phone_country_code!r}"
        )

    if not config.api.backend_url.strip():
        raise ValueError("BACKEND_URL must not be empty")
    if config.api.request_timeout_sec <= 0:
        raise ValueError(
            f"REQUEST_TIMEOUT_SEC must be > 0, got {config.api.request_timeout_sec}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )
    install_session_filter()
    logger.info("Configuration loaded for '%s'", config.app_name)
    return config


# Singleton instance
settings = load_config()
