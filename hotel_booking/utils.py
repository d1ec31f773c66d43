"""Shared utilities: phone normalization and wall-clock helpers."""

import re
from datetime import date, datetime, time
from typing import Optional


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("0412 345 678")
        '0412345678'
        >>> normalize_phone("+61 (412) 345-678")
        '+61412345678'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD calendar date."""
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


def parse_time(value: str) -> time:
    """Parse an HH:MM wall-clock time. Seconds, when present, are dropped."""
    value = value.strip()
    fmt = "%H:%M:%S" if value.count(":") == 2 else "%H:%M"
    return datetime.strptime(value, fmt).time().replace(second=0)


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def add_hours(value: time, hours: int) -> time:
    """Advance a wall-clock time by whole hours, wrapping at 24:00.

    Examples:
        >>> add_hours(time(14, 30), 1)
        datetime.time(15, 30)
        >>> add_hours(time(23, 15), 1)
        datetime.time(0, 15)
    """
    return value.replace(hour=(value.hour + hours) % 24)


def combine(day: Optional[date], clock: time) -> Optional[datetime]:
    """Combine a calendar date and a wall-clock time; None when the date is unset."""
    if day is None:
        return None
    return datetime.combine(day, clock)
