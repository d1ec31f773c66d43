"""Phone checks for the returning-guest entry point."""

import re
from typing import Optional

from hotel_booking.config import settings

PHONE_REQUIRED = "Phone number is required."

_SEPARATORS_RE = re.compile(r"[\s\-]")


def _national_digits(raw: str) -> str:
    return _SEPARATORS_RE.sub("", raw or "")


def phone_error(raw: str) -> Optional[str]:
    """Return the message to show for an unusable phone entry, or None."""
    digits = _national_digits(raw)
    if not digits:
        return PHONE_REQUIRED
    expected = settings.guest.phone_digits
    if not digits.isdigit() or len(digits) != expected:
        return f"Please enter a valid {expected}-digit phone number"
    return None


def to_lookup_phone(raw: str) -> str:
    """Format a national number the way the backend indexes guests.

    Examples:
        >>> to_lookup_phone("98765 43210")
        '919876543210'

    Raises:
        ValueError: if ``raw`` is not a valid national number.
    """
    error = phone_error(raw)
    if error:
        raise ValueError(error)
    return f"{settings.guest.phone_country_code}{_national_digits(raw)}"
