from hotel_booking.validation.phone_validator import phone_error, to_lookup_phone
from hotel_booking.validation.stay_validator import (
    ValidationResult,
    find_room_type,
    is_approaching_check_in,
    is_availability_stale,
    is_check_in_day,
    is_checkout_day,
    is_submittable,
    on_check_in_changed,
    validate,
)

__all__ = [
    "ValidationResult",
    "find_room_type",
    "on_check_in_changed",
    "validate",
    "is_check_in_day",
    "is_approaching_check_in",
    "is_checkout_day",
    "is_availability_stale",
    "is_submittable",
    "phone_error",
    "to_lookup_phone",
]
