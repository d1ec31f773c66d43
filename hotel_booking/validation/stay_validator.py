"""
Stay-interval validation and availability reconciliation.

One pure module used by both the create and the modify flow:

- ``on_check_in_changed`` repairs checkout fields when check-in moves
- ``validate`` reports every field-level violation for a draft at ``now``
- ``is_availability_stale`` decides whether a snapshot still applies

Nothing here reads the system clock or mutates its inputs. Given the
same draft, ``now`` and catalog, every function returns the same result.

Usage:
    draft = on_check_in_changed(draft, date(2024, 6, 1))
    result = validate(draft, now=datetime(2024, 5, 30, 9, 0), room_types=catalog)
    if result.is_valid and not is_availability_stale(snapshot, draft):
        ...
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable, Optional

from hotel_booking.config import settings
from hotel_booking.schemas.booking_schema import AvailabilitySnapshot, BookingDraft
from hotel_booking.schemas.room_schema import RoomType
from hotel_booking.utils import add_hours, combine, parse_time

logger = logging.getLogger(__name__)

GUEST_NAME = "guest_name"
ROOM_TYPE = "room_type"
CHECK_IN = "check_in"
CHECK_OUT = "check_out"
GUEST_COUNT = "guest_count"


@dataclass(frozen=True)
class ValidationResult:
    """Field errors for a draft plus the derived calendar flags."""

    field_errors: dict[str, str] = field(default_factory=dict)
    is_check_in_day: bool = False
    is_approaching_check_in: bool = False
    is_checkout_day: bool = False

    @property
    def is_valid(self) -> bool:
        return not self.field_errors

    def summary(self) -> str:
        """Single blocking notification text for a submit attempt with errors."""
        if not self.field_errors:
            return ""
        return "Please fix the following:\n" + "\n".join(
            f"  {message}" for message in self.field_errors.values()
        )


def _min_stay() -> timedelta:
    return timedelta(hours=settings.stay.min_stay_hours)


def _as_wall_clock(now: datetime) -> datetime:
    """Drop tzinfo so ``now`` compares with naive draft moments by wall-clock value."""
    return now.replace(tzinfo=None) if now.tzinfo is not None else now


def find_room_type(room_types: Iterable[RoomType], name: str) -> Optional[RoomType]:
    """Look up a catalog entry by its type name."""
    for room in room_types:
        if room.type == name:
            return room
    return None


def on_check_in_changed(
    draft: BookingDraft, new_date: Optional[date], new_time: Optional[time] = None
) -> BookingDraft:
    """
    Apply a check-in change and roll checkout forward to stay consistent.

    Args:
        draft: Current draft. Not mutated.
        new_date: New check-in date (None clears it).
        new_time: Explicit check-in time. When omitted and the date moved,
            the time resets to the configured default.

    Returns:
        A new draft with check-in applied and checkout repaired.
    """
    updated = draft.copy()
    date_moved = new_date != draft.check_in.date

    updated.check_in.date = new_date
    if new_time is not None:
        updated.check_in.time = new_time
    elif date_moved:
        updated.check_in.time = parse_time(settings.stay.default_check_in_time)

    check_in = updated.check_in.moment()
    if check_in is None:
        return updated

    # Literal +min_stay rollover; may land at an odd hour such as 02:00.
    min_checkout = check_in + _min_stay()
    check_out = updated.check_out.moment()
    if check_out is None or check_out < min_checkout:
        updated.check_out.date = min_checkout.date()
        updated.check_out.time = min_checkout.time()

    if (
        updated.check_out.date == updated.check_in.date
        and updated.check_out.time <= updated.check_in.time
    ):
        updated.check_out.time = add_hours(
            updated.check_in.time, settings.stay.same_day_checkout_offset_hours
        )

    if updated.check_out != draft.check_out:
        logger.debug(
            "Checkout rolled to %s for check-in %s", updated.check_out.moment(), check_in
        )
    return updated


def _check_guest_name(
    draft: BookingDraft, now: datetime, room_types: Optional[list[RoomType]]
) -> Optional[str]:
    if not draft.guest_name or not draft.guest_name.strip():
        return "Name is required"
    return None


def _check_room_type(
    draft: BookingDraft, now: datetime, room_types: Optional[list[RoomType]]
) -> Optional[str]:
    if not draft.room_type or not draft.room_type.strip():
        return "Room type is required"
    if room_types is not None and find_room_type(room_types, draft.room_type) is None:
        return f"Unknown room type: {draft.room_type}"
    return None


def _check_check_in(
    draft: BookingDraft, now: datetime, room_types: Optional[list[RoomType]]
) -> Optional[str]:
    check_in = draft.check_in.moment()
    if check_in is None:
        return "Check-in date is required"
    if check_in < now:
        return "Check-in date and time cannot be in the past"
    return None


def _check_check_out(
    draft: BookingDraft, now: datetime, room_types: Optional[list[RoomType]]
) -> Optional[str]:
    check_out = draft.check_out.moment()
    if check_out is None:
        return "Check-out date is required"
    check_in = draft.check_in.moment()
    if check_in is None:
        return None

    min_stay = _min_stay()
    if min_stay and check_out < check_in + min_stay:
        return f"Minimum stay duration is {settings.stay.min_stay_hours} hours"
    if draft.check_out.date == draft.check_in.date:
        if draft.check_out.time <= draft.check_in.time:
            return "Check-out time must be after check-in time on same day"
    elif check_out <= check_in:
        return "Check-out date and time must be after check-in date and time"
    return None


def _check_guest_count(
    draft: BookingDraft, now: datetime, room_types: Optional[list[RoomType]]
) -> Optional[str]:
    count = draft.guest_count
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        return "At least 1 guest is required"
    if count > settings.stay.max_guests:
        return f"At most {settings.stay.max_guests} guests are allowed per booking"
    return None


FieldCheck = Callable[[BookingDraft, datetime, Optional[list[RoomType]]], Optional[str]]

FIELD_CHECKS: list[tuple[str, FieldCheck]] = [
    (GUEST_NAME, _check_guest_name),
    (ROOM_TYPE, _check_room_type),
    (CHECK_IN, _check_check_in),
    (CHECK_OUT, _check_check_out),
    (GUEST_COUNT, _check_guest_count),
]


def validate(
    draft: BookingDraft,
    now: datetime,
    room_types: Optional[Iterable[RoomType]] = None,
) -> ValidationResult:
    """
    Run every field check against the draft. No check short-circuits another.

    Args:
        draft: Draft to check. Not mutated.
        now: Current instant. Aware values are compared by wall-clock.
        room_types: Catalog for room-type membership. Skipped when None.

    Returns:
        ValidationResult with all violations and the derived calendar flags.
    """
    now = _as_wall_clock(now)
    catalog = list(room_types) if room_types is not None else None

    errors: dict[str, str] = {}
    for name, check in FIELD_CHECKS:
        message = check(draft, now, catalog)
        if message:
            errors[name] = message

    if errors:
        logger.debug("Draft validation failed: %s", sorted(errors))

    return ValidationResult(
        field_errors=errors,
        is_check_in_day=is_check_in_day(draft, now),
        is_approaching_check_in=is_approaching_check_in(draft, now),
        is_checkout_day=is_checkout_day(draft, now),
    )


def is_check_in_day(draft: BookingDraft, now: datetime) -> bool:
    return draft.check_in.date is not None and draft.check_in.date == now.date()


def is_approaching_check_in(draft: BookingDraft, now: datetime) -> bool:
    """True on check-in day and within the configured number of days before it."""
    if draft.check_in.date is None:
        return False
    days_until = (draft.check_in.date - now.date()).days
    return 0 <= days_until <= settings.stay.approaching_check_in_days


def is_checkout_day(draft: BookingDraft, now: datetime) -> bool:
    return draft.check_out.date is not None and draft.check_out.date == now.date()


def is_availability_stale(
    snapshot: Optional[AvailabilitySnapshot], draft: BookingDraft
) -> bool:
    """True when no snapshot exists or it was computed for a different stay key."""
    if snapshot is None:
        return True
    key = draft.stay_key()
    if key is None:
        return True
    return snapshot.key != key


def is_submittable(
    draft: BookingDraft,
    snapshot: Optional[AvailabilitySnapshot],
    now: datetime,
    room_types: Optional[Iterable[RoomType]] = None,
) -> bool:
    """Gate for submission: valid draft, fresh snapshot, and the room is available."""
    if is_availability_stale(snapshot, draft) or not snapshot.available:
        return False
    return validate(draft, now, room_types).is_valid


def min_checkout_for(draft: BookingDraft) -> Optional[datetime]:
    """Earliest checkout the minimum-stay rule allows for the draft's check-in."""
    check_in = combine(draft.check_in.date, draft.check_in.time)
    if check_in is None:
        return None
    return check_in + _min_stay()
