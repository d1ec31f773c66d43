"""
In-memory reservation backend.

Mirrors ``BackendClient``'s interface so the booking flow, the console
demo, and the tests run without a server. Inventory is tracked per room
type and availability is computed from overlapping stays, so races
(a room filling between the availability check and submission) can be
reproduced deterministically.
"""

import logging
import math
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from hotel_booking.schemas.booking_schema import (
    AvailabilitySnapshot,
    BookingDraft,
    BookingRecord,
    StayKey,
)
from hotel_booking.schemas.guest_schema import GuestIdentity
from hotel_booking.schemas.room_schema import RoomPhoto, RoomType
from hotel_booking.tools.errors import (
    CollaboratorError,
    SubmissionRejectedError,
    TokenInvalidError,
)
from hotel_booking.validation.phone_validator import phone_error, to_lookup_phone

logger = logging.getLogger(__name__)

ROOM_CATALOG: dict[str, dict] = {
    "Standard": {"id": 1, "price": Decimal("120.00"), "inventory": 5},
    "Deluxe": {"id": 2, "price": Decimal("180.00"), "inventory": 3},
    "Suite": {"id": 3, "price": Decimal("350.00"), "inventory": 1},
}

SEED_TOKENS: dict[str, dict] = {
    "tok-john": {"name": "John Smith", "phone": "0412345678", "id": None},
    "tok-sarah": {"name": "Sarah Johnson", "phone": "0498765432", "id": None},
}

HOURS_PER_BILLED_DAY = 24


def _overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


class MockBackend:
    """Deterministic stand-in for the reservation backend."""

    def __init__(self) -> None:
        self.offline = False
        self._bookings: dict[int, BookingRecord] = {}
        self._tokens: dict[str, dict] = {}
        self._next_id = 1001
        self.reset()

    def _guard(self) -> None:
        if self.offline:
            raise CollaboratorError()

    def _occupied(self, room_type: str, check_in: datetime, check_out: datetime,
                  exclude_id: Optional[int] = None) -> int:
        count = 0
        for record in self._bookings.values():
            if record.room_type != room_type or record.id == exclude_id:
                continue
            start = datetime.combine(record.check_in_date, record.check_in_time)
            end = datetime.combine(record.check_out_date, record.check_out_time)
            if _overlaps(start, end, check_in, check_out):
                count += 1
        return count

    def list_room_types(self) -> list[RoomType]:
        self._guard()
        return [
            RoomType(
                id=info["id"],
                type=name,
                price_per_day=info["price"],
                photos=[RoomPhoto(id=info["id"], photo_url=f"/uploads/{name.lower()}.jpg",
                                  is_primary=True)],
            )
            for name, info in ROOM_CATALOG.items()
        ]

    def check_availability(
        self,
        room_type: str,
        check_in: datetime,
        check_out: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> AvailabilitySnapshot:
        self._guard()
        info = ROOM_CATALOG.get(room_type)
        if info is None:
            raise CollaboratorError(f"Unknown room type: {room_type}", status_code=404)

        occupied = self._occupied(room_type, check_in, check_out, exclude_booking_id)
        remaining = max(0, info["inventory"] - occupied)
        hours = max(0.0, (check_out - check_in).total_seconds() / 3600)
        days = max(1, math.ceil(hours / HOURS_PER_BILLED_DAY))
        key = StayKey(room_type=room_type, check_in=check_in, check_out=check_out)
        return AvailabilitySnapshot.from_response(key, {
            "available": remaining > 0,
            "remainingRooms": remaining,
            "roomPricePerDay": info["price"],
            "estimatedTotalPrice": info["price"] * days,
            "numberOfDays": days,
        })

    def _record_from(self, booking_id: int, draft: BookingDraft) -> BookingRecord:
        snapshot = self.check_availability(
            draft.room_type, draft.check_in.moment(), draft.check_out.moment(), booking_id
        )
        return BookingRecord(
            id=booking_id,
            room_type=draft.room_type,
            check_in_date=draft.check_in.date,
            check_in_time=draft.check_in.time,
            check_out_date=draft.check_out.date,
            check_out_time=draft.check_out.time,
            guest_count=draft.guest_count,
            total_price=snapshot.estimated_total_price,
            notes=draft.notes,
            guest_name=draft.guest_name,
            guest_phone=draft.guest_phone,
        )

    def _ensure_room_free(self, draft: BookingDraft, exclude_id: Optional[int] = None) -> None:
        info = ROOM_CATALOG.get(draft.room_type)
        if info is None:
            raise SubmissionRejectedError(f"Unknown room type: {draft.room_type}", status_code=400)
        if draft.stay_key() is None:
            raise SubmissionRejectedError(
                "Check-in and check-out dates are required", status_code=422
            )
        occupied = self._occupied(
            draft.room_type, draft.check_in.moment(), draft.check_out.moment(), exclude_id
        )
        if occupied >= info["inventory"]:
            raise SubmissionRejectedError(
                "Room is no longer available for the selected dates", status_code=409
            )

    def create_booking(self, draft: BookingDraft) -> int:
        self._guard()
        self._ensure_room_free(draft)
        booking_id = self._next_id
        self._next_id += 1
        self._bookings[booking_id] = self._record_from(booking_id, draft)
        logger.info("Booking created: %s for %s (%s)", booking_id, draft.guest_name,
                    draft.room_type)
        return booking_id

    def modify_booking(self, booking_id: int, draft: BookingDraft) -> int:
        self._guard()
        existing = self._bookings.get(booking_id)
        if existing is None:
            raise SubmissionRejectedError(f"Booking {booking_id} not found", status_code=404)
        self._ensure_room_free(draft, exclude_id=booking_id)
        updated = self._record_from(booking_id, draft)
        self._bookings[booking_id] = updated.model_copy(update={
            "guest_name": existing.guest_name,
            "guest_phone": existing.guest_phone,
        })
        logger.info("Booking modified: %s", booking_id)
        return booking_id

    def get_booking(self, booking_id: int) -> BookingRecord:
        self._guard()
        record = self._bookings.get(booking_id)
        if record is None:
            raise CollaboratorError(f"Booking {booking_id} not found", status_code=404)
        return record

    def check_phone(self, phone: str) -> bool:
        self._guard()
        # Guests are indexed by lookup phone; numbers that can't be formatted never match.
        known = {
            to_lookup_phone(record.guest_phone)
            for record in self._bookings.values()
            if phone_error(record.guest_phone) is None
        }
        return phone in known

    def verify_token(self, token: str) -> GuestIdentity:
        self._guard()
        data = self._tokens.get(token)
        if data is None:
            raise TokenInvalidError("Your link has expired.", status_code=401)
        return GuestIdentity.model_validate(data)

    def issue_token(self, name: str, phone: str, booking_id: Optional[int] = None) -> str:
        """Register a token for a guest, optionally tied to an existing booking."""
        token = f"tok-{uuid.uuid4().hex[:8]}"
        self._tokens[token] = {"name": name, "phone": phone, "id": booking_id}
        return token

    def reset(self) -> None:
        """Clear bookings and restore seed tokens. Used by test fixtures for isolation."""
        self.offline = False
        self._bookings.clear()
        self._tokens = {token: dict(data) for token, data in SEED_TOKENS.items()}
        self._next_id = 1001
