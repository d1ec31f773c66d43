"""Booking draft, stay key and availability data models."""

import copy
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from hotel_booking.config import settings
from hotel_booking.utils import combine, format_time, parse_time


def _default_check_in_time() -> time:
    return parse_time(settings.stay.default_check_in_time)


def _default_check_out_time() -> time:
    return parse_time(settings.stay.default_check_out_time)


@dataclass
class StayEndpoint:
    """One end of a stay: a calendar date plus a wall-clock time."""
    date: Optional[date] = None
    time: time = field(default_factory=_default_check_in_time)

    def moment(self) -> Optional[datetime]:
        return combine(self.date, self.time)


@dataclass(frozen=True)
class StayKey:
    """The (room type, check-in, check-out) triple an availability snapshot is keyed to."""
    room_type: str
    check_in: datetime
    check_out: datetime


@dataclass
class BookingDraft:
    """
    Mutable booking form state owned by the calling flow.

    Created empty for a new booking, or pre-populated from an existing
    reservation when modifying. Revalidated after every mutation.
    """
    guest_name: str = ""
    guest_phone: str = ""
    room_type: str = ""
    check_in: StayEndpoint = field(
        default_factory=lambda: StayEndpoint(time=_default_check_in_time())
    )
    check_out: StayEndpoint = field(
        default_factory=lambda: StayEndpoint(time=_default_check_out_time())
    )
    guest_count: int = 1
    notes: Optional[str] = None
    booking_id: Optional[int] = None

    def stay_key(self) -> Optional[StayKey]:
        """Return the keying triple, or None while either date is unset."""
        check_in = self.check_in.moment()
        check_out = self.check_out.moment()
        if check_in is None or check_out is None:
            return None
        return StayKey(room_type=self.room_type, check_in=check_in, check_out=check_out)

    def copy(self) -> "BookingDraft":
        return copy.deepcopy(self)

    def to_payload(self) -> dict[str, Any]:
        """Render the backend's camelCase request body."""
        return {
            "name": self.guest_name,
            "phone": self.guest_phone,
            "roomType": self.room_type,
            "checkInDate": self.check_in.date.isoformat() if self.check_in.date else "",
            "checkInTime": format_time(self.check_in.time),
            "checkOutDate": self.check_out.date.isoformat() if self.check_out.date else "",
            "checkOutTime": format_time(self.check_out.time),
            "guestCount": self.guest_count,
            "notes": self.notes or "",
        }


class AvailabilitySnapshot(BaseModel):
    """Point-in-time availability for one exact stay key. Immutable."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    room_type: str
    check_in: datetime
    check_out: datetime
    available: bool
    remaining_rooms: int = Field(ge=0, alias="remainingRooms")
    room_price_per_day: Decimal = Field(alias="roomPricePerDay")
    estimated_total_price: Decimal = Field(alias="estimatedTotalPrice")
    number_of_days: int = Field(ge=1, alias="numberOfDays")

    @property
    def key(self) -> StayKey:
        return StayKey(
            room_type=self.room_type, check_in=self.check_in, check_out=self.check_out
        )

    @classmethod
    def from_response(cls, key: StayKey, payload: dict[str, Any]) -> "AvailabilitySnapshot":
        """Build a snapshot from the backend's availability payload for ``key``."""
        return cls.model_validate({
            **payload,
            "room_type": key.room_type,
            "check_in": key.check_in,
            "check_out": key.check_out,
        })


class BookingRecord(BaseModel):
    """Existing reservation as stored by the backend."""
    id: int
    room_type: str
    check_in_date: date
    check_in_time: time
    check_out_date: date
    check_out_time: time
    guest_count: int = 1
    total_price: Optional[Decimal] = None
    notes: Optional[str] = None
    guest_name: str = ""
    guest_phone: str = ""

    def to_draft(self) -> BookingDraft:
        """Pre-populate a draft for the modify flow."""
        return BookingDraft(
            guest_name=self.guest_name,
            guest_phone=self.guest_phone,
            room_type=self.room_type,
            check_in=StayEndpoint(date=self.check_in_date, time=self.check_in_time),
            check_out=StayEndpoint(date=self.check_out_date, time=self.check_out_time),
            guest_count=self.guest_count,
            notes=self.notes or "",
            booking_id=self.id,
        )
