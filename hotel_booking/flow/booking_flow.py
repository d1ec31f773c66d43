"""
Booking create/modify flow.

Sequences one guest's session around the stay validator:
mutate draft -> revalidate -> refetch availability when the stay key
changes -> submit only when the draft is valid and the freshest
snapshot reports the room available.

Collaborator failures never escape the editing operations; they discard
the snapshot and leave a retryable ``last_error`` for the caller to show.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Callable, Optional, Union

from hotel_booking.logging_context import set_session_id
from hotel_booking.schemas.booking_schema import AvailabilitySnapshot, BookingDraft, StayKey
from hotel_booking.schemas.guest_schema import GuestIdentity
from hotel_booking.schemas.room_schema import RoomType
from hotel_booking.flow.state_machine import (
    BookingFlowState,
    BookingFlowStateMachine,
    FlowTrigger,
    InvalidTransitionError,
)
from hotel_booking.tools.backend_client import BackendClient
from hotel_booking.tools.errors import (
    CollaboratorError,
    SubmissionRejectedError,
    TokenInvalidError,
)
from hotel_booking.tools.mock_backend import MockBackend
from hotel_booking.utils import normalize_phone
from hotel_booking.validation.phone_validator import phone_error, to_lookup_phone
from hotel_booking.validation.stay_validator import (
    ValidationResult,
    find_room_type,
    is_availability_stale,
    is_submittable,
    on_check_in_changed,
    validate,
)

logger = logging.getLogger(__name__)

Backend = Union[BackendClient, MockBackend]

STAY_NOT_CONFIRMED = "Please wait for room availability to be confirmed."
ROOM_FULLY_BOOKED = "The selected room is fully booked for these dates."
BOOKING_LOOKUP_FAILED = "Failed to load booking details. Please try again."
PHONE_LOOKUP_FAILED = "An error occurred while checking the phone number."


@dataclass
class SubmissionOutcome:
    """Result of a submit attempt."""
    success: bool
    message: str
    booking_id: Optional[int] = None
    field_errors: dict[str, str] = field(default_factory=dict)


@dataclass
class PhoneLookup:
    """Result of the returning-guest phone check."""
    phone: Optional[str]
    exists: bool = False
    error: Optional[str] = None

    @property
    def route(self) -> Optional[str]:
        """Where the guest goes next: ``modify`` when on file, else ``register``."""
        if self.error:
            return None
        return "modify" if self.exists else "register"


def _set_guest_name(draft: BookingDraft, value: Any) -> None:
    draft.guest_name = value


def _set_guest_phone(draft: BookingDraft, value: Any) -> None:
    draft.guest_phone = normalize_phone(value) if isinstance(value, str) else value


def _set_room_type(draft: BookingDraft, value: Any) -> None:
    draft.room_type = value


def _set_guest_count(draft: BookingDraft, value: Any) -> None:
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value)
    draft.guest_count = value


def _set_notes(draft: BookingDraft, value: Any) -> None:
    draft.notes = value


def _set_check_out_date(draft: BookingDraft, value: Any) -> None:
    draft.check_out.date = value


def _set_check_out_time(draft: BookingDraft, value: Any) -> None:
    draft.check_out.time = value


FIELD_SETTERS: dict[str, Callable[[BookingDraft, Any], None]] = {
    "guest_name": _set_guest_name,
    "guest_phone": _set_guest_phone,
    "room_type": _set_room_type,
    "guest_count": _set_guest_count,
    "notes": _set_notes,
    "check_out_date": _set_check_out_date,
    "check_out_time": _set_check_out_time,
}


class BookingFlow:
    """
    One guest's booking or modification session.

    The draft is owned here and mutated in place; every stay edit
    invalidates the cached availability snapshot.
    """

    def __init__(
        self,
        backend: Backend,
        clock: Callable[[], datetime] = datetime.now,
        auto_refresh: bool = True,
    ) -> None:
        self.backend = backend
        self.clock = clock
        self.auto_refresh = auto_refresh
        self.sm = BookingFlowStateMachine()
        self.draft = BookingDraft()
        self.room_types: list[RoomType] = []
        self.snapshot: Optional[AvailabilitySnapshot] = None
        self.identity: Optional[GuestIdentity] = None
        self.last_error: Optional[str] = None
        self.session_id = f"BKS-{uuid.uuid4().hex[:8]}"

    @property
    def state(self) -> BookingFlowState:
        return self.sm.current_state

    @property
    def is_modifying(self) -> bool:
        return self.draft.booking_id is not None

    # --- Session start ---

    def _verify(self, token: str) -> GuestIdentity:
        set_session_id(self.session_id)
        try:
            identity = self.backend.verify_token(token)
        except TokenInvalidError:
            logger.info("Token rejected, abandoning flow")
            self.sm.transition(FlowTrigger.TOKEN_REJECTED)
            raise
        self.identity = identity
        return identity

    def _load_catalog(self) -> None:
        try:
            self.room_types = self.backend.list_room_types()
        except CollaboratorError as exc:
            logger.warning("Room catalog unavailable: %s", exc.message)
            self.room_types = []
            self.last_error = "Failed to load room types. Please try again later."

    def lookup_phone(self, raw: str) -> PhoneLookup:
        """
        Decide whether a caller is a returning guest before any token exists.

        Invalid input and backend failures come back on ``PhoneLookup.error``
        (the latter also on ``last_error``); the flow state is untouched.
        """
        set_session_id(self.session_id)
        error = phone_error(raw)
        if error:
            return PhoneLookup(phone=None, error=error)

        phone = to_lookup_phone(raw)
        try:
            exists = self.backend.check_phone(phone)
        except CollaboratorError as exc:
            logger.warning("Phone lookup failed: %s", exc.message)
            self.last_error = PHONE_LOOKUP_FAILED
            return PhoneLookup(phone=phone, error=PHONE_LOOKUP_FAILED)

        self.last_error = None
        logger.info("Phone lookup: %s", "returning guest" if exists else "new guest")
        return PhoneLookup(phone=phone, exists=exists)

    def start(self, token: str) -> BookingDraft:
        """Begin a new booking for the guest the token identifies."""
        identity = self._verify(token)
        self._load_catalog()
        self.draft.guest_name = identity.guest_name
        self.draft.guest_phone = normalize_phone(identity.guest_phone)
        self.sm.transition(FlowTrigger.IDENTITY_VERIFIED)
        logger.info("Booking flow started for %s", identity.guest_name)
        return self.draft

    def start_modify(self, token: str) -> BookingDraft:
        """Begin modifying the reservation the token is tied to."""
        identity = self._verify(token)
        if identity.existing_booking_id is None:
            self.sm.transition(FlowTrigger.TOKEN_REJECTED)
            raise TokenInvalidError("This link is not tied to an existing booking.")

        try:
            record = self.backend.get_booking(identity.existing_booking_id)
        except CollaboratorError as exc:
            # Stay in LOADING so the caller can retry start_modify or abandon.
            logger.warning("Booking lookup failed: %s", exc.message)
            self.last_error = BOOKING_LOOKUP_FAILED
            return self.draft

        self.last_error = None
        self._load_catalog()
        self.draft = record.to_draft()
        self.sm.transition(FlowTrigger.IDENTITY_VERIFIED)
        logger.info("Modify flow started for booking %s", record.id)
        if self.auto_refresh:
            self.refresh_availability()
        return self.draft

    # --- Draft edits ---

    def _require_editable(self) -> None:
        if not self.sm.is_editable():
            raise InvalidTransitionError(
                f"Draft cannot be edited in state '{self.state.value}'"
            )

    def set_field(self, name: str, value: Any) -> BookingDraft:
        """Set one draft field. Stay fields invalidate the availability snapshot."""
        setter = FIELD_SETTERS.get(name)
        if setter is None:
            raise ValueError(f"Unknown field: {name}")
        self._require_editable()
        old_key = self.draft.stay_key()
        setter(self.draft, value)
        self._after_edit(old_key)
        return self.draft

    def change_check_in(self, new_date: Optional[date],
                        new_time: Optional[time] = None) -> BookingDraft:
        """Apply a check-in change, rolling checkout forward as needed."""
        self._require_editable()
        old_key = self.draft.stay_key()
        self.draft = on_check_in_changed(self.draft, new_date, new_time)
        self._after_edit(old_key)
        return self.draft

    def _after_edit(self, old_key: Optional[StayKey]) -> None:
        new_key = self.draft.stay_key()
        if new_key == old_key and new_key is not None:
            return
        if self.snapshot is not None:
            logger.debug("Stay changed, discarding availability snapshot")
        self.snapshot = None
        if self.state != BookingFlowState.DRAFTING:
            self.sm.transition(FlowTrigger.STAY_CHANGED)
        if self.auto_refresh and new_key is not None:
            self.refresh_availability()

    # --- Availability ---

    def refresh_availability(self) -> Optional[AvailabilitySnapshot]:
        """Fetch a fresh snapshot for the current stay key."""
        self._require_editable()
        key = self.draft.stay_key()
        if key is None or not self.draft.room_type.strip():
            self.snapshot = None
            return None

        if self.state != BookingFlowState.DRAFTING:
            self.sm.transition(FlowTrigger.STAY_CHANGED)
        self.sm.transition(FlowTrigger.AVAILABILITY_REQUESTED)
        try:
            snapshot = self.backend.check_availability(
                key.room_type, key.check_in, key.check_out,
                exclude_booking_id=self.draft.booking_id,
            )
        except CollaboratorError as exc:
            logger.warning("Availability check failed: %s", exc.message)
            self.snapshot = None
            self.last_error = "Failed to check availability. Please try again."
            self.sm.transition(FlowTrigger.AVAILABILITY_FAILED)
            return None

        self.snapshot = snapshot
        self.last_error = None
        if snapshot.available:
            self.sm.transition(FlowTrigger.ROOM_AVAILABLE)
        else:
            self.sm.transition(FlowTrigger.ROOM_UNAVAILABLE)
        logger.info(
            "Availability for %s: %s (%d remaining)",
            key.room_type, snapshot.available, snapshot.remaining_rooms,
        )
        return snapshot

    # --- Validation & submission ---

    def _catalog(self) -> Optional[list[RoomType]]:
        # Membership is left to the backend when the catalog failed to load.
        return self.room_types or None

    def validate(self) -> ValidationResult:
        return validate(self.draft, self.clock(), self._catalog())

    def selected_room(self) -> Optional[RoomType]:
        return find_room_type(self.room_types, self.draft.room_type)

    @property
    def can_submit(self) -> bool:
        return self.state == BookingFlowState.READY and is_submittable(
            self.draft, self.snapshot, self.clock(), self._catalog()
        )

    def submit(self) -> SubmissionOutcome:
        """
        Submit the draft when it is valid and availability is confirmed.

        Returns:
            SubmissionOutcome. A blocked or rejected submission is reported
            here, never raised.
        """
        result = self.validate()
        if not result.is_valid:
            return SubmissionOutcome(
                success=False, message=result.summary(), field_errors=result.field_errors
            )
        if is_availability_stale(self.snapshot, self.draft):
            return SubmissionOutcome(success=False, message=STAY_NOT_CONFIRMED)
        if not self.snapshot.available:
            return SubmissionOutcome(success=False, message=ROOM_FULLY_BOOKED)
        if self.state != BookingFlowState.READY:
            return SubmissionOutcome(success=False, message=STAY_NOT_CONFIRMED)

        modifying = self.is_modifying
        self.sm.transition(FlowTrigger.SUBMIT)
        try:
            if modifying:
                booking_id = self.backend.modify_booking(self.draft.booking_id, self.draft)
            else:
                booking_id = self.backend.create_booking(self.draft)
        except SubmissionRejectedError as exc:
            logger.info("Submission rejected: %s", exc.message)
            self.snapshot = None
            self.last_error = exc.message
            self.sm.transition(FlowTrigger.SUBMISSION_REJECTED)
            return SubmissionOutcome(success=False, message=exc.message)
        except CollaboratorError as exc:
            logger.warning("Submission failed: %s", exc.message)
            self.last_error = "Failed to save booking. Please try again."
            self.sm.transition(FlowTrigger.SUBMISSION_FAILED)
            return SubmissionOutcome(success=False, message=self.last_error)

        self.draft.booking_id = booking_id
        self.last_error = None
        self.sm.transition(FlowTrigger.SUBMISSION_ACCEPTED)
        logger.info("Booking %s submitted", booking_id)
        message = (
            "Booking modified successfully" if modifying
            else f"Booking confirmed. Reference number: {booking_id}."
        )
        return SubmissionOutcome(success=True, message=message, booking_id=booking_id)

    def abandon(self) -> None:
        self.sm.transition(FlowTrigger.ABANDON)
        logger.info("Booking flow abandoned")
