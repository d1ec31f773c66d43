"""
HTTP client for the reservation backend.

Covers the collaborators the booking flow talks to: room-type catalog,
availability, reservation submission, booking lookup, and token
verification. Every transport or server failure is translated into the
``hotel_booking.tools.errors`` taxonomy so callers never see ``requests``
exceptions.
"""

import logging
from datetime import datetime
from typing import Any, Optional

import requests
from pydantic import ValidationError

from hotel_booking.config import settings
from hotel_booking.schemas.booking_schema import (
    AvailabilitySnapshot,
    BookingDraft,
    BookingRecord,
    StayKey,
)
from hotel_booking.schemas.guest_schema import GuestIdentity
from hotel_booking.schemas.room_schema import RoomType
from hotel_booking.tools.errors import (
    CollaboratorError,
    SubmissionRejectedError,
    TokenInvalidError,
)

logger = logging.getLogger(__name__)

REJECTION_STATUSES = {400, 409, 422}
TOKEN_REJECTION_STATUSES = {401, 403, 404}


def _error_message(response: requests.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            if isinstance(body.get(key), str) and body[key]:
                return body[key]
    return default


class BackendClient:
    """Thin wrapper over a ``requests.Session`` bound to the backend base URL."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or settings.api.backend_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.api.request_timeout_sec
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise CollaboratorError() from exc
        logger.debug("%s %s -> %s", method, path, response.status_code)
        return response

    @staticmethod
    def _json(response: requests.Response) -> Any:
        if response.status_code >= 400:
            raise CollaboratorError(
                _error_message(response, "Something went wrong. Please try again."),
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise CollaboratorError("Unexpected response from server.") from exc

    def list_room_types(self) -> list[RoomType]:
        """Fetch the room-type catalog."""
        payload = self._json(self._request("GET", "/api/room-types"))
        try:
            return [RoomType.model_validate(item) for item in payload]
        except (ValidationError, TypeError) as exc:
            raise CollaboratorError("Failed to load room types. Please try again later.") from exc

    def check_availability(
        self,
        room_type: str,
        check_in: datetime,
        check_out: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> AvailabilitySnapshot:
        """Ask the backend for availability of one exact stay key.

        ``exclude_booking_id`` leaves the guest's own reservation out of the
        occupancy count while that reservation is being modified.
        """
        key = StayKey(room_type=room_type, check_in=check_in, check_out=check_out)
        body: dict[str, Any] = {
            "roomType": room_type,
            "checkInDate": check_in.date().isoformat(),
            "checkInTime": check_in.strftime("%H:%M"),
            "checkOutDate": check_out.date().isoformat(),
            "checkOutTime": check_out.strftime("%H:%M"),
        }
        if exclude_booking_id is not None:
            body["excludeBookingId"] = exclude_booking_id
        payload = self._json(self._request("POST", "/api/rooms/availability", json=body))
        try:
            return AvailabilitySnapshot.from_response(key, payload)
        except (ValidationError, TypeError) as exc:
            raise CollaboratorError("Failed to check availability. Please try again.") from exc

    def _submit(self, method: str, path: str, body: dict[str, Any]) -> Any:
        response = self._request(method, path, json=body)
        if response.status_code in REJECTION_STATUSES:
            message = _error_message(response, "The booking could not be completed.")
            logger.info("Submission rejected (%s): %s", response.status_code, message)
            raise SubmissionRejectedError(message, status_code=response.status_code)
        return self._json(response)

    def create_booking(self, draft: BookingDraft) -> int:
        """Submit a new reservation and return its booking id."""
        payload = self._submit("POST", "/api/bookings", draft.to_payload())
        booking_id = payload.get("bookingId") if isinstance(payload, dict) else None
        if booking_id is None:
            raise CollaboratorError("Failed to create booking. Please try again.")
        return int(booking_id)

    def modify_booking(self, booking_id: int, draft: BookingDraft) -> int:
        """Update an existing reservation's stay and guest details."""
        body = draft.to_payload()
        body.pop("name")
        body.pop("phone")
        self._submit("PATCH", f"/api/bookings/{booking_id}", body)
        return booking_id

    def get_booking(self, booking_id: int) -> BookingRecord:
        payload = self._json(self._request("GET", f"/api/bookings/{booking_id}"))
        try:
            return BookingRecord.model_validate(payload)
        except ValidationError as exc:
            raise CollaboratorError("Failed to load booking details.") from exc

    def check_phone(self, phone: str) -> bool:
        """Whether a guest is already on file under a lookup-formatted phone."""
        payload = self._json(self._request("GET", f"/check-phone/{phone}"))
        if not isinstance(payload, dict) or not isinstance(payload.get("exists"), bool):
            raise CollaboratorError("Unexpected response from server.")
        return payload["exists"]

    def verify_token(self, token: str) -> GuestIdentity:
        """Resolve an access token to the guest it was issued for."""
        if not token:
            raise TokenInvalidError("Missing access token.")
        response = self._request("GET", "/validate-token", params={"token": token})
        if response.status_code in TOKEN_REJECTION_STATUSES:
            raise TokenInvalidError(
                _error_message(response, "Your link has expired."),
                status_code=response.status_code,
            )
        payload = self._json(response)
        try:
            return GuestIdentity.model_validate(payload)
        except ValidationError as exc:
            raise CollaboratorError("Unexpected response from server.") from exc
