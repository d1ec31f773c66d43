"""Integration tests: booking flow + stay validator + in-memory backend together."""

from datetime import date, datetime, time
from decimal import Decimal

import pytest

from hotel_booking.flow.booking_flow import (
    BOOKING_LOOKUP_FAILED,
    PHONE_LOOKUP_FAILED,
    ROOM_FULLY_BOOKED,
    STAY_NOT_CONFIRMED,
    BookingFlow,
)
from hotel_booking.flow.state_machine import BookingFlowState, InvalidTransitionError
from hotel_booking.logging_context import get_session_id
from hotel_booking.tools.errors import CollaboratorError, TokenInvalidError
from tests.conftest import FIXED_NOW, make_draft


def _book_suite(flow: BookingFlow) -> None:
    flow.set_field("room_type", "Suite")
    flow.change_check_in(date(2024, 6, 1))
    flow.set_field("check_out_date", date(2024, 6, 3))
    flow.set_field("check_out_time", time(11, 0))


class TestStart:
    def test_prefills_guest_from_token(self, started_flow):
        assert started_flow.draft.guest_name == "John Smith"
        assert started_flow.draft.guest_phone == "0412345678"
        assert started_flow.state == BookingFlowState.DRAFTING

    def test_issued_token_phone_is_normalized(self, flow, backend):
        flow.start(backend.issue_token("Emma Wilson", "+61 411-222 333"))
        assert flow.draft.guest_phone == "+61411222333"

    def test_phone_edit_is_normalized(self, started_flow):
        started_flow.set_field("guest_phone", "0412 999 000")
        assert started_flow.draft.guest_phone == "0412999000"

    def test_loads_catalog(self, started_flow):
        assert [r.type for r in started_flow.room_types] == ["Standard", "Deluxe", "Suite"]

    def test_sets_session_id(self, started_flow):
        assert get_session_id() == started_flow.session_id

    def test_invalid_token_abandons(self, flow):
        with pytest.raises(TokenInvalidError):
            flow.start("tok-expired")
        assert flow.state == BookingFlowState.ABANDONED

    def test_catalog_failure_is_recoverable(self, flow, backend, monkeypatch):
        def _fail():
            raise CollaboratorError()

        monkeypatch.setattr(backend, "list_room_types", _fail)
        flow.start("tok-john")
        assert flow.room_types == []
        assert flow.last_error is not None
        assert flow.state == BookingFlowState.DRAFTING


class TestHappyPath:
    def test_check_in_rolls_checkout_and_fetches_availability(self, started_flow):
        started_flow.set_field("room_type", "Suite")
        started_flow.change_check_in(date(2024, 6, 1))

        draft = started_flow.draft
        assert draft.check_in.moment() == datetime(2024, 6, 1, 14, 0)
        assert draft.check_out.moment() == datetime(2024, 6, 2, 2, 0)
        assert started_flow.state == BookingFlowState.READY
        assert started_flow.snapshot.available is True
        assert started_flow.snapshot.number_of_days == 1
        assert started_flow.snapshot.estimated_total_price == Decimal("350.00")

    def test_submit_creates_booking(self, started_flow, backend):
        _book_suite(started_flow)
        assert started_flow.can_submit

        outcome = started_flow.submit()
        assert outcome.success
        assert outcome.booking_id == 1001
        assert "1001" in outcome.message
        assert started_flow.state == BookingFlowState.CONFIRMED
        assert backend.get_booking(1001).check_out_date == date(2024, 6, 3)

    def test_price_for_two_nights(self, started_flow):
        _book_suite(started_flow)
        assert started_flow.snapshot.number_of_days == 2
        assert started_flow.snapshot.estimated_total_price == Decimal("700.00")

    def test_guest_count_string_is_coerced(self, started_flow):
        started_flow.set_field("guest_count", "3")
        assert started_flow.draft.guest_count == 3

    def test_selected_room(self, started_flow):
        started_flow.set_field("room_type", "Deluxe")
        assert started_flow.selected_room().price_per_day == Decimal("180.00")


class TestStaleness:
    def test_room_change_discards_snapshot(self, backend):
        flow = BookingFlow(backend, clock=lambda: FIXED_NOW, auto_refresh=False)
        flow.start("tok-john")
        _book_suite(flow)
        flow.refresh_availability()
        assert flow.state == BookingFlowState.READY

        flow.set_field("room_type", "Deluxe")
        assert flow.snapshot is None
        assert flow.state == BookingFlowState.DRAFTING
        assert not flow.can_submit

        outcome = flow.submit()
        assert not outcome.success
        assert outcome.message == STAY_NOT_CONFIRMED

    def test_refresh_after_change_restores_ready(self, backend):
        flow = BookingFlow(backend, clock=lambda: FIXED_NOW, auto_refresh=False)
        flow.start("tok-john")
        _book_suite(flow)
        flow.set_field("room_type", "Deluxe")
        snapshot = flow.refresh_availability()
        assert snapshot.room_type == "Deluxe"
        assert flow.state == BookingFlowState.READY

    def test_non_stay_edit_keeps_snapshot(self, started_flow):
        _book_suite(started_flow)
        snapshot = started_flow.snapshot
        started_flow.set_field("notes", "Late arrival")
        started_flow.set_field("guest_name", "Johnny Smith")
        assert started_flow.snapshot is snapshot
        assert started_flow.state == BookingFlowState.READY

    def test_refresh_without_dates_is_noop(self, started_flow):
        started_flow.set_field("room_type", "Suite")
        assert started_flow.refresh_availability() is None
        assert started_flow.state == BookingFlowState.DRAFTING


class TestBlockedSubmission:
    def test_field_errors_block_and_aggregate(self, started_flow):
        _book_suite(started_flow)
        started_flow.set_field("guest_count", 0)
        outcome = started_flow.submit()
        assert not outcome.success
        assert outcome.field_errors == {"guest_count": "At least 1 guest is required"}
        assert "At least 1 guest is required" in outcome.message
        assert started_flow.state == BookingFlowState.READY

    def test_past_check_in_blocks(self, started_flow):
        started_flow.set_field("room_type", "Standard")
        started_flow.change_check_in(date(2024, 5, 29))
        outcome = started_flow.submit()
        assert "check_in" in outcome.field_errors

    def test_fully_booked_blocks(self, started_flow, backend):
        backend.create_booking(make_draft(room_type="Suite"))
        _book_suite(started_flow)
        assert started_flow.state == BookingFlowState.UNAVAILABLE
        outcome = started_flow.submit()
        assert outcome.message == ROOM_FULLY_BOOKED


class TestCollaboratorFailures:
    def test_availability_failure_discards_snapshot(self, started_flow, backend):
        _book_suite(started_flow)
        backend.offline = True
        started_flow.change_check_in(date(2024, 6, 1), time(15, 0))
        assert started_flow.snapshot is None
        assert started_flow.last_error == "Failed to check availability. Please try again."
        assert started_flow.state == BookingFlowState.DRAFTING

        backend.offline = False
        started_flow.refresh_availability()
        assert started_flow.state == BookingFlowState.READY
        assert started_flow.last_error is None

    def test_submission_network_failure_returns_to_ready(self, started_flow, backend):
        _book_suite(started_flow)
        backend.offline = True
        outcome = started_flow.submit()
        assert not outcome.success
        assert outcome.message == "Failed to save booking. Please try again."
        assert started_flow.state == BookingFlowState.READY
        assert started_flow.snapshot is not None


class TestRaceAtSubmission:
    def test_room_filled_after_check_is_rejected(self, started_flow, backend):
        _book_suite(started_flow)
        assert started_flow.can_submit

        # Another guest takes the only suite after our availability check.
        backend.create_booking(make_draft(room_type="Suite", guest_name="Rival Guest"))

        outcome = started_flow.submit()
        assert not outcome.success
        assert outcome.message == "Room is no longer available for the selected dates"
        assert started_flow.snapshot is None
        assert started_flow.state == BookingFlowState.DRAFTING
        assert started_flow.last_error == outcome.message

    def test_refresh_after_rejection_shows_unavailable(self, started_flow, backend):
        _book_suite(started_flow)
        backend.create_booking(make_draft(room_type="Suite", guest_name="Rival Guest"))
        started_flow.submit()
        started_flow.refresh_availability()
        assert started_flow.state == BookingFlowState.UNAVAILABLE


class TestModifyFlow:
    def _existing(self, backend) -> tuple[int, str]:
        booking_id = backend.create_booking(make_draft(room_type="Standard"))
        token = backend.issue_token("John Smith", "0412345678", booking_id)
        return booking_id, token

    def test_prepopulates_from_reservation(self, flow, backend):
        booking_id, token = self._existing(backend)
        draft = flow.start_modify(token)
        assert draft.booking_id == booking_id
        assert draft.room_type == "Standard"
        assert draft.check_in.moment() == datetime(2024, 6, 1, 14, 0)
        assert draft.check_out.moment() == datetime(2024, 6, 3, 11, 0)
        assert flow.state == BookingFlowState.READY

    def test_modify_submission_updates_reservation(self, flow, backend):
        booking_id, token = self._existing(backend)
        flow.start_modify(token)
        flow.change_check_in(date(2024, 6, 5))
        assert flow.draft.check_out.moment() == datetime(2024, 6, 6, 2, 0)

        outcome = flow.submit()
        assert outcome.success
        assert outcome.message == "Booking modified successfully"
        record = backend.get_booking(booking_id)
        assert record.check_in_date == date(2024, 6, 5)
        assert record.guest_name == "John Smith"

    def test_single_room_type_counts_own_booking_as_free(self, flow, backend):
        booking_id = backend.create_booking(make_draft(room_type="Suite"))
        token = backend.issue_token("John Smith", "0412345678", booking_id)

        flow.start_modify(token)
        assert flow.state == BookingFlowState.READY
        assert flow.snapshot.remaining_rooms == 1

        flow.set_field("guest_count", 2)
        outcome = flow.submit()
        assert outcome.success
        assert backend.get_booking(booking_id).guest_count == 2

    def test_moved_stay_still_sees_other_guests(self, flow, backend):
        booking_id = backend.create_booking(make_draft(room_type="Suite"))
        backend.create_booking(make_draft(
            room_type="Suite",
            check_in=datetime(2024, 6, 10, 14, 0),
            check_out=datetime(2024, 6, 12, 11, 0),
            guest_name="Sarah Johnson",
        ))
        flow.start_modify(backend.issue_token("John Smith", "0412345678", booking_id))

        flow.change_check_in(date(2024, 6, 10))
        assert flow.state == BookingFlowState.UNAVAILABLE
        assert flow.submit().message == ROOM_FULLY_BOOKED

    def test_lookup_failure_is_retryable(self, flow, backend, monkeypatch):
        booking_id, token = self._existing(backend)

        def _fail(_booking_id):
            raise CollaboratorError()

        monkeypatch.setattr(backend, "get_booking", _fail)
        flow.start_modify(token)
        assert flow.state == BookingFlowState.LOADING
        assert flow.last_error == BOOKING_LOOKUP_FAILED

        monkeypatch.undo()
        draft = flow.start_modify(token)
        assert draft.booking_id == booking_id
        assert flow.state == BookingFlowState.READY
        assert flow.last_error is None

    def test_lookup_failure_can_be_abandoned(self, flow, backend, monkeypatch):
        _, token = self._existing(backend)

        def _fail(_booking_id):
            raise CollaboratorError()

        monkeypatch.setattr(backend, "get_booking", _fail)
        flow.start_modify(token)
        flow.abandon()
        assert flow.state == BookingFlowState.ABANDONED

    def test_token_without_booking_is_rejected(self, flow):
        with pytest.raises(TokenInvalidError):
            flow.start_modify("tok-john")
        assert flow.state == BookingFlowState.ABANDONED


class TestEditingRules:
    def test_unknown_field(self, started_flow):
        with pytest.raises(ValueError, match="Unknown field"):
            started_flow.set_field("room_number", "101")

    def test_no_edits_after_confirmation(self, started_flow):
        _book_suite(started_flow)
        started_flow.submit()
        with pytest.raises(InvalidTransitionError):
            started_flow.set_field("notes", "too late")

    def test_no_edits_before_start(self, flow):
        with pytest.raises(InvalidTransitionError):
            flow.change_check_in(date(2024, 6, 1))

    def test_abandon(self, started_flow):
        started_flow.abandon()
        assert started_flow.state == BookingFlowState.ABANDONED


class TestPhoneLookup:
    def test_returning_guest_routes_to_modify(self, flow, backend):
        backend.create_booking(make_draft(room_type="Standard"))
        lookup = flow.lookup_phone("0412345678")
        assert lookup.phone == "910412345678"
        assert lookup.exists
        assert lookup.route == "modify"

    def test_new_guest_routes_to_register(self, flow):
        lookup = flow.lookup_phone("98765 43210")
        assert lookup.phone == "919876543210"
        assert not lookup.exists
        assert lookup.route == "register"

    @pytest.mark.parametrize("raw, message", [
        ("", "Phone number is required."),
        ("12345", "Please enter a valid 10-digit phone number"),
        ("+61412345678", "Please enter a valid 10-digit phone number"),
    ])
    def test_invalid_input_skips_backend(self, flow, backend, monkeypatch, raw, message):
        def _unexpected(_phone):
            raise AssertionError("backend should not be called")

        monkeypatch.setattr(backend, "check_phone", _unexpected)
        lookup = flow.lookup_phone(raw)
        assert lookup.error == message
        assert lookup.route is None

    def test_backend_failure_is_reported(self, flow, backend):
        backend.offline = True
        lookup = flow.lookup_phone("0412345678")
        assert lookup.error == PHONE_LOOKUP_FAILED
        assert flow.last_error == PHONE_LOOKUP_FAILED
        assert flow.state == BookingFlowState.LOADING
