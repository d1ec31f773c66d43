"""Tests for the scripted console scenarios."""

import pytest

from console_demo import ConsoleSession
from hotel_booking.flow.state_machine import BookingFlowState
from tests.conftest import FIXED_NOW, make_draft


@pytest.fixture
def session(backend):
    return ConsoleSession(backend=backend, clock=lambda: FIXED_NOW)


class TestScenarios:
    def test_booking_scenario_confirms(self, session):
        outcome = session.run_scenario("booking")
        assert outcome.success
        assert outcome.message == "Booking confirmed. Reference number: 1001."
        assert session.flow.state == BookingFlowState.CONFIRMED
        assert session.flow.draft.guest_count == 2

    def test_short_stay_scenario_recovers(self, session):
        outcome = session.run_scenario("short-stay")
        assert outcome.success
        record = session.backend.get_booking(outcome.booking_id)
        assert record.check_out_time.hour == 10

    def test_race_scenario_is_rejected(self, session):
        outcome = session.run_scenario("race")
        assert not outcome.success
        assert outcome.message == "Room is no longer available for the selected dates"
        assert session.flow.state == BookingFlowState.DRAFTING
        assert session.flow.snapshot is None

    def test_unknown_scenario(self, session, capsys):
        assert session.run_scenario("nonexistent") is None
        assert "Unknown scenario" in capsys.readouterr().out

    def test_state_trace_printed(self, session, capsys):
        session.run_scenario("booking")
        assert "State trace: loading -> drafting" in capsys.readouterr().out


class TestInteractive:
    def test_quit_abandons_flow(self, session, monkeypatch):
        inputs = iter(["room Suite", "bogus", "checkin not-a-date", "quit"])
        monkeypatch.setattr("builtins.input", lambda _prompt="": next(inputs))
        session.run()
        assert session.flow.state == BookingFlowState.ABANDONED
        assert session.flow.draft.room_type == "Suite"

    def test_phone_lookup_command(self, session, capsys):
        session.backend.create_booking(make_draft(room_type="Standard"))
        session._process_input("phone 0412345678")
        session._process_input("phone 12345")
        out = capsys.readouterr().out
        assert "Phone number found! A booking for 910412345678 can be modified." in out
        assert "Please enter a valid 10-digit phone number" in out

    def test_relative_day(self, session):
        assert session._parse_day("+3").isoformat() == "2024-06-02"
        assert session._parse_day("2024-07-01").isoformat() == "2024-07-01"
