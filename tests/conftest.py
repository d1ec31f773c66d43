"""Shared test fixtures and helpers."""

from datetime import datetime, time
from typing import Optional

import pytest

from hotel_booking.flow.booking_flow import BookingFlow
from hotel_booking.flow.state_machine import BookingFlowStateMachine
from hotel_booking.schemas.booking_schema import BookingDraft, StayEndpoint
from hotel_booking.tools.mock_backend import MockBackend

FIXED_NOW = datetime(2024, 5, 30, 9, 0)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def backend():
    return MockBackend()


@pytest.fixture
def room_types(backend):
    return backend.list_room_types()


@pytest.fixture
def state_machine():
    return BookingFlowStateMachine()


@pytest.fixture
def flow(backend):
    return BookingFlow(backend, clock=lambda: FIXED_NOW)


@pytest.fixture
def started_flow(flow):
    flow.start("tok-john")
    return flow


def make_draft(
    room_type: str = "Suite",
    check_in: Optional[datetime] = datetime(2024, 6, 1, 14, 0),
    check_out: Optional[datetime] = datetime(2024, 6, 3, 11, 0),
    guest_name: str = "John Smith",
    guest_count: int = 1,
) -> BookingDraft:
    """Helper to create a BookingDraft with sensible defaults."""
    return BookingDraft(
        guest_name=guest_name,
        guest_phone="0412345678",
        room_type=room_type,
        check_in=_endpoint(check_in, time(14, 0)),
        check_out=_endpoint(check_out, time(11, 0)),
        guest_count=guest_count,
    )


def _endpoint(moment: Optional[datetime], default_time: time) -> StayEndpoint:
    if moment is None:
        return StayEndpoint(date=None, time=default_time)
    return StayEndpoint(date=moment.date(), time=moment.time())
