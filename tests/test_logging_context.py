"""Tests for booking-session ids in log output."""

import io
import logging

import pytest

from hotel_booking.flow.booking_flow import BookingFlow
from hotel_booking.logging_context import (
    LOG_FORMAT,
    NO_SESSION,
    SessionIdFilter,
    get_session_id,
    install_session_filter,
    session_scope,
)
from tests.conftest import FIXED_NOW


@pytest.fixture
def captured():
    """StringIO handler formatted with LOG_FORMAT and carrying the session filter."""
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    install_session_filter([handler])
    return stream, handler


def _attach(name: str, handler: logging.Handler) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    return logger


class TestSessionScope:
    def test_scope_restores_previous_id(self):
        before = get_session_id()
        with session_scope("BKS-scoped"):
            assert get_session_id() == "BKS-scoped"
        assert get_session_id() == before

    def test_filter_keeps_existing_attribute(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        record.session_id = "BKS-upstream"
        with session_scope("BKS-other"):
            SessionIdFilter().filter(record)
        assert record.session_id == "BKS-upstream"

    def test_filter_installed_once_per_handler(self):
        handler = logging.NullHandler()
        install_session_filter([handler])
        install_session_filter([handler])
        assert len([f for f in handler.filters if isinstance(f, SessionIdFilter)]) == 1


class TestFormattedOutput:
    def test_session_id_rendered(self, captured):
        stream, handler = captured
        logger = _attach("hotel_booking.tests.rendered", handler)
        try:
            with session_scope("BKS-render01"):
                logger.info("availability refreshed")
        finally:
            logger.removeHandler(handler)
        assert "[BKS-render01] INFO: availability refreshed" in stream.getvalue()

    def test_placeholder_outside_a_session(self, captured):
        stream, handler = captured
        logger = _attach("hotel_booking.tests.placeholder", handler)
        try:
            with session_scope(NO_SESSION):
                logger.info("startup")
        finally:
            logger.removeHandler(handler)
        assert f"[{NO_SESSION}] INFO: startup" in stream.getvalue()

    def test_flow_records_carry_its_session(self, captured, backend):
        stream, handler = captured
        logger = _attach("hotel_booking.flow.booking_flow", handler)
        flow = BookingFlow(backend, clock=lambda: FIXED_NOW)
        try:
            flow.start("tok-john")
        finally:
            logger.removeHandler(handler)
        assert f"[{flow.session_id}] INFO: Booking flow started for John Smith" in stream.getvalue()
