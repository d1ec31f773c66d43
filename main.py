"""
Command-line entry point.

Runs the offline console demo, or checks a stay against the live
reservation backend configured by BACKEND_URL.

Usage:
    Console demo:   python main.py console [--scenario booking]
    Live check:     python main.py check Suite 2024-06-01 14:00 2024-06-03 11:00
"""

import argparse
import logging
import sys
from datetime import datetime
from typing import Optional

from hotel_booking.config import settings
from hotel_booking.schemas.booking_schema import BookingDraft, StayEndpoint
from hotel_booking.tools.backend_client import BackendClient
from hotel_booking.tools.errors import CollaboratorError
from hotel_booking.utils import parse_date, parse_time
from hotel_booking.validation.stay_validator import validate

logger = logging.getLogger(__name__)


def _run_console_mode(scenario: Optional[str]) -> int:
    """Start the offline console demo (no backend required)."""
    from console_demo import ConsoleSession

    session = ConsoleSession()
    if scenario:
        session.run_scenario(scenario)
    else:
        session.run()
    return 0


def _run_check(args: argparse.Namespace, client: Optional[BackendClient] = None) -> int:
    """Validate a stay locally, then ask the live backend about availability."""
    draft = BookingDraft(
        guest_name="availability-check",
        room_type=args.room_type,
        check_in=StayEndpoint(date=parse_date(args.check_in_date),
                              time=parse_time(args.check_in_time)),
        check_out=StayEndpoint(date=parse_date(args.check_out_date),
                               time=parse_time(args.check_out_time)),
    )
    client = client or BackendClient()

    try:
        room_types = client.list_room_types()
    except CollaboratorError as exc:
        logger.warning("Room catalog unavailable: %s", exc.message)
        room_types = None

    result = validate(draft, datetime.now(), room_types)
    if not result.is_valid:
        print(result.summary())
        return 1

    key = draft.stay_key()
    try:
        snapshot = client.check_availability(key.room_type, key.check_in, key.check_out)
    except CollaboratorError as exc:
        print(f"Availability check failed: {exc.message}")
        return 2

    if not snapshot.available:
        print("Fully booked")
        return 1
    print(
        f"{snapshot.remaining_rooms} room(s) available at {settings.api.backend_url}: "
        f"${snapshot.room_price_per_day}/night x {snapshot.number_of_days} "
        f"= ${snapshot.estimated_total_price}"
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=settings.app_name)
    sub = parser.add_subparsers(dest="command", required=True)

    console = sub.add_parser("console", help="Run the offline console demo")
    console.add_argument("--scenario", default=None)

    check = sub.add_parser("check", help="Check a stay against the live backend")
    check.add_argument("room_type")
    check.add_argument("check_in_date")
    check.add_argument("check_in_time")
    check.add_argument("check_out_date")
    check.add_argument("check_out_time")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "console":
        return _run_console_mode(args.scenario)
    return _run_check(args)


if __name__ == "__main__":
    sys.exit(main())
