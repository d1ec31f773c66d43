"""
Offline console demo: runs a full booking session without a backend server.

Drives the real booking flow, stay validator, and state machine against
the in-memory backend. Commands edit the draft the way the booking form
would, and every edit prints the revalidated state.

Usage:
    python console_demo.py
    python console_demo.py --scenario booking
    python console_demo.py --scenario race
"""

import argparse
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from hotel_booking.config import settings
from hotel_booking.flow.booking_flow import BookingFlow, SubmissionOutcome
from hotel_booking.flow.state_machine import InvalidTransitionError
from hotel_booking.schemas.booking_schema import BookingDraft
from hotel_booking.tools.errors import CollaboratorError
from hotel_booking.tools.mock_backend import MockBackend
from hotel_booking.utils import format_time, parse_date, parse_time
from hotel_booking.validation.stay_validator import min_checkout_for

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

HELP_TEXT = (
    "Commands: room <type> | checkin <date> [HH:MM] | checkout <date> <HH:MM> | "
    "guests <n> | name <text> | notes <text> | phone <number> | check | submit | quit\n"
    "Dates are YYYY-MM-DD or +N (days from today)."
)


class ConsoleSession:
    """Drives one booking flow from typed or scripted commands."""

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "booking": [
            "room Deluxe",
            "checkin +3",
            "guests 2",
            "notes Late arrival",
            "submit",
        ],
        "short-stay": [
            "room Standard",
            "checkin +2 10:00",
            "checkout +2 18:00",
            "submit",
            "checkout +3 10:00",
            "submit",
        ],
        "race": [
            "room Suite",
            "checkin +5",
            "checkout +7 11:00",
            "rival",
            "submit",
        ],
    }

    def __init__(
        self,
        backend: Optional[MockBackend] = None,
        clock: Callable[[], datetime] = datetime.now,
        token: str = "tok-john",
    ) -> None:
        self.backend = backend or MockBackend()
        self.clock = clock
        self.token = token
        self.flow = BookingFlow(self.backend, clock=clock)
        self.outcome: Optional[SubmissionOutcome] = None

    def say(self, text: str) -> None:
        print(f"{GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _parse_day(self, value: str) -> date:
        if value.startswith("+"):
            return self.clock().date() + timedelta(days=int(value[1:]))
        return parse_date(value)

    def _describe(self, draft: BookingDraft) -> str:
        def fmt(endpoint) -> str:
            if endpoint.date is None:
                return "unset"
            return f"{endpoint.date.isoformat()} {format_time(endpoint.time)}"
        return (
            f"{draft.room_type or '(no room)'}: {fmt(draft.check_in)} -> "
            f"{fmt(draft.check_out)}, {draft.guest_count} guest(s)"
        )

    def _show_state(self) -> None:
        self.system_log(self._describe(self.flow.draft))
        result = self.flow.validate()
        for name, message in result.field_errors.items():
            print(f"{YELLOW}  ! {name}: {message}{RESET}")
        snapshot = self.flow.snapshot
        if snapshot is not None:
            if snapshot.available:
                self.system_log(
                    f"{snapshot.remaining_rooms} room(s) available, "
                    f"${snapshot.room_price_per_day}/night x {snapshot.number_of_days} "
                    f"= ${snapshot.estimated_total_price}"
                )
            else:
                self.system_log("Fully booked")
        if self.flow.last_error:
            print(f"{RED}  {self.flow.last_error}{RESET}")
        self.system_log(f"State: {self.flow.state.value}")
        if self.flow.can_submit:
            self.say("Ready to submit")

    def start(self) -> None:
        self.flow.start(self.token)
        rooms = ", ".join(f"{r.type} (${r.price_per_day})" for r in self.flow.room_types)
        self.say(f"Welcome {self.flow.draft.guest_name}. Rooms: {rooms}")

    def _process_input(self, text: str) -> None:
        command, _, rest = text.strip().partition(" ")
        args = rest.split()
        command = command.lower()

        if command == "room":
            self.flow.set_field("room_type", rest.strip())
        elif command == "checkin":
            new_time = parse_time(args[1]) if len(args) > 1 else None
            self.flow.change_check_in(self._parse_day(args[0]), new_time)
            earliest = min_checkout_for(self.flow.draft)
            if earliest is not None:
                self.system_log(f"Earliest checkout: {earliest:%Y-%m-%d %H:%M}")
        elif command == "checkout":
            self.flow.set_field("check_out_date", self._parse_day(args[0]))
            self.flow.set_field("check_out_time", parse_time(args[1]))
        elif command == "guests":
            self.flow.set_field("guest_count", rest.strip())
        elif command == "name":
            self.flow.set_field("guest_name", rest.strip())
        elif command == "notes":
            self.flow.set_field("notes", rest.strip())
        elif command == "phone":
            self._lookup_phone(rest.strip())
            return
        elif command == "check":
            self.flow.refresh_availability()
        elif command == "rival":
            self._book_rival()
        elif command == "submit":
            self._submit()
            return
        else:
            self.say(HELP_TEXT)
            return
        self._show_state()

    def _lookup_phone(self, raw: str) -> None:
        lookup = self.flow.lookup_phone(raw)
        if lookup.error:
            print(f"{RED}{lookup.error}{RESET}")
        elif lookup.exists:
            self.say(f"Phone number found! A booking for {lookup.phone} can be modified.")
        else:
            self.say(f"Phone number not found. {lookup.phone} can register a new booking.")

    def _book_rival(self) -> None:
        """Another guest takes the last matching room after our availability check."""
        rival = self.flow.draft.copy()
        rival.guest_name = "Rival Guest"
        rival.booking_id = None
        self.backend.create_booking(rival)
        self.system_log("Another guest just booked the same room type for these dates")

    def _submit(self) -> None:
        self.outcome = self.flow.submit()
        if self.outcome.success:
            self.say(self.outcome.message)
        else:
            print(f"{RED}{self.outcome.message}{RESET}")
        self.system_log(f"State: {self.flow.state.value}")

    def run_scenario(self, scenario: str) -> Optional[SubmissionOutcome]:
        """Auto-play a pre-scripted scenario and return the last submission outcome."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return None

        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  HOTEL BOOKING - Scenario: {scenario}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        self.start()

        for step in steps:
            if self.flow.sm.is_terminal():
                break
            print(f"\n{BLUE}[Guest] {RESET}{step}")
            self._process_input(step)

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{DIM}  State trace: {' -> '.join(self.flow.sm.get_state_trace())}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        return self.outcome

    def run(self) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  HOTEL BOOKING - Console Demo ({settings.app_name}){RESET}")
        print(f"{BOLD}  Type 'help' for commands, 'quit' to exit{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        self.start()

        while not self.flow.sm.is_terminal():
            user_input = input(f"\n{BLUE}[Guest] {RESET}").strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                self.flow.abandon()
                print(f"\n{DIM}Session ended.{RESET}")
                break
            try:
                self._process_input(user_input)
            except (ValueError, IndexError) as exc:
                print(f"{RED}Could not read that: {exc}{RESET}")
                self.say(HELP_TEXT)
            except (CollaboratorError, InvalidTransitionError) as exc:
                print(f"{RED}{exc}{RESET}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main()
