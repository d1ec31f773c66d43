"""
Finite state machine for the booking create/modify flow.

Makes the sequencing explicit: mutate the draft, revalidate, refetch
availability when the stay key changes, and allow submission only from
READY. Any move not listed in TRANSITIONS is rejected.

Usage:
    sm = BookingFlowStateMachine()
    sm.transition(FlowTrigger.IDENTITY_VERIFIED)
    assert sm.current_state == BookingFlowState.DRAFTING
"""

import logging
from enum import Enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)


class BookingFlowState(str, Enum):
    """All states a booking flow can be in."""
    LOADING = "loading"
    DRAFTING = "drafting"
    AVAILABILITY_PENDING = "availability_pending"
    READY = "ready"
    UNAVAILABLE = "unavailable"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"
    ABANDONED = "abandoned"


class FlowTrigger(str, Enum):
    """Events that cause state transitions."""
    IDENTITY_VERIFIED = "identity_verified"
    TOKEN_REJECTED = "token_rejected"
    AVAILABILITY_REQUESTED = "availability_requested"
    ROOM_AVAILABLE = "room_available"
    ROOM_UNAVAILABLE = "room_unavailable"
    AVAILABILITY_FAILED = "availability_failed"
    STAY_CHANGED = "stay_changed"
    SUBMIT = "submit"
    SUBMISSION_ACCEPTED = "submission_accepted"
    SUBMISSION_REJECTED = "submission_rejected"
    SUBMISSION_FAILED = "submission_failed"
    ABANDON = "abandon"


@dataclass
class Transition:
    """A single valid state transition."""
    from_state: BookingFlowState
    to_state: BookingFlowState
    trigger: FlowTrigger


@dataclass
class StateEntry:
    """Recorded history entry for a state visit."""
    state: BookingFlowState
    entered_at: datetime
    trigger: Optional[FlowTrigger] = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current state."""


_EDITABLE = (
    BookingFlowState.DRAFTING,
    BookingFlowState.AVAILABILITY_PENDING,
    BookingFlowState.READY,
    BookingFlowState.UNAVAILABLE,
)


class BookingFlowStateMachine:
    """Deterministic state machine controlling one booking flow."""

    TRANSITIONS: list[Transition] = [
        # --- Token verification ---
        Transition(BookingFlowState.LOADING, BookingFlowState.DRAFTING,
                   FlowTrigger.IDENTITY_VERIFIED),
        Transition(BookingFlowState.LOADING, BookingFlowState.ABANDONED,
                   FlowTrigger.TOKEN_REJECTED),

        # --- Availability ---
        Transition(BookingFlowState.DRAFTING, BookingFlowState.AVAILABILITY_PENDING,
                   FlowTrigger.AVAILABILITY_REQUESTED),
        Transition(BookingFlowState.AVAILABILITY_PENDING, BookingFlowState.READY,
                   FlowTrigger.ROOM_AVAILABLE),
        Transition(BookingFlowState.AVAILABILITY_PENDING, BookingFlowState.UNAVAILABLE,
                   FlowTrigger.ROOM_UNAVAILABLE),
        Transition(BookingFlowState.AVAILABILITY_PENDING, BookingFlowState.DRAFTING,
                   FlowTrigger.AVAILABILITY_FAILED),

        # --- Stay edits invalidate the snapshot ---
        *[
            Transition(state, BookingFlowState.DRAFTING, FlowTrigger.STAY_CHANGED)
            for state in _EDITABLE
        ],

        # --- Submission ---
        Transition(BookingFlowState.READY, BookingFlowState.SUBMITTING,
                   FlowTrigger.SUBMIT),
        Transition(BookingFlowState.SUBMITTING, BookingFlowState.CONFIRMED,
                   FlowTrigger.SUBMISSION_ACCEPTED),
        Transition(BookingFlowState.SUBMITTING, BookingFlowState.DRAFTING,
                   FlowTrigger.SUBMISSION_REJECTED),
        Transition(BookingFlowState.SUBMITTING, BookingFlowState.READY,
                   FlowTrigger.SUBMISSION_FAILED),

        # --- Abandon ---
        *[
            Transition(state, BookingFlowState.ABANDONED, FlowTrigger.ABANDON)
            for state in (BookingFlowState.LOADING, *_EDITABLE)
        ],
    ]

    def __init__(self) -> None:
        self._current_state = BookingFlowState.LOADING
        self._history: list[StateEntry] = [
            StateEntry(state=BookingFlowState.LOADING, entered_at=datetime.now(timezone.utc))
        ]

    @property
    def current_state(self) -> BookingFlowState:
        return self._current_state

    def transition(self, trigger: FlowTrigger) -> BookingFlowState:
        """
        Execute a state transition.

        Args:
            trigger: The event triggering the transition.

        Returns:
            The new flow state.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                old_state = self._current_state
                self._current_state = t.to_state
                self._history.append(StateEntry(
                    state=self._current_state,
                    entered_at=datetime.now(timezone.utc),
                    trigger=trigger,
                ))
                logger.debug(
                    "Flow transition: %s -> %s (trigger: %s)",
                    old_state.value, self._current_state.value, trigger.value,
                )
                return self._current_state

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def can(self, trigger: FlowTrigger) -> bool:
        return trigger in self.get_valid_triggers()

    def get_valid_triggers(self) -> list[FlowTrigger]:
        """Return all triggers valid from the current state."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

    def get_history(self) -> list[StateEntry]:
        """Return the full state transition history."""
        return list(self._history)

    def get_state_trace(self) -> list[str]:
        """Return ordered list of state names visited."""
        return [entry.state.value for entry in self._history]

    def is_editable(self) -> bool:
        return self._current_state in _EDITABLE

    def is_terminal(self) -> bool:
        """Check if the flow has reached a terminal state."""
        return self._current_state in (BookingFlowState.CONFIRMED, BookingFlowState.ABANDONED)
