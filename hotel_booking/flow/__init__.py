from hotel_booking.flow.booking_flow import BookingFlow, PhoneLookup, SubmissionOutcome
from hotel_booking.flow.state_machine import (
    BookingFlowState,
    BookingFlowStateMachine,
    FlowTrigger,
    InvalidTransitionError,
)

__all__ = [
    "BookingFlow",
    "SubmissionOutcome",
    "PhoneLookup",
    "BookingFlowStateMachine",
    "BookingFlowState",
    "FlowTrigger",
    "InvalidTransitionError",
]
