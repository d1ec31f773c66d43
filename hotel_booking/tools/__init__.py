from hotel_booking.tools.backend_client import BackendClient
from hotel_booking.tools.errors import (
    CollaboratorError,
    SubmissionRejectedError,
    TokenInvalidError,
)
from hotel_booking.tools.mock_backend import MockBackend

__all__ = [
    "BackendClient",
    "MockBackend",
    "CollaboratorError",
    "SubmissionRejectedError",
    "TokenInvalidError",
]
