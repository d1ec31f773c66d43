"""Failure taxonomy for the reservation backend collaborators."""

from typing import Optional


class CollaboratorError(Exception):
    """Network, server, or malformed-response failure. Safe to retry."""

    def __init__(self, message: str = "Something went wrong. Please try again.",
                 status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TokenInvalidError(CollaboratorError):
    """The access token was rejected or has expired."""


class SubmissionRejectedError(CollaboratorError):
    """Authoritative rejection of a booking submission, e.g. the room filled up.

    Never retried automatically; the server message is surfaced to the guest.
    """
