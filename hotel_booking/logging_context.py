"""Booking-session id carried on every log record.

A flow sets its session id when it verifies a guest; everything logged
while that session is active is tagged with it. ``load_config`` installs
the filter on the root handlers and renders it through ``LOG_FORMAT``:

    2024-05-30 09:00:00 [hotel_booking.flow.booking_flow] [BKS-1a2b3c4d] INFO: ...
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterable, Iterator, Optional

NO_SESSION = "-"

LOG_FORMAT = "%(asctime)s [%(name)s] [%(session_id)s] %(levelname)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_session_id: ContextVar[str] = ContextVar("booking_session_id", default=NO_SESSION)


def set_session_id(session_id: str) -> Token:
    """Bind ``session_id`` to the current context. Returns a token for ``reset_session_id``."""
    return _session_id.set(session_id)


def reset_session_id(token: Token) -> None:
    _session_id.reset(token)


def get_session_id() -> str:
    return _session_id.get()


@contextmanager
def session_scope(session_id: str) -> Iterator[str]:
    """Tag records with ``session_id`` for the duration of the block."""
    token = set_session_id(session_id)
    try:
        yield session_id
    finally:
        reset_session_id(token)


class SessionIdFilter(logging.Filter):
    """Stamps ``record.session_id`` unless an upstream filter already did."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "session_id"):
            record.session_id = _session_id.get()  # type: ignore[attr-defined]
        return True


def install_session_filter(handlers: Optional[Iterable[logging.Handler]] = None) -> None:
    """Attach one ``SessionIdFilter`` to each handler (root handlers by default).

    Handler filters run for records propagated from any module logger, so
    a formatter using ``%(session_id)s`` never sees a record without it.
    """
    if handlers is None:
        handlers = logging.getLogger().handlers
    for handler in handlers:
        if not any(isinstance(f, SessionIdFilter) for f in handler.filters):
            handler.addFilter(SessionIdFilter())
