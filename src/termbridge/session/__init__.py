"""Session lifecycle for termbridge.

Public API:
    Session -- Binds one connection to one virtual TTY and engine
    SessionRegistry -- Live sessions, at most one per connection
    SessionError -- Raised for lifecycle misuse
"""

from termbridge.session.registry import SessionRegistry
from termbridge.session.session import (
    CLOSE_GOING_AWAY,
    CLOSE_INTERNAL_ERROR,
    CLOSE_NORMAL,
    Connection,
    Session,
    SessionError,
)

__all__ = [
    "CLOSE_GOING_AWAY",
    "CLOSE_INTERNAL_ERROR",
    "CLOSE_NORMAL",
    "Connection",
    "Session",
    "SessionError",
    "SessionRegistry",
]
