"""Domain models for termbridge.

This package contains the wire message variants, session states and
snapshots used throughout the system. All models use Pydantic v2.
"""

from termbridge.domain.models import (
    ControlPacket,
    DataFrame,
    SessionInfo,
    SessionState,
    WireMessage,
)

__all__ = [
    "ControlPacket",
    "DataFrame",
    "SessionInfo",
    "SessionState",
    "WireMessage",
]
