"""Core domain models for the termbridge system.

These models represent the data structures flowing through the bridge:
the two variants a wire message decodes into, the session lifecycle
states, and the snapshot the HTTP API reports for a live session.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Union

from pydantic import BaseModel, ConfigDict, Field

# Largest viewport dimension accepted from a client, in character cells
MAX_DIMENSION = 10_000


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SessionState(str, enum.Enum):
    """Lifecycle state of a bridged session."""

    OPENING = "opening"  # Connection accepted, device and engine being built
    ACTIVE = "active"  # Bridging bytes in both directions
    CLOSED = "closed"  # Terminal state, device and engine released


# ---------------------------------------------------------------------------
# Wire Models
# ---------------------------------------------------------------------------


class ControlPacket(BaseModel):
    """Viewport geometry reported by the client.

    Ephemeral: consumed as soon as it is decoded, never stored.
    """

    model_config = ConfigDict(frozen=True)

    columns: int = Field(gt=0, le=MAX_DIMENSION, description="Viewport width in character cells")
    rows: int = Field(gt=0, le=MAX_DIMENSION, description="Viewport height in character cells")


class DataFrame(BaseModel):
    """Raw terminal traffic with no structure imposed by the bridge."""

    model_config = ConfigDict(frozen=True)

    payload: bytes = Field(description="Keystroke/mouse/paste bytes or rendered output")


WireMessage = Union[ControlPacket, DataFrame]


# ---------------------------------------------------------------------------
# Session Models
# ---------------------------------------------------------------------------


class SessionInfo(BaseModel):
    """Read-only snapshot of a live session, as listed by the HTTP API."""

    model_config = ConfigDict(frozen=True)

    session_id: str = Field(description="Unique identifier for the session")
    state: SessionState
    columns: int = Field(gt=0)
    rows: int = Field(gt=0)
    created_at: datetime
    bytes_in: int = Field(default=0, ge=0, description="Data bytes delivered to the engine")
    bytes_out: int = Field(default=0, ge=0, description="Output bytes handed to the relay")
