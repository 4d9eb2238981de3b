"""Output relay for termbridge.

Public API:
    OutputRelay -- Bounded FIFO from device output to the WebSocket
    OutputBacklogOverflow -- Raised when unsent output exceeds its bound
    TransportError -- Raised when the connection can no longer take output
"""

from termbridge.relay.output import (
    DEFAULT_MAX_PENDING_BYTES,
    OutputBacklogOverflow,
    OutputRelay,
    TransportError,
)

__all__ = [
    "DEFAULT_MAX_PENDING_BYTES",
    "OutputBacklogOverflow",
    "OutputRelay",
    "TransportError",
]
