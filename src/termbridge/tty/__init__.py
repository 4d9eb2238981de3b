"""Virtual TTY device for termbridge.

Public API:
    VirtualTTY -- Fake terminal device handed to a rendering engine
    TTYClosedError -- Raised when a closed device receives input
"""

from termbridge.tty.virtual import DEFAULT_COLOR_DEPTH, TTYClosedError, VirtualTTY

__all__ = ["DEFAULT_COLOR_DEPTH", "TTYClosedError", "VirtualTTY"]
