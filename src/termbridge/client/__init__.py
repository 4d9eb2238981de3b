"""Client side of the termbridge protocol.

Public API:
    TerminalEmulator -- Abstract base class for displays
    ClientTransport -- WebSocket transport attaching an emulator to a server
    LocalTerminal -- The process's own terminal as an emulator (POSIX only)
"""

from termbridge.client.base import TerminalEmulator

__all__ = ["TerminalEmulator", "ClientTransport", "LocalTerminal"]


def __getattr__(name: str) -> type:
    """Lazy import for implementations that need websockets or termios."""
    if name == "ClientTransport":
        from termbridge.client.transport import ClientTransport
        return ClientTransport
    if name == "LocalTerminal":
        from termbridge.client.local import LocalTerminal
        return LocalTerminal
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
