"""Abstract base class for terminal emulators attached to a transport.

The emulator is the black box on the client side: it interprets the
rendered output, reports its own geometry, and turns local keyboard and
mouse activity into raw terminal input bytes. The transport never looks
inside either stream.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable

logger = logging.getLogger(__name__)


class TerminalEmulator(ABC):
    """Abstract interface for something that displays terminal output.

    Subclasses call ``emit_input`` for each chunk of local input,
    ``emit_resize`` whenever their geometry changes and ``emit_close``
    when the user wants to detach.
    """

    def __init__(self) -> None:
        self._input_listeners: list[Callable[[bytes], None]] = []
        self._resize_listeners: list[Callable[[int, int], None]] = []
        self._close_listeners: list[Callable[[], None]] = []

    @abstractmethod
    def start(self) -> None:
        """Take over the display and begin emitting input."""
        ...

    @abstractmethod
    def stop(self) -> None:
        """Release the display. Should be safe to call multiple times."""
        ...

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Interpret raw output bytes from the server."""
        ...

    @abstractmethod
    def get_size(self) -> tuple[int, int]:
        """Return the current ``(columns, rows)``."""
        ...

    def on_input(self, listener: Callable[[bytes], None]) -> None:
        self._input_listeners.append(listener)

    def on_resize(self, listener: Callable[[int, int], None]) -> None:
        self._resize_listeners.append(listener)

    def on_close(self, listener: Callable[[], None]) -> None:
        self._close_listeners.append(listener)

    def emit_input(self, data: bytes) -> None:
        for listener in list(self._input_listeners):
            listener(data)

    def emit_resize(self, columns: int, rows: int) -> None:
        for listener in list(self._resize_listeners):
            listener(columns, rows)

    def emit_close(self) -> None:
        for listener in list(self._close_listeners):
            listener()
