"""Abstract base class for rendering engines.

A rendering engine is any stateful consumer of the virtual TTY contract:
it reads input bytes, keeps its own layout state, and writes escape
sequences back. Engines receive their device explicitly at construction,
never through a process-wide terminal, so each session owns an
independent engine.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable

from termbridge.tty.virtual import VirtualTTY

logger = logging.getLogger(__name__)


class RenderingEngine(ABC):
    """Abstract interface for something that draws into a VirtualTTY.

    The base class subscribes to the device's input and resize
    notifications and dispatches them to ``handle_input`` and
    ``handle_resize`` until the engine is destroyed. Exceptions raised by
    those handlers are not caught here; they travel back through the
    device to the session, which treats them as fatal.

    Example usage::

        tty = VirtualTTY(columns=80, rows=24)
        engine = PromptScreen(tty)
        engine.start()          # initial render
        tty.push_input(b"ls\\r")  # -> engine.handle_input(b"ls\\r")
        tty.resize(100, 30)     # -> engine.handle_resize(100, 30)
        engine.destroy()
    """

    def __init__(self, tty: VirtualTTY) -> None:
        self._tty = tty
        self._destroyed = False
        self._failure_listeners: list[Callable[[BaseException], None]] = []
        tty.on_input(self._dispatch_input)
        tty.on_resize(self._dispatch_resize)

    @property
    def tty(self) -> VirtualTTY:
        return self._tty

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    @abstractmethod
    def start(self) -> None:
        """Perform the initial render so the client sees a populated screen."""
        ...

    @abstractmethod
    def handle_input(self, data: bytes) -> None:
        """Consume raw input bytes (keys, mouse reports, paste)."""
        ...

    @abstractmethod
    def handle_resize(self, columns: int, rows: int) -> None:
        """Recompute layout for new geometry and repaint.

        The device already reports the new size when this is called.
        """
        ...

    def destroy(self) -> None:
        """Stop the engine; it writes nothing afterwards. Idempotent."""
        if self._destroyed:
            return
        self._destroyed = True
        self.on_destroy()

    def on_destroy(self) -> None:
        """Hook for subclasses to release timers or other resources."""

    def on_failure(self, listener: Callable[[BaseException], None]) -> None:
        """Register a callback for failures in work the engine scheduled itself.

        Synchronous handlers raise to their caller instead; this covers
        timers and other background tasks nobody is awaiting.
        """
        self._failure_listeners.append(listener)

    def report_failure(self, error: BaseException) -> None:
        logger.error("Engine %s failed: %s", type(self).__name__, error)
        for listener in list(self._failure_listeners):
            listener(error)

    def write(self, data: bytes | str) -> None:
        """Write output to the device unless the engine was destroyed."""
        if self._destroyed:
            return
        self._tty.write(data)

    def _dispatch_input(self, data: bytes) -> None:
        if not self._destroyed:
            self.handle_input(data)

    def _dispatch_resize(self, columns: int, rows: int) -> None:
        if not self._destroyed:
            self.handle_resize(columns, rows)


EngineFactory = Callable[[VirtualTTY], RenderingEngine]


class EngineFailure(Exception):
    """Raised when a rendering engine fails while handling a session event."""

    def __init__(self, message: str, stage: str = "") -> None:
        super().__init__(message)
        self.stage = stage
