"""A terminal device with no operating-system terminal behind it.

Rendering engines are written against a real TTY: they read keystrokes
from an input stream, write escape sequences to an output stream, and
query the device for its size and colour support. VirtualTTY fabricates
exactly that contract so an engine cannot tell the difference, with the
input and output ends exposed to the session instead of a kernel.
"""

from __future__ import annotations

import logging
from typing import Callable

from termbridge.domain.models import MAX_DIMENSION

logger = logging.getLogger(__name__)

DEFAULT_COLOR_DEPTH = 24

InputListener = Callable[[bytes], None]
OutputListener = Callable[[bytes], None]
ResizeListener = Callable[[int, int], None]


class VirtualTTY:
    """Fake terminal device owned by one session.

    All delivery is synchronous: ``push_input`` returns only after every
    input listener has seen the bytes, ``write`` only after every output
    listener has, and ``resize`` only after the engine was notified. Any
    exception raised by a listener propagates to the caller.

    Example usage::

        tty = VirtualTTY(columns=80, rows=24)
        tty.on_output(relay.push)
        engine = PromptScreen(tty)
        tty.push_input(b"q")
        tty.resize(120, 40)
    """

    def __init__(
        self,
        columns: int = 80,
        rows: int = 24,
        color_depth: int = DEFAULT_COLOR_DEPTH,
        term: str = "xterm-256color",
    ) -> None:
        _check_geometry(columns, rows)
        self._columns = columns
        self._rows = rows
        self._color_depth = color_depth
        self._term = term
        self._input_listeners: list[InputListener] = []
        self._output_listeners: list[OutputListener] = []
        self._resize_listeners: list[ResizeListener] = []
        self._closed = False

    @property
    def columns(self) -> int:
        return self._columns

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def term(self) -> str:
        return self._term

    @property
    def closed(self) -> bool:
        return self._closed

    # -------------------------------------------------------------------
    # Capability queries
    # -------------------------------------------------------------------

    def get_size(self) -> tuple[int, int]:
        """Return the current ``(columns, rows)``."""
        return self._columns, self._rows

    def isatty(self) -> bool:
        return True

    def get_color_depth(self) -> int:
        """Colour depth in bits. Reported as truecolor whatever the client is."""
        return self._color_depth

    def has_colors(self) -> bool:
        return True

    # -------------------------------------------------------------------
    # Listener registration
    # -------------------------------------------------------------------

    def on_input(self, listener: InputListener) -> None:
        self._input_listeners.append(listener)

    def on_output(self, listener: OutputListener) -> None:
        self._output_listeners.append(listener)

    def on_resize(self, listener: ResizeListener) -> None:
        self._resize_listeners.append(listener)

    # -------------------------------------------------------------------
    # Device I/O
    # -------------------------------------------------------------------

    def push_input(self, data: bytes) -> None:
        """Deliver bytes received from the client to the engine.

        Raises:
            TTYClosedError: If the device has been closed.
        """
        if self._closed:
            raise TTYClosedError("Cannot push input to a closed device")
        if not data:
            return
        for listener in list(self._input_listeners):
            listener(data)

    def write(self, data: bytes | str) -> int:
        """Accept output from the engine and hand it to the output listeners.

        Writes after ``close()`` are discarded: engine work already in
        flight when the session ended may still complete, but nothing it
        produces leaves the device.

        Returns:
            The number of bytes accepted (0 once closed).
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        if self._closed:
            logger.debug("Discarding %d bytes written to a closed device", len(data))
            return 0
        if not data:
            return 0
        for listener in list(self._output_listeners):
            listener(data)
        return len(data)

    def flush(self) -> None:
        """File-like no-op; writes are delivered immediately."""

    def resize(self, columns: int, rows: int) -> None:
        """Store new geometry, then notify resize listeners.

        Listeners fire exactly once per call, even when the geometry is
        unchanged, so a repeated report still re-lays out the screen.
        """
        if self._closed:
            raise TTYClosedError("Cannot resize a closed device")
        _check_geometry(columns, rows)
        self._columns = columns
        self._rows = rows
        logger.debug("Virtual TTY resized to %dx%d", columns, rows)
        for listener in list(self._resize_listeners):
            listener(columns, rows)

    def close(self) -> None:
        """Stop the device. Safe to call multiple times."""
        if self._closed:
            return
        self._closed = True
        self._input_listeners.clear()
        self._output_listeners.clear()
        self._resize_listeners.clear()


def _check_geometry(columns: int, rows: int) -> None:
    if not (0 < columns <= MAX_DIMENSION and 0 < rows <= MAX_DIMENSION):
        raise ValueError(
            f"Terminal geometry must be between 1 and {MAX_DIMENSION}, got {columns}x{rows}"
        )


class TTYClosedError(Exception):
    """Raised when input or resize reaches a device that was closed."""
