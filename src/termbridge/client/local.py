"""The local terminal as a TerminalEmulator.

Puts the controlling terminal into raw mode and lets the real terminal
emulator it runs in (xterm, iTerm, Windows Terminal...) do the
interpreting, so ``termbridge attach`` behaves like the browser client.
Press Ctrl-] to detach.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import signal
import sys
import termios
import tty

from termbridge.client.base import TerminalEmulator

logger = logging.getLogger(__name__)

DETACH_KEY = b"\x1d"  # Ctrl-]

# Leave the alternate screen and stop mouse reporting the server may have enabled
RESTORE_SEQUENCE = b"\x1b[?1000l\x1b[?1002l\x1b[?1006l\x1b[?1049l\x1b[0m\r\n"


class LocalTerminal(TerminalEmulator):
    """Attaches the process's own terminal to a transport."""

    def __init__(
        self,
        stdin_fd: int | None = None,
        stdout_fd: int | None = None,
        detach_key: bytes = DETACH_KEY,
    ) -> None:
        super().__init__()
        self._stdin_fd = sys.stdin.fileno() if stdin_fd is None else stdin_fd
        self._stdout_fd = sys.stdout.fileno() if stdout_fd is None else stdout_fd
        self._detach_key = detach_key
        self._saved_attrs: list | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._started = False

    def start(self) -> None:
        """Enter raw mode and watch stdin and SIGWINCH."""
        if self._started:
            return
        self._loop = asyncio.get_running_loop()
        if os.isatty(self._stdin_fd):
            self._saved_attrs = termios.tcgetattr(self._stdin_fd)
            tty.setraw(self._stdin_fd)
        self._loop.add_reader(self._stdin_fd, self._on_readable)
        self._loop.add_signal_handler(signal.SIGWINCH, self._on_winch)
        self._started = True
        logger.debug("Local terminal attached (%dx%d)", *self.get_size())

    def stop(self) -> None:
        """Restore the terminal. Safe to call multiple times."""
        if not self._started:
            return
        self._started = False
        self._loop.remove_reader(self._stdin_fd)
        self._loop.remove_signal_handler(signal.SIGWINCH)
        if self._saved_attrs is not None:
            termios.tcsetattr(self._stdin_fd, termios.TCSADRAIN, self._saved_attrs)
            self._saved_attrs = None
        self.write(RESTORE_SEQUENCE)

    def write(self, data: bytes) -> None:
        view = memoryview(data)
        while view:
            written = os.write(self._stdout_fd, view)
            view = view[written:]

    def get_size(self) -> tuple[int, int]:
        try:
            size = os.get_terminal_size(self._stdout_fd)
        except OSError:
            size = shutil.get_terminal_size()
        return size.columns, size.lines

    def _on_readable(self) -> None:
        try:
            data = os.read(self._stdin_fd, 4096)
        except OSError as e:
            logger.debug("stdin read failed: %s", e)
            data = b""
        if not data:
            self.emit_close()
            return
        if self._detach_key and self._detach_key in data:
            before = data.split(self._detach_key, 1)[0]
            if before:
                self.emit_input(before)
            self.emit_close()
            return
        self.emit_input(data)

    def _on_winch(self) -> None:
        self.emit_resize(*self.get_size())
