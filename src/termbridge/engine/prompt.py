"""Built-in demo engines.

PromptScreen is a small line-editing REPL: a title bar, a scrolling log
of submitted lines, a red separator and a ``> `` prompt along the bottom.
EchoScreen writes input straight back. Neither interprets escape
sequences; PromptScreen only skips over them so mouse reports and arrow
keys do not land in the prompt buffer.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections import deque

from termbridge.engine.base import RenderingEngine
from termbridge.tty.virtual import VirtualTTY

logger = logging.getLogger(__name__)

ESC = "\x1b"
CLEAR_SCREEN = f"{ESC}[2J"
CURSOR_HOME = f"{ESC}[H"
RESET = f"{ESC}[0m"
ALT_SCREEN_ON = f"{ESC}[?1049h"
MOUSE_ON = f"{ESC}[?1000h{ESC}[?1006h"

TITLE_STYLE = f"{ESC}[1;38;2;255;255;255;48;2;0;0;170m"
BORDER_STYLE = f"{ESC}[38;2;255;80;80m"
LOG_STYLE = f"{ESC}[1m"

BACKSPACE = {"\x7f", "\x08"}
ENTER = {"\r", "\n"}

# CSI (including SGR mouse reports), SS3 and two-byte escapes
_ESCAPE_SEQUENCE = re.compile(r"\x1b(?:\[[0-?]*[ -/]*[@-~]|O.|.)?", re.DOTALL)


def _fit(text: str, width: int) -> str:
    return text[:width].ljust(width)


class PromptScreen(RenderingEngine):
    """Title bar, log pane and prompt line, repainted on every change."""

    def __init__(
        self,
        tty: VirtualTTY,
        title: str = "termbridge",
        mouse: bool = True,
        tick_interval: float | None = None,
        scrollback: int = 1000,
    ) -> None:
        super().__init__(tty)
        self._title = title
        self._mouse = mouse
        self._tick_interval = tick_interval
        self._log: deque[str] = deque(maxlen=scrollback)
        self._buffer = ""
        self._ticker: asyncio.Task[None] | None = None
        self._renders = 0

    @property
    def buffer(self) -> str:
        return self._buffer

    @property
    def log_lines(self) -> list[str]:
        return list(self._log)

    @property
    def render_count(self) -> int:
        return self._renders

    def start(self) -> None:
        setup = ALT_SCREEN_ON
        if self._mouse:
            setup += MOUSE_ON
        self.write(setup)
        self.render()
        if self._tick_interval:
            self._ticker = asyncio.get_running_loop().create_task(self._tick())

    def handle_input(self, data: bytes) -> None:
        text = _ESCAPE_SEQUENCE.sub("", data.decode("utf-8", errors="replace"))
        if not text:
            return
        for ch in text:
            if ch in ENTER:
                self._log.append(f"-> {self._buffer or '(empty)'}")
                logger.debug("Prompt submitted: %r", self._buffer)
                self._buffer = ""
            elif ch in BACKSPACE:
                self._buffer = self._buffer[:-1]
            elif ch.isprintable():
                self._buffer += ch
        self.render()

    def handle_resize(self, columns: int, rows: int) -> None:
        self.render()

    def on_destroy(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    def render(self) -> None:
        columns, rows = self.tty.get_size()
        out = [RESET, CURSOR_HOME, CLEAR_SCREEN]

        if rows >= 3:
            out.append(f"{ESC}[1;1H{TITLE_STYLE}{self._title_bar(columns)}{RESET}")
            log_height = rows - 3
            visible = list(self._log)[-log_height:] if log_height else []
            for offset, line in enumerate(visible):
                out.append(f"{ESC}[{offset + 2};1H{LOG_STYLE}{line[:columns]}{RESET}")
            out.append(f"{ESC}[{rows - 1};1H{BORDER_STYLE}{'-' * columns}{RESET}")

        out.append(f"{ESC}[{rows};1H{self._prompt_line(columns)}")
        self.write("".join(out))
        self._renders += 1

    def _title_bar(self, columns: int) -> str:
        title = f" {self._title}"
        if self._tick_interval:
            clock = time.strftime("%H:%M:%S ")
            if len(title) + len(clock) <= columns:
                return title.ljust(columns - len(clock)) + clock
        return _fit(title, columns)

    def _prompt_line(self, columns: int) -> str:
        # Keep the last cell free so the cursor never sits in a pending wrap
        width = max(columns - 1, 1)
        line = f"> {self._buffer}"
        return line[-width:]

    async def _tick(self) -> None:
        while not self.is_destroyed:
            await asyncio.sleep(self._tick_interval)
            try:
                self.render()
            except Exception as e:
                self.report_failure(e)
                return


class EchoScreen(RenderingEngine):
    """Writes every input byte straight back, translating Enter to CRLF."""

    def start(self) -> None:
        self.write(CLEAR_SCREEN + CURSOR_HOME)

    def handle_input(self, data: bytes) -> None:
        self.write(data.replace(b"\r", b"\r\n"))

    def handle_resize(self, columns: int, rows: int) -> None:
        self.write(CLEAR_SCREEN + CURSOR_HOME)
