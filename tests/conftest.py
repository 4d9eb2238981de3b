"""Shared test fixtures for the termbridge test suite.

Provides a scriptable rendering engine, an in-memory connection standing
in for a WebSocket, and factories wiring them into sessions.
"""

from __future__ import annotations

import asyncio

import pytest

from termbridge.config.settings import RelayConfig, TerminalConfig
from termbridge.engine.base import RenderingEngine
from termbridge.tty.virtual import VirtualTTY


# ---------------------------------------------------------------------------
# Engine Fixtures
# ---------------------------------------------------------------------------


class RecordingEngine(RenderingEngine):
    """Engine that records every event and answers with predictable output.

    - start() writes ``ESC[2J``
    - input is echoed back verbatim when ``echo`` is set
    - resize writes ``resized <c>x<r>``
    - input equal to ``fail_on`` raises RuntimeError
    """

    def __init__(
        self,
        tty: VirtualTTY,
        echo: bool = True,
        fail_on: bytes | None = None,
        fail_on_start: bool = False,
    ) -> None:
        super().__init__(tty)
        self.echo = echo
        self.fail_on = fail_on
        self.fail_on_start = fail_on_start
        self.started = False
        self.inputs: list[bytes] = []
        self.resizes: list[tuple[int, int]] = []
        self.destroy_calls = 0

    def start(self) -> None:
        if self.fail_on_start:
            raise RuntimeError("start exploded")
        self.started = True
        self.write(b"\x1b[2J")

    def handle_input(self, data: bytes) -> None:
        self.inputs.append(data)
        if self.fail_on is not None and data == self.fail_on:
            raise RuntimeError("engine exploded")
        if self.echo:
            self.write(data)

    def handle_resize(self, columns: int, rows: int) -> None:
        self.resizes.append((columns, rows))
        self.write(f"resized {columns}x{rows}")

    def on_destroy(self) -> None:
        self.destroy_calls += 1


class EngineRecorder:
    """Engine factory that remembers every engine it built."""

    def __init__(self, **engine_kwargs: object) -> None:
        self.engine_kwargs = engine_kwargs
        self.engines: list[RecordingEngine] = []

    def __call__(self, tty: VirtualTTY) -> RecordingEngine:
        engine = RecordingEngine(tty, **self.engine_kwargs)
        self.engines.append(engine)
        return engine

    @property
    def last(self) -> RecordingEngine:
        return self.engines[-1]


@pytest.fixture
def recorder() -> EngineRecorder:
    """A factory building echoing RecordingEngines."""
    return EngineRecorder()


@pytest.fixture
def make_recorder():
    """Build an EngineRecorder with custom RecordingEngine options."""
    return EngineRecorder


@pytest.fixture
def tty() -> VirtualTTY:
    """An 80x24 virtual TTY."""
    return VirtualTTY(columns=80, rows=24)


# ---------------------------------------------------------------------------
# Connection Fixtures
# ---------------------------------------------------------------------------


class FakeConnection:
    """In-memory stand-in for a server-side WebSocket.

    Sends block while ``gate`` is cleared, and raise ConnectionError when
    ``fail_sends`` is set.
    """

    def __init__(self) -> None:
        self.sent: list[bytes] = []
        self.close_calls: list[int] = []
        self.fail_sends = False
        self.gate = asyncio.Event()
        self.gate.set()

    async def send_bytes(self, data: bytes) -> None:
        await self.gate.wait()
        if self.fail_sends:
            raise ConnectionError("peer went away")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.close_calls.append(code)

    @property
    def received(self) -> bytes:
        return b"".join(self.sent)


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def terminal_config() -> TerminalConfig:
    return TerminalConfig(columns=100, rows=30)


@pytest.fixture
def relay_config() -> RelayConfig:
    return RelayConfig(max_pending_bytes=4096, coalesce=False)
