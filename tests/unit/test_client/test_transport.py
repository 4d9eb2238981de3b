"""Tests for the client-side WebSocket transport."""

from __future__ import annotations

import asyncio
from typing import Callable

import pytest
import websockets
from websockets import State

from termbridge.client.base import TerminalEmulator
from termbridge.client.transport import ClientTransport


class FakeClientWS:
    """Stand-in for a websockets ClientConnection."""

    def __init__(self, incoming: list[bytes | str | Exception] | None = None) -> None:
        self.state = State.OPEN
        self.sent: list[bytes] = []
        self.close_calls = 0
        self.send_error: Exception | None = None
        self._incoming: asyncio.Queue = asyncio.Queue()
        for item in incoming or []:
            self._incoming.put_nowait(item)

    def feed(self, item: bytes | str | Exception | None) -> None:
        self._incoming.put_nowait(item)

    async def send(self, data: bytes) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(data)

    async def close(self) -> None:
        self.close_calls += 1
        self.state = State.CLOSED
        self._incoming.put_nowait(None)

    async def __aiter__(self):
        while True:
            item = await self._incoming.get()
            if item is None:
                self.state = State.CLOSED
                return
            if isinstance(item, Exception):
                self.state = State.CLOSED
                raise item
            yield item


class FakeEmulator(TerminalEmulator):
    """Records output and can react to specific frames."""

    def __init__(self, size: tuple[int, int] = (90, 30)) -> None:
        super().__init__()
        self.size = size
        self.writes: list[bytes] = []
        self.started = False
        self.stop_calls = 0
        self.reactions: dict[bytes, Callable[[], None]] = {}

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stop_calls += 1

    def write(self, data: bytes) -> None:
        self.writes.append(data)
        reaction = self.reactions.get(data)
        if reaction is not None:
            reaction()

    def get_size(self) -> tuple[int, int]:
        return self.size


async def run_transport(transport: ClientTransport) -> None:
    await asyncio.wait_for(transport.run(), timeout=2.0)


class TestRun:
    @pytest.mark.asyncio
    async def test_sends_geometry_first_and_renders_output(self) -> None:
        ws = FakeClientWS([b"\x1b[2J", "hello", None])
        emulator = FakeEmulator(size=(90, 30))
        transport = ClientTransport(emulator, ws)

        await run_transport(transport)

        assert ws.sent == [b"\xff90,30"]
        assert emulator.writes == [b"\x1b[2J", b"hello"]
        assert emulator.started
        assert emulator.stop_calls == 1

    @pytest.mark.asyncio
    async def test_output_is_not_interpreted(self) -> None:
        frame = b"\xff80,24\x1b[?1049h\x00"
        ws = FakeClientWS([frame, None])
        emulator = FakeEmulator()

        await run_transport(ClientTransport(emulator, ws))

        assert emulator.writes == [frame]

    @pytest.mark.asyncio
    async def test_input_forwarded_as_data(self) -> None:
        ws = FakeClientWS([b"prompt", None])
        emulator = FakeEmulator()
        emulator.reactions[b"prompt"] = lambda: emulator.emit_input(b"q")

        await run_transport(ClientTransport(emulator, ws))

        assert ws.sent == [b"\xff90,30", b"q"]

    @pytest.mark.asyncio
    async def test_resize_forwarded_as_control(self) -> None:
        ws = FakeClientWS([b"frame", None])
        emulator = FakeEmulator()
        emulator.reactions[b"frame"] = lambda: emulator.emit_resize(120, 40)

        await run_transport(ClientTransport(emulator, ws))

        assert ws.sent == [b"\xff90,30", b"\xff120,40"]

    @pytest.mark.asyncio
    async def test_emulator_close_closes_connection(self) -> None:
        ws = FakeClientWS([b"frame"])
        emulator = FakeEmulator()
        emulator.reactions[b"frame"] = emulator.emit_close

        await run_transport(ClientTransport(emulator, ws))

        assert ws.close_calls == 1
        assert emulator.stop_calls == 1

    @pytest.mark.asyncio
    async def test_close_request_is_tracked_until_done(self) -> None:
        class FailingCloseWS(FakeClientWS):
            async def close(self) -> None:
                await super().close()
                raise websockets.ConnectionClosedError(None, None)

        ws = FailingCloseWS([b"frame"])
        emulator = FakeEmulator()
        emulator.reactions[b"frame"] = emulator.emit_close
        transport = ClientTransport(emulator, ws)
        errors: list[dict] = []
        asyncio.get_running_loop().set_exception_handler(lambda loop, ctx: errors.append(ctx))

        await run_transport(transport)
        await asyncio.sleep(0)

        assert ws.close_calls == 1
        assert transport._background == set()
        assert errors == []

    @pytest.mark.asyncio
    async def test_abnormal_close_still_restores_emulator(self) -> None:
        ws = FakeClientWS([b"frame", websockets.ConnectionClosedError(None, None)])
        emulator = FakeEmulator()

        await run_transport(ClientTransport(emulator, ws))

        assert emulator.writes == [b"frame"]
        assert emulator.stop_calls == 1

    @pytest.mark.asyncio
    async def test_send_failure_ends_writer_quietly(self) -> None:
        ws = FakeClientWS([b"frame", None])
        ws.send_error = websockets.ConnectionClosedError(None, None)
        emulator = FakeEmulator()

        await run_transport(ClientTransport(emulator, ws))

        assert ws.sent == []
        assert emulator.stop_calls == 1


class TestSend:
    @pytest.mark.asyncio
    async def test_dropped_when_not_open(self) -> None:
        ws = FakeClientWS([None])
        ws.state = State.CONNECTING
        emulator = FakeEmulator()
        transport = ClientTransport(emulator, ws)

        assert not transport.is_open
        transport.send_input(b"x")
        transport.send_resize(10, 10)
        await run_transport(transport)

        assert ws.sent == []

    @pytest.mark.asyncio
    async def test_explicit_geometry(self) -> None:
        ws = FakeClientWS()
        transport = ClientTransport(FakeEmulator(), ws)

        transport.send_resize(132, 43)
        ws.feed(None)
        await run_transport(transport)

        assert ws.sent[0] == b"\xff132,43"

    @pytest.mark.asyncio
    async def test_empty_input_not_sent(self) -> None:
        ws = FakeClientWS()
        transport = ClientTransport(FakeEmulator(), ws)

        transport.send_input(b"")
        ws.feed(None)
        await run_transport(transport)

        assert ws.sent == [b"\xff90,30"]


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_opens_websocket(self, monkeypatch) -> None:
        calls: list[tuple[str, dict]] = []
        ws = FakeClientWS()

        async def fake_connect(url, **kwargs):
            calls.append((url, kwargs))
            return ws

        monkeypatch.setattr(websockets, "connect", fake_connect)

        transport = await ClientTransport.connect(
            "ws://example.test/term", FakeEmulator(), open_timeout=3.0
        )

        assert transport.is_open
        assert calls == [("ws://example.test/term", {"open_timeout": 3.0, "max_size": None})]
