"""WebSocket client speaking the termbridge protocol.

The Python counterpart of the browser client: it attaches any
TerminalEmulator to a termbridge server. Geometry is sent as a Control
frame as soon as the connection is up and again whenever the emulator
reports a change; emulator input is forwarded verbatim as Data; every
message from the server is handed to the emulator untouched.
"""

from __future__ import annotations

import asyncio
import logging

import websockets
from websockets import ClientConnection, State

from termbridge.client.base import TerminalEmulator
from termbridge.protocol.codec import encode_resize

logger = logging.getLogger(__name__)

DEFAULT_DRAIN_TIMEOUT = 1.0


class ClientTransport:
    """Bridges one TerminalEmulator to one termbridge WebSocket.

    The constructor takes an already-connected WebSocket (for
    testability); ``connect()`` opens one (for convenience).

    Example usage::

        transport = await ClientTransport.connect(url, LocalTerminal())
        await transport.run()
    """

    def __init__(self, emulator: TerminalEmulator, ws: ClientConnection) -> None:
        self._emulator = emulator
        self._ws = ws
        self._outgoing: asyncio.Queue[bytes] = asyncio.Queue()
        self._writer: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[None]] = set()
        emulator.on_input(self.send_input)
        emulator.on_resize(self.send_resize)
        emulator.on_close(self._request_close)

    @classmethod
    async def connect(
        cls, url: str, emulator: TerminalEmulator, open_timeout: float = 10.0
    ) -> ClientTransport:
        """Connect to a termbridge server.

        Raises:
            websockets.WebSocketException: If the connection fails.
            OSError: If the server is unreachable.
        """
        ws = await websockets.connect(url, open_timeout=open_timeout, max_size=None)
        logger.info("Connected to %s", url)
        return cls(emulator, ws)

    @property
    def is_open(self) -> bool:
        return self._ws.state == State.OPEN

    def send_input(self, data: bytes) -> None:
        """Forward raw emulator input as a Data frame."""
        if data:
            self._enqueue(bytes(data))

    def send_resize(self, columns: int | None = None, rows: int | None = None) -> None:
        """Send a Control frame with the given or current geometry.

        Sending the same geometry twice is harmless: the server simply
        re-lays out at the same size.
        """
        if columns is None or rows is None:
            columns, rows = self._emulator.get_size()
        self._enqueue(encode_resize(columns, rows))

    async def run(self) -> None:
        """Pump both directions until either side closes."""
        self._emulator.start()
        self._writer = asyncio.create_task(self._write_loop())
        try:
            self.send_resize()
            async for message in self._ws:
                if isinstance(message, str):
                    message = message.encode("utf-8")
                self._emulator.write(message)
        except websockets.ConnectionClosed as e:
            logger.info("Connection closed: %s", e)
        finally:
            await self._drain()
            self._emulator.stop()

    async def close(self) -> None:
        await self._ws.close()

    def _enqueue(self, data: bytes) -> None:
        # Sends before the socket opens (or after it closes) are dropped;
        # geometry is sent again once the connection is up.
        if not self.is_open:
            logger.debug("Not connected, dropping %d bytes", len(data))
            return
        self._outgoing.put_nowait(data)

    async def _write_loop(self) -> None:
        while True:
            data = await self._outgoing.get()
            try:
                await self._ws.send(data)
            except websockets.ConnectionClosed:
                logger.debug("Connection closed while sending")
                self._discard_outgoing()
                return
            finally:
                self._outgoing.task_done()

    async def _drain(self) -> None:
        if self._writer is None:
            return
        if not self._writer.done():
            try:
                await asyncio.wait_for(self._outgoing.join(), DEFAULT_DRAIN_TIMEOUT)
            except asyncio.TimeoutError:
                logger.debug("Gave up flushing %d queued messages", self._outgoing.qsize())
            self._writer.cancel()
            try:
                await self._writer
            except asyncio.CancelledError:
                pass
        self._writer = None

    def _discard_outgoing(self) -> None:
        while not self._outgoing.empty():
            self._outgoing.get_nowait()
            self._outgoing.task_done()

    def _request_close(self) -> None:
        task = asyncio.ensure_future(self._ws.close())
        self._background.add(task)
        task.add_done_callback(self._close_done)

    def _close_done(self, task: asyncio.Task[None]) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Close request failed: %s", task.exception())
