"""Per-connection session binding a virtual TTY to a rendering engine.

A session moves through three states:

    OPENING -> ACTIVE -> CLOSED

``open()`` builds the device, the engine and the output relay and
performs the initial render. ``handle_message()`` feeds each decoded wire
message to the device and waits for the resulting output to be sent
before returning, so every effect reaches the client before the next
cause is read. Any failure that leaves the engine or the connection
unusable closes the session; ``close()`` is idempotent.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Awaitable, Callable, Protocol

from termbridge.config.settings import RelayConfig, TerminalConfig
from termbridge.domain.models import ControlPacket, SessionInfo, SessionState
from termbridge.engine.base import EngineFactory, EngineFailure, RenderingEngine
from termbridge.protocol.codec import MalformedControlPacket, decode_message
from termbridge.relay.output import OutputBacklogOverflow, OutputRelay, TransportError
from termbridge.tty.virtual import VirtualTTY

logger = logging.getLogger(__name__)

# WebSocket close codes
CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001
CLOSE_INTERNAL_ERROR = 1011


class Connection(Protocol):
    """The slice of a WebSocket the session needs."""

    async def send_bytes(self, data: bytes) -> None: ...

    async def close(self, code: int = CLOSE_NORMAL, reason: str | None = None) -> None: ...


class Session:
    """One connection, one virtual TTY, one rendering engine."""

    def __init__(
        self,
        connection: Connection,
        engine_factory: EngineFactory,
        terminal: TerminalConfig | None = None,
        relay: RelayConfig | None = None,
        session_id: str | None = None,
    ) -> None:
        self._connection = connection
        self._engine_factory = engine_factory
        self._terminal = terminal or TerminalConfig()
        self._relay_config = relay or RelayConfig()
        self._session_id = session_id or uuid.uuid4().hex
        self._created_at = datetime.now()
        self._state = SessionState.OPENING
        self._tty: VirtualTTY | None = None
        self._engine: RenderingEngine | None = None
        self._relay: OutputRelay | None = None
        self._close_reason: str | None = None
        self._close_code: int | None = None
        self._failure: Exception | None = None
        self._bytes_in = 0
        self._bytes_out = 0
        self._close_callbacks: list[Callable[[Session], None]] = []
        self._background: set[asyncio.Task[None]] = set()
        self._closed = asyncio.Event()

    # -------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is SessionState.ACTIVE

    @property
    def is_closed(self) -> bool:
        return self._state is SessionState.CLOSED

    @property
    def tty(self) -> VirtualTTY | None:
        return self._tty

    @property
    def engine(self) -> RenderingEngine | None:
        return self._engine

    @property
    def close_reason(self) -> str | None:
        return self._close_reason

    @property
    def close_code(self) -> int | None:
        return self._close_code

    @property
    def failure(self) -> Exception | None:
        """The error that closed the session, if it did not close cleanly."""
        return self._failure

    def info(self) -> SessionInfo:
        columns, rows = (
            self._tty.get_size()
            if self._tty is not None
            else (self._terminal.columns, self._terminal.rows)
        )
        return SessionInfo(
            session_id=self._session_id,
            state=self._state,
            columns=columns,
            rows=rows,
            created_at=self._created_at,
            bytes_in=self._bytes_in,
            bytes_out=self._bytes_out,
        )

    def on_close(self, callback: Callable[[Session], None]) -> None:
        """Register a callback invoked exactly once when the session closes."""
        self._close_callbacks.append(callback)

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------

    async def open(self) -> None:
        """Build the device, engine and relay, then render the first frame.

        Failures close the session instead of raising; check ``is_closed``.

        Raises:
            SessionError: If the session is not in the OPENING state.
        """
        if self._state is not SessionState.OPENING:
            raise SessionError(f"Cannot open a session in state {self._state.value}")

        self._tty = VirtualTTY(
            columns=self._terminal.columns,
            rows=self._terminal.rows,
            color_depth=self._terminal.color_depth,
            term=self._terminal.term,
        )
        self._relay = OutputRelay(
            self._connection.send_bytes,
            max_pending_bytes=self._relay_config.max_pending_bytes,
            coalesce=self._relay_config.coalesce,
            on_failure=self._on_transport_failure,
        )
        self._tty.on_output(self._forward_output)
        self._relay.start()

        try:
            self._engine = self._engine_factory(self._tty)
        except Exception as e:
            await self._fail(EngineFailure(f"Engine construction failed: {e}", stage="create"), e)
            return
        self._engine.on_failure(self._on_engine_failure)

        self._state = SessionState.ACTIVE
        logger.info(
            "Session %s active (%dx%d, engine=%s)",
            self._session_id, self._tty.columns, self._tty.rows,
            type(self._engine).__name__,
        )

        if await self._drive("start", self._engine.start):
            await self._flush()

    async def handle_message(self, message: bytes | str) -> None:
        """Apply one wire message to the device and flush the result.

        Messages arriving after the session closed are dropped.

        Raises:
            SessionError: If the session was never opened.
        """
        if self._state is SessionState.CLOSED:
            return
        if self._state is not SessionState.ACTIVE:
            raise SessionError("Session is not open")

        try:
            frame = decode_message(message)
        except MalformedControlPacket as e:
            logger.warning("Session %s dropped malformed control packet: %s", self._session_id, e)
            return

        if isinstance(frame, ControlPacket):
            logger.debug(
                "Session %s resize -> %dx%d", self._session_id, frame.columns, frame.rows
            )
            applied = await self._drive("resize", self._tty.resize, frame.columns, frame.rows)
        else:
            self._bytes_in += len(frame.payload)
            applied = await self._drive("input", self._tty.push_input, frame.payload)

        if applied:
            await self._flush()

    async def close(self, reason: str = "closed", code: int | None = None) -> None:
        """Transition to CLOSED and release everything. Idempotent.

        Args:
            reason: Human-readable reason, kept for logging and inspection.
            code: WebSocket close code to send. ``None`` when the
                connection is already gone.
        """
        if self._state is SessionState.CLOSED:
            return
        self._state = SessionState.CLOSED
        self._close_reason = reason
        self._close_code = code

        if self._tty is not None:
            self._tty.close()
        if self._engine is not None:
            try:
                self._engine.destroy()
            except Exception as e:
                logger.warning("Session %s engine teardown failed: %s", self._session_id, e)
        if self._relay is not None:
            await self._relay.close()
        if code is not None:
            try:
                await self._connection.close(code=code, reason=reason[:120])
            except Exception as e:
                logger.debug("Session %s connection already closed: %s", self._session_id, e)

        self._closed.set()
        logger.info("Session %s closed: %s", self._session_id, reason)
        for callback in self._close_callbacks:
            callback(self)

    async def wait_closed(self) -> None:
        await self._closed.wait()

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------

    def _forward_output(self, chunk: bytes) -> None:
        self._bytes_out += len(chunk)
        self._relay.push(chunk)

    async def _drive(self, stage: str, operation: Callable[..., None], *args: object) -> bool:
        """Run one engine-facing operation, closing the session if it fails."""
        try:
            operation(*args)
        except OutputBacklogOverflow as e:
            logger.warning("Session %s output backlog overflow: %s", self._session_id, e)
            self._failure = e
            await self.close("output backlog overflow", code=CLOSE_INTERNAL_ERROR)
            return False
        except Exception as e:
            await self._fail(EngineFailure(f"Engine failed during {stage}: {e}", stage=stage), e)
            return False
        return True

    async def _flush(self) -> None:
        try:
            await self._relay.flush()
        except TransportError as e:
            self._failure = e
            await self.close("transport failure")

    async def _fail(self, failure: EngineFailure, cause: Exception) -> None:
        failure.__cause__ = cause
        self._failure = failure
        logger.error("Session %s %s", self._session_id, failure)
        await self.close(str(failure), code=CLOSE_INTERNAL_ERROR)

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _on_transport_failure(self, error: BaseException) -> None:
        if self._state is SessionState.CLOSED:
            return
        if isinstance(error, Exception):
            self._failure = TransportError(str(error))
        self._spawn(self.close("transport failure"))

    def _on_engine_failure(self, error: BaseException) -> None:
        if self._state is SessionState.CLOSED:
            return
        if isinstance(error, OutputBacklogOverflow):
            self._failure = error
            self._spawn(self.close("output backlog overflow", code=CLOSE_INTERNAL_ERROR))
            return
        failure = EngineFailure(f"Engine failed in background work: {error}", stage="background")
        failure.__cause__ = error
        self._failure = failure
        self._spawn(self.close(str(failure), code=CLOSE_INTERNAL_ERROR))


class SessionError(Exception):
    """Raised when a session is used outside its lifecycle."""
