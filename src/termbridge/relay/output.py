"""Order-preserving conduit from a virtual TTY's output to the wire.

The engine writes synchronously and must never block on the network, so
``push`` only queues. A single pump task drains the queue in FIFO order,
awaiting each send before starting the next; chunks pile up behind a slow
send instead of being dropped. The backlog is bounded, and exceeding the
bound is an error the owning session turns into a disconnect.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_MAX_PENDING_BYTES = 1024 * 1024

Sender = Callable[[bytes], Awaitable[None]]
FailureCallback = Callable[[BaseException], None]


class OutputRelay:
    """Moves every output chunk to the client, in order, without loss.

    With ``coalesce`` disabled each pushed chunk becomes exactly one wire
    message. With it enabled, whatever queued up behind an in-flight send
    goes out as one concatenated message; the byte order is the same.
    """

    def __init__(
        self,
        send: Sender,
        max_pending_bytes: int = DEFAULT_MAX_PENDING_BYTES,
        coalesce: bool = True,
        on_failure: FailureCallback | None = None,
    ) -> None:
        if max_pending_bytes <= 0:
            raise ValueError("max_pending_bytes must be positive")
        self._send = send
        self._max_pending_bytes = max_pending_bytes
        self._coalesce = coalesce
        self._on_failure = on_failure
        self._pending: deque[bytes] = deque()
        self._pending_bytes = 0
        self._wakeup = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self._task: asyncio.Task[None] | None = None
        self._closed = False
        self._error: BaseException | None = None
        self._bytes_sent = 0
        self._messages_sent = 0

    @property
    def pending_bytes(self) -> int:
        return self._pending_bytes

    @property
    def bytes_sent(self) -> int:
        return self._bytes_sent

    @property
    def messages_sent(self) -> int:
        return self._messages_sent

    @property
    def is_closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Start the pump task. Must be called from a running event loop."""
        if self._task is not None:
            return
        if self._closed:
            raise TransportError("Relay is closed")
        self._task = asyncio.create_task(self._pump())

    def push(self, chunk: bytes) -> None:
        """Queue one chunk for delivery.

        Chunks pushed after the relay closed or failed are discarded.

        Raises:
            OutputBacklogOverflow: If the chunk would take the unsent
                backlog past ``max_pending_bytes``.
        """
        if not chunk:
            return
        if self._closed or self._error is not None:
            logger.debug("Relay closed, discarding %d bytes", len(chunk))
            return
        if self._pending_bytes + len(chunk) > self._max_pending_bytes:
            raise OutputBacklogOverflow(
                f"Unsent output would exceed {self._max_pending_bytes} bytes",
                pending=self._pending_bytes,
            )
        self._pending.append(bytes(chunk))
        self._pending_bytes += len(chunk)
        self._idle.clear()
        self._wakeup.set()

    async def flush(self) -> None:
        """Wait until everything queued so far has been sent.

        Returns immediately once the relay is closed.

        Raises:
            TransportError: If a send failed.
        """
        await self._idle.wait()
        if self._error is not None:
            raise TransportError(f"Output relay failed: {self._error}") from self._error

    async def close(self) -> None:
        """Stop the pump and discard anything not yet sent. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if self._pending:
            logger.debug(
                "Discarding %d queued chunks (%d bytes)",
                len(self._pending), self._pending_bytes,
            )
        self._pending.clear()
        self._pending_bytes = 0
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._idle.set()

    def _next_message(self) -> bytes:
        if self._coalesce and len(self._pending) > 1:
            message = b"".join(self._pending)
            self._pending.clear()
        else:
            message = self._pending.popleft()
        self._pending_bytes -= len(message)
        return message

    async def _pump(self) -> None:
        while not self._closed:
            await self._wakeup.wait()
            self._wakeup.clear()
            while self._pending and not self._closed:
                message = self._next_message()
                try:
                    await self._send(message)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.debug("Relay send failed: %s", e)
                    self._fail(e)
                    return
                self._bytes_sent += len(message)
                self._messages_sent += 1
            if not self._pending:
                self._idle.set()

    def _fail(self, error: BaseException) -> None:
        self._error = error
        self._pending.clear()
        self._pending_bytes = 0
        self._idle.set()
        if self._on_failure is not None:
            self._on_failure(error)


class TransportError(Exception):
    """Raised when output can no longer be delivered to the client."""


class OutputBacklogOverflow(Exception):
    """Raised when unsent output would grow past the configured bound."""

    def __init__(self, message: str, pending: int = 0) -> None:
        super().__init__(message)
        self.pending = pending
