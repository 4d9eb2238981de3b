"""In-memory registry of live sessions."""

from __future__ import annotations

import logging
from typing import Hashable

from termbridge.domain.models import SessionInfo
from termbridge.session.session import CLOSE_GOING_AWAY, Session, SessionError

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Tracks live sessions, at most one per connection.

    Sessions share no state with each other; the registry exists only so
    the server can report on them and close them all on shutdown.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._connections: dict[Hashable, str] = {}

    def register(self, connection_key: Hashable, session: Session) -> None:
        """Track a session for a connection and forget it once it closes.

        Raises:
            SessionError: If the connection already has a session.
        """
        if connection_key in self._connections:
            raise SessionError(f"Connection {connection_key!r} already has a session")
        self._sessions[session.session_id] = session
        self._connections[connection_key] = session.session_id
        session.on_close(lambda s: self._forget(connection_key, s))
        logger.debug("Registered session %s (%d live)", session.session_id, len(self))

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def list_sessions(self) -> list[SessionInfo]:
        return [session.info() for session in self._sessions.values()]

    async def close_all(self, reason: str = "server shutdown") -> None:
        for session in list(self._sessions.values()):
            await session.close(reason, code=CLOSE_GOING_AWAY)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def _forget(self, connection_key: Hashable, session: Session) -> None:
        self._sessions.pop(session.session_id, None)
        if self._connections.get(connection_key) == session.session_id:
            del self._connections[connection_key]
