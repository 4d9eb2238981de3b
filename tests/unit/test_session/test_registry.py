"""Tests for the session registry."""

from __future__ import annotations

import pytest

from termbridge.session import CLOSE_GOING_AWAY, Session, SessionError, SessionRegistry


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


class TestRegistry:
    @pytest.mark.asyncio
    async def test_register_and_lookup(self, registry, connection, recorder) -> None:
        session = Session(connection, recorder, session_id="s1")
        registry.register("conn-1", session)

        assert len(registry) == 1
        assert "s1" in registry
        assert registry.get("s1") is session
        assert registry.get("missing") is None

    @pytest.mark.asyncio
    async def test_one_session_per_connection(self, registry, connection, recorder) -> None:
        registry.register("conn-1", Session(connection, recorder))
        with pytest.raises(SessionError):
            registry.register("conn-1", Session(connection, recorder))

    @pytest.mark.asyncio
    async def test_closed_sessions_are_forgotten(self, registry, connection, recorder) -> None:
        session = Session(connection, recorder)
        registry.register("conn-1", session)
        await session.open()

        await session.close()

        assert len(registry) == 0
        registry.register("conn-1", Session(connection, recorder))
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_list_sessions(self, registry, connection, recorder) -> None:
        first = Session(connection, recorder, session_id="a")
        second = Session(connection, recorder, session_id="b")
        registry.register(1, first)
        registry.register(2, second)
        await first.open()

        infos = {info.session_id: info for info in registry.list_sessions()}

        assert set(infos) == {"a", "b"}
        assert infos["a"].state.value == "active"
        assert infos["b"].state.value == "opening"

    @pytest.mark.asyncio
    async def test_close_all_uses_going_away(self, registry, connection, recorder) -> None:
        sessions = [Session(connection, recorder) for _ in range(3)]
        for key, session in enumerate(sessions):
            registry.register(key, session)
            await session.open()

        await registry.close_all()

        assert len(registry) == 0
        assert all(s.is_closed for s in sessions)
        assert all(s.close_code == CLOSE_GOING_AWAY for s in sessions)
        assert connection.close_calls == [CLOSE_GOING_AWAY] * 3

    def test_going_away_code(self) -> None:
        assert CLOSE_GOING_AWAY == 1001
