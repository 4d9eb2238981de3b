"""Tests for the local terminal emulator, driven through pipes."""

from __future__ import annotations

import asyncio
import os

import pytest

pytest.importorskip("termios")

from termbridge.client.local import RESTORE_SEQUENCE, LocalTerminal  # noqa: E402


@pytest.fixture
def pipes():
    stdin_r, stdin_w = os.pipe()
    stdout_r, stdout_w = os.pipe()
    yield stdin_r, stdin_w, stdout_r, stdout_w
    for fd in (stdin_r, stdin_w, stdout_r, stdout_w):
        try:
            os.close(fd)
        except OSError:
            pass


class TestLocalTerminal:
    @pytest.mark.asyncio
    async def test_forwards_stdin(self, pipes) -> None:
        stdin_r, stdin_w, _, stdout_w = pipes
        terminal = LocalTerminal(stdin_fd=stdin_r, stdout_fd=stdout_w)
        received: list[bytes] = []
        got_input = asyncio.Event()

        def on_input(data: bytes) -> None:
            received.append(data)
            got_input.set()

        terminal.on_input(on_input)
        terminal.start()
        try:
            os.write(stdin_w, b"ls\r")
            await asyncio.wait_for(got_input.wait(), timeout=1.0)
        finally:
            terminal.stop()

        assert received == [b"ls\r"]

    @pytest.mark.asyncio
    async def test_detach_key_closes(self, pipes) -> None:
        stdin_r, stdin_w, _, stdout_w = pipes
        terminal = LocalTerminal(stdin_fd=stdin_r, stdout_fd=stdout_w)
        received: list[bytes] = []
        closed = asyncio.Event()
        terminal.on_input(received.append)
        terminal.on_close(closed.set)

        terminal.start()
        try:
            os.write(stdin_w, b"ab\x1dcd")
            await asyncio.wait_for(closed.wait(), timeout=1.0)
        finally:
            terminal.stop()

        assert received == [b"ab"]

    @pytest.mark.asyncio
    async def test_eof_closes(self, pipes) -> None:
        stdin_r, stdin_w, _, stdout_w = pipes
        terminal = LocalTerminal(stdin_fd=stdin_r, stdout_fd=stdout_w)
        closed = asyncio.Event()
        terminal.on_close(closed.set)

        terminal.start()
        try:
            os.close(stdin_w)
            await asyncio.wait_for(closed.wait(), timeout=1.0)
        finally:
            terminal.stop()

    @pytest.mark.asyncio
    async def test_stop_restores_screen_once(self, pipes) -> None:
        stdin_r, _, stdout_r, stdout_w = pipes
        terminal = LocalTerminal(stdin_fd=stdin_r, stdout_fd=stdout_w)

        terminal.start()
        terminal.write(b"\x1b[?1049h\x1b[?1000hframe")
        terminal.stop()
        terminal.stop()

        output = os.read(stdout_r, 4096)
        assert output == b"\x1b[?1049h\x1b[?1000hframe" + RESTORE_SEQUENCE

    def test_size_falls_back_to_environment(self, pipes, monkeypatch) -> None:
        stdin_r, _, _, stdout_w = pipes
        monkeypatch.setenv("COLUMNS", "132")
        monkeypatch.setenv("LINES", "43")

        terminal = LocalTerminal(stdin_fd=stdin_r, stdout_fd=stdout_w)

        assert terminal.get_size() == (132, 43)
