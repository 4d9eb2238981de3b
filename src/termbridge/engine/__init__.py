"""Rendering engines for termbridge.

Engines are pluggable: the session only knows the RenderingEngine
interface, and the server builds one per connection from a factory.

Public API:
    RenderingEngine -- Abstract base class
    EngineFailure -- Raised when an engine fails during a session
    get_engine_factory -- Factory for a configured built-in engine
"""

from __future__ import annotations

from functools import partial

from termbridge.config.settings import EngineConfig, TerminalConfig
from termbridge.engine.base import EngineFactory, EngineFailure, RenderingEngine

__all__ = ["EngineFactory", "EngineFailure", "RenderingEngine", "get_engine_factory"]


def get_engine_factory(
    config: EngineConfig | None = None,
    terminal: TerminalConfig | None = None,
) -> EngineFactory:
    """Return a factory building the engine named in ``config``.

    Raises:
        ValueError: If the engine name is unknown.
    """
    from termbridge.engine.prompt import EchoScreen, PromptScreen

    config = config or EngineConfig()
    terminal = terminal or TerminalConfig()

    if config.name == "prompt":
        return partial(
            PromptScreen,
            title=config.title,
            mouse=terminal.mouse,
            tick_interval=config.tick_interval,
        )
    if config.name == "echo":
        return EchoScreen
    raise ValueError(f"Unknown engine: {config.name!r} (expected 'prompt' or 'echo')")
