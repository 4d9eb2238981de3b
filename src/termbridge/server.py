"""FastAPI server exposing the terminal WebSocket endpoint.

Each WebSocket connection on ``server.websocket_path`` gets its own
session: a fresh virtual TTY and rendering engine, torn down when the
connection goes away. Everything else under ``/`` is the bundled browser
client (xterm.js), plus a couple of JSON endpoints for inspection:

    GET  /health           -> {"status": "ok", "sessions": 1}
    GET  /api/v1/sessions  -> {"sessions": [...]}
    GET  /api/v1/client-config -> {"websocket_path": "/term"}
    WS   /term             <- Control/Data frames, -> rendered output
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from termbridge.config.settings import Settings
from termbridge.domain.models import SessionInfo
from termbridge.engine import get_engine_factory
from termbridge.engine.base import EngineFactory
from termbridge.session.registry import SessionRegistry
from termbridge.session.session import CLOSE_INTERNAL_ERROR, Session

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"


class HealthResponse(BaseModel):
    status: str = "ok"
    sessions: int = Field(default=0, ge=0, description="Number of live sessions")


class SessionListResponse(BaseModel):
    sessions: list[SessionInfo] = Field(default_factory=list)


class ClientConfigResponse(BaseModel):
    websocket_path: str = Field(description="Path the browser client opens its WebSocket on")


def create_app(
    settings: Settings | None = None,
    engine_factory: EngineFactory | None = None,
    registry: SessionRegistry | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Server configuration. Defaults to ``Settings()``.
        engine_factory: Builds one rendering engine per session. Defaults
            to the engine named in ``settings.engine``.
        registry: Optional pre-built registry (for testing).
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "termbridge server started (websocket=%s, engine=%s)",
            settings.server.websocket_path, settings.engine.name,
        )
        yield
        await app.state.registry.close_all()
        logger.info("termbridge server stopped")

    app = FastAPI(
        title="termbridge",
        description="Server-rendered terminal UI streamed over a WebSocket",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.registry = registry or SessionRegistry()
    app.state.engine_factory = engine_factory or get_engine_factory(
        settings.engine, settings.terminal
    )

    @app.get("/health")
    async def health_check() -> HealthResponse:
        return HealthResponse(status="ok", sessions=len(app.state.registry))

    @app.get("/api/v1/sessions")
    async def list_sessions() -> SessionListResponse:
        return SessionListResponse(sessions=app.state.registry.list_sessions())

    @app.get("/api/v1/client-config")
    async def client_config() -> ClientConfigResponse:
        return ClientConfigResponse(websocket_path=settings.server.websocket_path)

    @app.websocket(settings.server.websocket_path)
    async def terminal(websocket: WebSocket) -> None:
        await websocket.accept()
        session = Session(
            websocket,
            app.state.engine_factory,
            terminal=settings.terminal,
            relay=settings.relay,
        )
        app.state.registry.register(id(websocket), session)

        try:
            await session.open()
            while not session.is_closed:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                data = message.get("bytes")
                if data is None:
                    data = message.get("text")
                if data is None:
                    continue
                await session.handle_message(data)
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.exception("Session %s crashed", session.session_id)
            await session.close(f"server error: {e}", code=CLOSE_INTERNAL_ERROR)
        finally:
            await session.close("connection closed")

    if settings.server.serve_static:
        static_dir = Path(settings.server.static_dir) if settings.server.static_dir else STATIC_DIR
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")

    return app


def main() -> None:
    """Entry point for running the server standalone."""
    settings = Settings()
    app = create_app(settings)
    uvicorn.run(app, host=settings.server.host, port=settings.server.port)


if __name__ == "__main__":
    main()
