"""Command-line interface for termbridge.

Provides the main entry point for serving terminal UIs over WebSocket
and for attaching the local terminal to a running server.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="termbridge",
        description="Stream a server-rendered terminal UI over a WebSocket",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/termbridge.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Start the WebSocket server")
    serve_parser.add_argument("--host", type=str, default=None, help="Override server.host")
    serve_parser.add_argument("--port", type=int, default=None, help="Override server.port")
    serve_parser.add_argument(
        "--engine", type=str, default=None,
        help="Rendering engine to serve: prompt or echo (default: engine.name)",
    )

    attach_parser = subparsers.add_parser(
        "attach", help="Attach this terminal to a running server (Ctrl-] detaches)",
    )
    attach_parser.add_argument(
        "url", nargs="?", default=None,
        help="WebSocket URL (default: client.url, e.g. ws://localhost:3000/term)",
    )

    return parser.parse_args(argv)


def _serve(settings, args) -> None:
    """Start uvicorn with the configured app."""
    import uvicorn

    from termbridge.server import create_app

    if args.host:
        settings.server.host = args.host
    if args.port:
        settings.server.port = args.port
    if args.engine:
        settings.engine.name = args.engine

    app = create_app(settings)
    logger.info(
        "Serving on http://%s:%d (websocket %s)",
        settings.server.host, settings.server.port, settings.server.websocket_path,
    )
    uvicorn.run(app, host=settings.server.host, port=settings.server.port)


async def _attach(settings, url: str) -> None:
    """Bridge the local terminal to a server until either side closes."""
    from termbridge.client.local import LocalTerminal
    from termbridge.client.transport import ClientTransport

    transport = await ClientTransport.connect(
        url, LocalTerminal(), open_timeout=settings.client.open_timeout,
    )
    await transport.run()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the termbridge CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from termbridge.config.settings import load_settings
    from termbridge.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if args.command == "serve":
        logger.info("Starting termbridge server")
        _serve(settings, args)

    elif args.command == "attach":
        url = args.url or settings.client.url
        logger.info("Attaching to %s", url)
        try:
            asyncio.run(_attach(settings, url))
        except OSError as e:
            print(f"Could not connect to {url}: {e}", file=sys.stderr)
            sys.exit(1)


if __name__ == "__main__":
    main()
