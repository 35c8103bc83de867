"""Command that starts the management API and the mock server."""

from __future__ import annotations

import argparse
import sys
import threading
from collections.abc import Sequence

from werkzeug.serving import BaseWSGIServer, make_server

from .api import create_api_app
from .db import Store, open_connection
from .logs import get_logger, init_logging
from .mock_app import create_mock_app

API_PORT = 5080
MOCK_PORT = 5081


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="mockhttpd", description="Run the mock HTTP service.")
    parser.add_argument("--host", default="0.0.0.0", help="address to listen on")
    parser.add_argument("--api-port", type=int, default=API_PORT, help="management API port")
    parser.add_argument("--mock-port", type=int, default=MOCK_PORT, help="mock server port")
    return parser.parse_args(argv)


def _build_servers(
    store: Store, host: str, api_port: int, mock_port: int
) -> tuple[BaseWSGIServer, BaseWSGIServer]:
    """Bind the mock and API servers; exits with 2 or 3 when binding fails."""
    logger = get_logger("main", component="main")
    try:
        mock_server = make_server(host, mock_port, create_mock_app(store), threaded=True)
    except (OSError, SystemExit) as exc:
        logger.error(f"failed to listen and serve mock app router with error [{exc}]")
        raise SystemExit(2) from None
    try:
        api_server = make_server(host, api_port, create_api_app(store), threaded=True)
    except (OSError, SystemExit) as exc:
        mock_server.server_close()
        logger.error(f"failed to listen and serve api router with error [{exc}]")
        raise SystemExit(3) from None
    return mock_server, api_server


def main(argv: Sequence[str] | None = None) -> int:
    """Start both servers and serve until interrupted."""
    args = _parse_args(argv)
    init_logging()
    logger = get_logger("main", component="main")
    logger.info("starting mock service")

    try:
        store = open_connection()
    except Exception as exc:
        logger.error(f"failed to open DB connection with error [{exc}]")
        raise SystemExit(1) from None

    mock_server, api_server = _build_servers(store, args.host, args.api_port, args.mock_port)

    logger.info(f"starting mock app router on port {args.mock_port}...")
    mock_thread = threading.Thread(target=mock_server.serve_forever, daemon=True)
    mock_thread.start()

    logger.info(f"starting api router on port {args.api_port}...")
    try:
        api_server.serve_forever()
    except KeyboardInterrupt:
        pass
    except OSError as exc:
        logger.error(f"failed to listen and serve api router with error [{exc}]")
        raise SystemExit(3) from None
    finally:
        mock_server.shutdown()
        mock_server.server_close()
        api_server.server_close()
    return 0


if __name__ == "__main__":
    sys.exit(main())