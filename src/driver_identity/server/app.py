"""HTTP server for driver-identity using stdlib http.server.

Routes:
    POST   /driver/create-did   — create (or load) the driver DID
    POST   /driver/issue-vc     — issue the driver credential
    POST   /driver/create-vp    — present the driver credential
    POST   /driver/verify       — verify the driver presentation
    GET    /health              — health check

Requests are accepted on one thread each (``ThreadingHTTPServer``); every
handler coroutine runs on a single shared event loop owned by the server, so
per-role identity locks and ledger clients are shared across requests.

Usage:
    python -m driver_identity.server.app --port 3002
    python -m driver_identity.server.app --host 127.0.0.1 --port 9000
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import threading
import urllib.parse
from collections.abc import Coroutine
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, TypeVar

from driver_identity.config import DEFAULT_PORT
from driver_identity.server import routes

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventLoopThread:
    """An asyncio event loop running forever on a daemon thread."""

    def __init__(self) -> None:
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._loop.run_forever, name="driver-identity-loop", daemon=True
        )

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def start(self) -> None:
        self._thread.start()

    def run(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run *coro* on the loop and block the calling thread until it finishes."""
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result()

    def stop(self) -> None:
        if self.running:
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join()
        self._loop.close()


class DriverIdentityServer(ThreadingHTTPServer):
    """ThreadingHTTPServer that owns the shared event loop."""

    daemon_threads = True

    def __init__(self, address: tuple[str, int]) -> None:
        self.loop_thread = EventLoopThread()
        super().__init__(address, DriverIdentityHandler)
        self.loop_thread.start()

    def server_close(self) -> None:
        try:
            if self.loop_thread.running:
                self.loop_thread.run(routes.close_service())
        finally:
            self.loop_thread.stop()
            super().server_close()


class DriverIdentityHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the driver-identity server.

    Routes carry no request payload; any body sent is ignored. All responses
    are JSON.
    """

    server: DriverIdentityServer

    def log_message(self, format: str, *args: object) -> None:
        """Override to route access logs through the Python logging system."""
        logger.debug(format, *args)

    # ── GET ───────────────────────────────────────────────────────────────────

    def do_GET(self) -> None:
        """Handle GET requests (only ``/health``)."""
        path = urllib.parse.urlparse(self.path).path.rstrip("/")
        if path == "/health":
            status, data = self.server.loop_thread.run(routes.handle_health())
            self._send_json(status, data)
        else:
            self._send_json(404, {"error": "Not found", "detail": f"No route for GET {path}"})

    # ── POST ──────────────────────────────────────────────────────────────────

    def do_POST(self) -> None:
        """Handle all POST requests by routing on the URL path."""
        path = urllib.parse.urlparse(self.path).path.rstrip("/")
        self._discard_body()

        handler = routes.POST_ROUTES.get(path)
        if handler is None:
            self._send_json(404, {"error": "Not found", "detail": f"No route for POST {path}"})
            return
        status, data = self.server.loop_thread.run(handler())
        self._send_json(status, data)

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _send_json(self, status: int, data: dict[str, object]) -> None:
        """Serialize *data* to JSON and send an HTTP response with *status*."""
        body = json.dumps(data, default=str).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _discard_body(self) -> None:
        content_length = int(self.headers.get("Content-Length", 0) or 0)
        if content_length > 0:
            self.rfile.read(content_length)


def create_server(host: str = "0.0.0.0", port: int = DEFAULT_PORT) -> DriverIdentityServer:
    """Create (but do not start) the driver-identity HTTP server.

    Parameters
    ----------
    host:
        Bind address (default ``"0.0.0.0"``, all interfaces).
    port:
        TCP port to listen on (default 3002).

    Returns
    -------
    DriverIdentityServer
        A configured server instance ready to call ``serve_forever()`` on.
    """
    server = DriverIdentityServer((host, port))
    logger.info("driver-identity server created at http://%s:%d", host, port)
    return server


def run_server(host: str = "0.0.0.0", port: int = DEFAULT_PORT) -> None:
    """Create and run the driver-identity HTTP server (blocking)."""
    server = create_server(host=host, port=port)
    logger.info("Serving driver-identity on http://%s:%d, press Ctrl-C to stop", host, port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down driver-identity server.")
    finally:
        server.server_close()


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="driver-identity HTTP server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="TCP port")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    return parser


if __name__ == "__main__":
    args = _build_arg_parser().parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level))
    run_server(host=args.host, port=args.port)
