"""HTTP server adapter for the user API.

Provides a simple HTTP server using Python's built-in http.server module.
Requests are handled on worker threads and the use cases run as coroutines
on the application's event loop, bounded by a per-request timeout. When
the timeout expires the coroutine is cancelled, which also cancels any
store call it is waiting on.

Routes:
    POST   /api/v1/users
    GET    /api/v1/users?limit=&offset=
    GET    /api/v1/users/{id}
    PUT    /api/v1/users/{id}
    DELETE /api/v1/users/{id}
    GET    /health
"""

import asyncio
import concurrent.futures
import json
import logging
import re
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Coroutine
from urllib.parse import parse_qs, urlsplit

from userhub.adapters.http.api import (
    INTERNAL_ERROR_MESSAGE,
    APIResponse,
    UserAPI,
    bad_request,
)

logger = logging.getLogger(__name__)

MAX_BODY_SIZE = 1024 * 1024

_COLLECTION_PATH = re.compile(r"^/api/v1/users/?$")
_ITEM_PATH = re.compile(r"^/api/v1/users/([^/]+)/?$")


def _error(status: int, kind: str, code: str | None, message: str) -> APIResponse:
    return APIResponse(status, {"error": {"kind": kind, "code": code, "message": message}})


def _internal_error_response() -> APIResponse:
    return _error(500, "INTERNAL_ERROR", None, INTERNAL_ERROR_MESSAGE)


def make_user_handler(
    api: UserAPI,
    event_loop: asyncio.AbstractEventLoop,
    request_timeout: float,
) -> type[BaseHTTPRequestHandler]:
    """Factory to create a UserHTTPHandler class with instance-specific state.

    Dependencies are captured by closure instead of class-level mutable
    state, so several servers can run in one process.

    Args:
        api: UserAPI that executes requests
        event_loop: Event loop the use cases run on
        request_timeout: Seconds to wait for a use case before giving up

    Returns:
        A UserHTTPHandler class configured with the provided dependencies
    """

    class UserHTTPHandler(BaseHTTPRequestHandler):
        """HTTP request handler for the user API."""

        protocol_version = "HTTP/1.1"

        def do_GET(self) -> None:
            """Handle GET requests (health, list, get)."""
            parts = urlsplit(self.path)
            if parts.path == "/health":
                self._send_response(APIResponse(200, {"status": "healthy"}))
                return

            if _COLLECTION_PATH.match(parts.path):
                query = parse_qs(parts.query)
                self._dispatch(api.list_users(query))
                return

            match = _ITEM_PATH.match(parts.path)
            if match:
                self._dispatch(api.get_user(match.group(1)))
                return

            self._send_not_found()

        def do_POST(self) -> None:
            """Handle POST requests (create)."""
            parts = urlsplit(self.path)
            if not _COLLECTION_PATH.match(parts.path):
                self._send_not_found()
                return

            ok, data = self._read_json_body()
            if not ok:
                return
            self._dispatch(api.create_user(data))

        def do_PUT(self) -> None:
            """Handle PUT requests (partial update)."""
            match = _ITEM_PATH.match(urlsplit(self.path).path)
            if not match:
                self._send_not_found()
                return

            ok, data = self._read_json_body()
            if not ok:
                return
            self._dispatch(api.update_user(match.group(1), data))

        def do_DELETE(self) -> None:
            """Handle DELETE requests."""
            match = _ITEM_PATH.match(urlsplit(self.path).path)
            if not match:
                self._send_not_found()
                return
            self._dispatch(api.delete_user(match.group(1)))

        def _read_json_body(self) -> tuple[bool, Any]:
            """Read and decode the JSON body.

            Returns:
                (True, data) on success. (False, None) after an error
                response has already been sent.
            """
            try:
                content_length = int(self.headers.get("Content-Length", 0))
            except ValueError:
                self._send_response(bad_request("Invalid Content-Length"))
                return False, None

            if content_length > MAX_BODY_SIZE:
                # The unread body would corrupt a kept-alive connection
                self.close_connection = True
                self._send_response(
                    _error(413, "VALIDATION_ERROR", "body_too_large", "Request body too large")
                )
                return False, None

            body = self.rfile.read(content_length) if content_length > 0 else b""

            try:
                return True, json.loads(body) if body else {}
            except (json.JSONDecodeError, UnicodeDecodeError):
                self._send_response(bad_request("Invalid JSON"))
                return False, None

        def _dispatch(self, coro: Coroutine[Any, Any, APIResponse]) -> None:
            """Run a use-case coroutine on the event loop and send its response."""
            future = asyncio.run_coroutine_threadsafe(coro, event_loop)
            try:
                response = future.result(timeout=request_timeout)
            except concurrent.futures.TimeoutError:
                future.cancel()
                logger.error(
                    f"Request timed out after {request_timeout}s: "
                    f"{self.command} {self.path}"
                )
                response = _internal_error_response()
            except Exception as e:
                # Log full exception server-side for debugging
                logger.error(f"Error handling request: {e}", exc_info=True)
                # Return generic error to client without details
                response = _internal_error_response()
            self._send_response(response)

        def _send_not_found(self) -> None:
            if self.headers.get("Content-Length", "0").strip() not in ("", "0"):
                # The unread body would corrupt a kept-alive connection
                self.close_connection = True
            self._send_response(_error(404, "NOT_FOUND_ERROR", "route_not_found", "Not found"))

        def _send_response(self, response: APIResponse) -> None:
            """Send a JSON response (or an empty one for 204)."""
            payload = b"" if response.body is None else json.dumps(response.body).encode()
            self.send_response(response.status)
            if payload:
                self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            if payload:
                self.wfile.write(payload)

        def log_message(self, format: str, *args: Any) -> None:
            """Log HTTP request."""
            logger.debug(f"HTTP {self.client_address[0]}: {format % args}")

    return UserHTTPHandler


class UserHTTPServer:
    """HTTP server adapter exposing the user API."""

    def __init__(
        self,
        api: UserAPI,
        host: str = "0.0.0.0",
        port: int = 8081,
        request_timeout: float = 30.0,
    ):
        """Initialize the HTTP server.

        Args:
            api: UserAPI instance to handle requests.
            host: Host to listen on (default 0.0.0.0).
            port: Port to listen on (default 8081, 0 picks a free port).
            request_timeout: Seconds allowed per request (default 30).
        """
        if request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        self.api = api
        self.host = host
        self.port = port
        self.request_timeout = request_timeout
        self.server: ThreadingHTTPServer | None = None
        self._server_task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        """Start the HTTP server."""
        handler_class = make_user_handler(
            api=self.api,
            event_loop=asyncio.get_running_loop(),
            request_timeout=self.request_timeout,
        )

        self.server = ThreadingHTTPServer((self.host, self.port), handler_class)
        self.server.daemon_threads = True
        # Reflect the bound port when an ephemeral port was requested
        self.port = self.server.server_address[1]

        self._server_task = asyncio.create_task(self._run_server())
        logger.info(f"User HTTP server started on {self.host}:{self.port}")

    async def _run_server(self) -> None:
        """Run the HTTP server loop in a thread pool."""
        if not self.server:
            return

        try:
            # Run the blocking server loop in a thread pool to avoid blocking the event loop
            await asyncio.to_thread(self.server.serve_forever)
        except Exception as e:
            logger.error(f"User HTTP server error: {e}", exc_info=True)

    async def serve_forever(self) -> None:
        """Block until the server loop exits."""
        if self._server_task is not None:
            await self._server_task

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self.server:
            await asyncio.to_thread(self.server.shutdown)
            self.server.server_close()
            self.server = None
        if self._server_task:
            await self._server_task
            self._server_task = None
        logger.info("User HTTP server stopped")
