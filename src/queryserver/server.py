"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the socket layer to the application.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        REQUEST LIFECYCLE                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SocketServer.accept()                                              │
    │        │                                                             │
    │        ▼                                                             │
    │   ThreadPool.submit(_process_connection)   queue full → 503          │
    │        │                                                             │
    │        ▼  (worker thread)                                            │
    │   Connection.read_request()                too slow → 408            │
    │        │                                   too big  → 413            │
    │        ▼                                                             │
    │   RequestParser.parse()                    malformed → 400/405/505   │
    │        │                                                             │
    │        ▼                                                             │
    │   app(request)                             AccessLog → Error →       │
    │        │                                   Dispatcher                │
    │        ▼                                                             │
    │   Connection.send_response()               HEAD → headers only       │
    │        │                                                             │
    │        └── keep-alive? loop : close                                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Errors found before the application sees the request (framing, parsing,
overload) are answered here with a text/plain body and the connection is
closed.
=============================================================================
"""

from typing import Optional, Tuple
import logging

from .app import Application, create_app
from .core.connection import Connection, ConnectionState, RequestTooLargeError
from .core.socket_server import SocketServer
from .core.thread_pool import ThreadPool
from .http.request import HTTPParseError, RequestParser
from .http.response import error_response, internal_error
from .http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Multi-threaded HTTP/1.1 server for an Application.

        server = HTTPServer(create_app())
        server.run()            # blocks until SIGINT/SIGTERM or shutdown()

    For tests, run() goes in a thread:

        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready(5)
        host, port = server.address
        ...
        server.shutdown()
    """

    # The 503 is written on the accept thread; a client that will not read
    # must not stall accept() for the full request timeout.
    REJECT_SEND_TIMEOUT = 1.0

    def __init__(self, app: Application, configure_logging: bool = True):
        self.app = app
        self.config = app.config
        self.configure_logging = configure_logging

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            workers=self.config.workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._running = False

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port), with the real port when configured as 0."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Bind, then serve until shut down.

        Raises:
            OSError: the port could not be bound. Nothing has been started
                     at that point, so there is nothing to clean up.
        """
        if self.configure_logging:
            setup_logging(self.config.log_level)

        self._socket_server.bind()

        self._running = True
        self._thread_pool.start()

        host, port = self.address
        logger.info(f"{self.config.server_name} serving {self.config.public_dir!r} on http://{host}:{port}")

        try:
            self._socket_server.serve(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask a running server to stop. Returns immediately."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_for_shutdown(timeout)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(timeout=self.config.keep_alive_timeout + 5.0)
        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Called on the accept thread; hands the connection to a worker."""
        if not self._thread_pool.submit(self._process_connection, conn):
            logger.warning(f"[{conn.id}] Worker queue full, rejecting {conn.client_ip}")
            conn.socket.settimeout(self.REJECT_SEND_TIMEOUT)
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection):
        """Keep-alive loop for one connection (worker thread)."""
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except RequestTooLargeError as e:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                    break

                if raw_request is None:
                    break

                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    logger.debug(f"[{conn.id}] Parse error: {e}")
                    self._send_error(conn, HTTPStatus(e.status_code), str(e))
                    break

                conn.state = ConnectionState.PROCESSING
                try:
                    response = self.app(request)
                except Exception as e:
                    # Only reached if the middleware stack itself fails.
                    logger.exception(f"[{conn.id}] Unhandled error: {e}")
                    response = internal_error()

                keep_alive = (
                    self.config.keep_alive
                    and request.is_keep_alive
                    and response.headers.get("Connection", "").lower() != "close"
                )
                if keep_alive:
                    response.headers.setdefault("Connection", "keep-alive")
                    response.headers.setdefault(
                        "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
                    )
                else:
                    response.headers["Connection"] = "close"

                data = response.to_bytes(
                    self.config.server_name,
                    include_body=not request.is_head,
                )
                if not conn.send_response(data) or not keep_alive:
                    break

                conn.set_keep_alive()

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        response = error_response(status, message)
        conn.send_response(response.to_bytes(self.config.server_name))


def setup_logging(level: str = "INFO"):
    """Root logging config for the process, plus the queryserver logger level."""
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("queryserver").setLevel(numeric)


def serve(app: Optional[Application] = None) -> HTTPServer:
    """Run ``app`` (the stock application by default) until shutdown. Blocks."""
    server = HTTPServer(app or create_app())
    server.run()
    return server
