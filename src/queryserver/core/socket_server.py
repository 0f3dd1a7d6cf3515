"""
=============================================================================
SOCKET SERVER
=============================================================================

The TCP layer: bind, listen, accept, hand each connection to a callback.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   bind()            socket() + SO_REUSEADDR, bind, listen            │
    │     │               raises OSError when the address is taken         │
    │     ▼                                                                │
    │   serve(handler)    accept loop, 1s accept timeout so that a         │
    │     │               shutdown() from any thread is noticed quickly    │
    │     ▼                                                                │
    │   shutdown()        flag the loop to stop; idempotent                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

bind() and serve() are separate so that a bind failure surfaces before
anything else starts, and so that port 0 can be resolved to the real port
(see ``address``) before the first accept.

SIGINT and SIGTERM trigger shutdown(), but only when serve() runs on the
main thread; Python only allows signal handlers there.
=============================================================================
"""

from typing import Callable, Optional, Tuple
import logging
import signal
import socket
import threading

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

ConnectionHandler = Callable[[Connection], None]


class SocketServer:
    """
    Low-level TCP server.

        server = SocketServer(config)
        server.bind()
        server.serve(handle_connection)   # blocks until shutdown()
    """

    ACCEPT_TIMEOUT = 1.0

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready = threading.Event()
        self._stopped = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); the real port when configured with 0."""
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return host, port
        return self.config.host, self.config.port

    def bind(self):
        """
        Create the listening socket.

        Raises:
            OSError: the address could not be bound (in use, no permission).
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.settimeout(self.ACCEPT_TIMEOUT)

        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise

        self._socket = sock
        self._stopped.clear()
        host, port = self.address
        logger.info(f"Listening on http://{host}:{port}")

    def serve(self, connection_handler: ConnectionHandler):
        """Accept connections until shutdown(). Blocks."""
        if self._socket is None:
            raise RuntimeError("bind() must be called before serve()")

        self._running = True
        self._setup_signals()
        self._ready.set()
        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: ConnectionHandler):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")
            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread; signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down...")
            self.shutdown()

        for sig in (signal.SIGINT, signal.SIGTERM):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def shutdown(self):
        """Stop accepting. Safe to call from any thread, any number of times."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._running = False
        self._restore_signals()
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
        self._ready.clear()
        self._stopped.set()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop is running. False on timeout."""
        return self._ready.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop has exited and the socket is closed."""
        return self._stopped.wait(timeout)
