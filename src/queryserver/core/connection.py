"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps an accepted socket and frames HTTP requests out of the byte stream.

TCP has no message boundaries. One recv() may return half a request, or a
request and a half when the client pipelines:

    recv #1   "GET /query?animal=cat HTTP/1.1\\r\\nHo"
    recv #2   "st: x\\r\\n\\r\\nGET /style.css HTTP/1.1\\r\\n..."
                          ▲
                          └── first request ends here; the rest stays
                              in the buffer for the next read_request()

A request is complete once the blank line after the headers has arrived
plus Content-Length bytes of body.

=============================================================================
TIMEOUTS
=============================================================================

    first request      timeout               expiry → TimeoutError (408)
    later requests     keep_alive_timeout    expiry → None (quiet close)
=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import logging
import re
import socket
import uuid


logger = logging.getLogger(__name__)

_CONTENT_LENGTH = re.compile(rb"^content-length:[ \t]*(\d+)[ \t]*$", re.IGNORECASE | re.MULTILINE)


class RequestTooLargeError(ValueError):
    """The request grew past max_request_size before it was complete."""


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    One accepted client socket.

    Used as a context manager by the worker so the socket is always
    released:

        with conn:
            while (data := conn.read_request()) is not None:
                conn.send_response(handle(data))
    """

    socket: socket.socket
    address: tuple[str, int]
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    def read_request(self) -> Optional[bytes]:
        """
        Read the next complete request.

        Returns:
            The request bytes, or None when the client closed the
            connection or went idle between keep-alive requests.

        Raises:
            TimeoutError: the first request did not arrive in time.
            RequestTooLargeError: more than max_request_size bytes.
        """
        self.state = ConnectionState.READING
        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._buffer += chunk
                self._check_size()

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._content_length(self._buffer[:header_end])

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break  # short body; the parser reports it
                self._buffer += chunk
                self._check_size()

            request_end = body_start + content_length
            data, self._buffer = self._buffer[:request_end], self._buffer[request_end:]
            self.requests_handled += 1
            return data

        except socket.timeout:
            if self.requests_handled > 0:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout") from None

        finally:
            self.socket.settimeout(self.timeout)

    def _recv(self) -> bytes:
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def _check_size(self):
        if len(self._buffer) > self.max_request_size:
            raise RequestTooLargeError(f"Request too large: {len(self._buffer)} bytes")

    @staticmethod
    def _content_length(head: bytes) -> int:
        # Malformed values read as 0 here; the parser rejects them properly.
        match = _CONTENT_LENGTH.search(head)
        return int(match.group(1)) if match else 0

    def send_response(self, data: bytes) -> bool:
        """sendall() the bytes; False if the client has gone away."""
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.debug(f"[{self.id}] Send failed: {e}")
            return False

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    def close(self):
        """Half-close, drain briefly, then release the socket. Idempotent."""
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Closed after {self.requests_handled} requests")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
