"""
Unit tests for HTTPServer connection hand-off.
"""

from queryserver import HTTPServer
from queryserver.core.connection import Connection


class RecordingSocket:
    """Just enough of a socket for Connection; remembers timeouts and writes."""

    def __init__(self):
        self.timeouts = []
        self.sent = b""
        self.timeout_at_send = None
        self.closed = False

    def setblocking(self, flag):
        pass

    def settimeout(self, value):
        self.timeouts.append(value)

    def sendall(self, data):
        self.timeout_at_send = self.timeouts[-1]
        self.sent += data

    def shutdown(self, how):
        pass

    def recv(self, size):
        return b""

    def close(self):
        self.closed = True


class FullPool:
    def submit(self, func, *args):
        return False


class TestOverload:
    """Tests for the queue-full path."""

    def test_rejects_with_503_and_short_send_timeout(self, app):
        server = HTTPServer(app, configure_logging=False)
        server._thread_pool = FullPool()
        sock = RecordingSocket()
        conn = Connection(socket=sock, address=("127.0.0.1", 50000), timeout=30.0)

        server._handle_connection(conn)

        assert sock.sent.startswith(b"HTTP/1.1 503 Service Unavailable\r\n")
        assert sock.timeout_at_send == HTTPServer.REJECT_SEND_TIMEOUT
        assert sock.timeout_at_send < conn.timeout
        assert sock.closed
