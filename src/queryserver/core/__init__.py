"""
Networking and concurrency: the listening socket, per-client connections
and the worker pool that processes them.
"""

from .connection import Connection, ConnectionState, RequestTooLargeError
from .socket_server import SocketServer
from .thread_pool import ThreadPool

__all__ = [
    "Connection",
    "ConnectionState",
    "RequestTooLargeError",
    "SocketServer",
    "ThreadPool",
]
