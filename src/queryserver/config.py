"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All tunables in one immutable value. The defaults reproduce the stock
behaviour: port 8097, files from ./public, INFO logging.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    WHERE A SETTING COMES FROM                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   field default   ◄── QUERYSERVER_* env var   ◄── CLI flag           │
    │    (lowest)              (from_env)              (__main__)          │
    │                                                  (highest)           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The config is frozen: it is built once, validated once, and then read by
every thread. To derive a variant use replace():

    config = ServerConfig.from_env().replace(port=0)
=============================================================================
"""

from dataclasses import dataclass, replace as _replace
from typing import Optional
import os

from . import __version__


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
ACCESS_LOG_FORMATS = ("text", "json")

DEFAULT_PORT = 8097


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the query server.

    NETWORK       host, port, backlog, buffer_size, timeout
    HTTP          keep_alive, keep_alive_timeout, max_request_size
    THREADING     workers, queue_size
    APPLICATION   public_dir
    LOGGING       log_level, access_log_format
    """

    host: str = "127.0.0.1"
    """Interface to bind. "0.0.0.0" for all interfaces."""

    port: int = DEFAULT_PORT
    """Port to listen on. 0 asks the OS for a free port (useful in tests)."""

    public_dir: str = "public"
    """Directory served as static files, relative to the working directory."""

    backlog: int = 128
    buffer_size: int = 8192

    timeout: Optional[float] = 30.0
    """
    Socket timeout in seconds for the first request on a connection.
    A client that sends nothing in this time gets 408.
    """

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    """Idle time allowed between requests on a kept-alive connection."""

    max_request_size: int = 1024 * 1024
    """Largest accepted request, head plus body. Bigger gets 413."""

    workers: int = 8
    queue_size: int = 64
    """Connections waiting for a worker. Beyond this new ones get 503."""

    log_level: str = "INFO"
    access_log_format: str = "text"
    server_name: str = f"queryserver/{__version__}"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Defaults overridden by environment variables.

            QUERYSERVER_HOST         bind address
            QUERYSERVER_PORT         listen port
            QUERYSERVER_PUBLIC_DIR   static directory
            QUERYSERVER_TIMEOUT      first-request timeout, seconds
            QUERYSERVER_WORKERS      worker threads
            QUERYSERVER_LOG_LEVEL    DEBUG, INFO, ...

        Unset variables keep the field default. A malformed number raises
        ValueError naming the variable.
        """
        defaults = cls()
        return cls(
            host=os.getenv("QUERYSERVER_HOST", defaults.host),
            port=_env_number("QUERYSERVER_PORT", int, defaults.port),
            public_dir=os.getenv("QUERYSERVER_PUBLIC_DIR", defaults.public_dir),
            timeout=_env_number("QUERYSERVER_TIMEOUT", float, defaults.timeout),
            workers=_env_number("QUERYSERVER_WORKERS", int, defaults.workers),
            log_level=os.getenv("QUERYSERVER_LOG_LEVEL", defaults.log_level).upper(),
        )

    def replace(self, **changes) -> "ServerConfig":
        """Copy with some fields changed."""
        return _replace(self, **changes)

    def validate(self) -> None:
        """Raise ValueError on the first bad setting."""
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")
        if self.workers < 1:
            raise ValueError("workers must be >= 1")
        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")
        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")
        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be > 0")
        if self.max_request_size < self.buffer_size:
            raise ValueError("max_request_size must be >= buffer_size")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        if self.access_log_format not in ACCESS_LOG_FORMATS:
            raise ValueError(f"access_log_format must be one of {', '.join(ACCESS_LOG_FORMATS)}")


def _env_number(name: str, convert, default):
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return convert(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}") from None
