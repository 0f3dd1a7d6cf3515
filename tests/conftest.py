"""
pytest configuration and fixtures.
"""

import http.client
import threading
from pathlib import Path
from typing import Generator, Optional

import pytest

from queryserver import HTTPServer, ServerConfig, create_app
from queryserver.app import Application
from queryserver.http import HTTPRequest


INDEX_HTML = b"<!doctype html><title>queryserver</title><h1>Hello</h1>\n"
STYLE_CSS = b"body { font-family: sans-serif; }\n"
LOGO_PNG = b"\x89PNG\r\n\x1a\n" + bytes(range(32))


@pytest.fixture
def public_dir(tmp_path: Path) -> Path:
    """A public directory with a few files, a subdirectory and a dotfile."""
    root = tmp_path / "public"
    root.mkdir()
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "style.css").write_bytes(STYLE_CSS)
    (root / "logo.png").write_bytes(LOGO_PNG)
    (root / ".secret").write_text("hunter2")
    (root / "docs").mkdir()
    (root / "docs" / "index.html").write_bytes(b"<h1>Docs</h1>")
    (root / "empty").mkdir()
    (tmp_path / "outside.txt").write_text("not public")
    return root


@pytest.fixture
def config(public_dir: Path) -> ServerConfig:
    """Test configuration: ephemeral port, small pool, quiet logs."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        public_dir=str(public_dir),
        workers=2,
        queue_size=8,
        timeout=5.0,
        keep_alive_timeout=1.0,
        log_level="WARNING",
    )


@pytest.fixture
def app(config: ServerConfig) -> Application:
    return create_app(config)


def make_request(
    method: str = "GET",
    path: str = "/",
    query: Optional[dict] = None,
    headers: Optional[dict] = None,
    raw_path: str = "",
) -> HTTPRequest:
    """Build an HTTPRequest directly, without going through the parser."""
    return HTTPRequest(
        method=method,
        path=path,
        raw_path=raw_path,
        query_params={k: list(v) if isinstance(v, list) else [v] for k, v in (query or {}).items()},
        headers={k.lower(): v for k, v in (headers or {}).items()},
        client_address=("127.0.0.1", 50000),
    )


class RunningServer:
    """HTTPServer running on a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def connection(self) -> http.client.HTTPConnection:
        return http.client.HTTPConnection("127.0.0.1", self.port, timeout=5)

    def request(self, method: str, path: str, headers: Optional[dict] = None):
        """One request on a fresh connection; returns (response, body)."""
        conn = self.connection()
        try:
            conn.request(method, path, headers=headers or {})
            response = conn.getresponse()
            body = response.read()
            return response, body
        finally:
            conn.close()


def start_server(app: Application) -> RunningServer:
    running = RunningServer(HTTPServer(app, configure_logging=False))
    running.start()
    return running


@pytest.fixture
def running_server(app: Application) -> Generator[RunningServer, None, None]:
    running = start_server(app)
    try:
        yield running
    finally:
        running.stop()
