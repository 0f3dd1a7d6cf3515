"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them for the socket.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    THE THREE RESPONSES THIS APP SENDS               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTP/1.1 200 OK                                                    │
    │   Content-Type: application/json; charset=utf-8                      │
    │   Content-Length: 16                                                 │
    │                                                                      │
    │   {"beast":"cat"}                                                    │
    │   ────────────────────────────────────────────────────────────────   │
    │   HTTP/1.1 200 OK                                                    │
    │   Content-Type: text/css; charset=utf-8                              │
    │   ETag: "1767225600-42"                                              │
    │                                                                      │
    │   body { ... }                                                       │
    │   ────────────────────────────────────────────────────────────────   │
    │   HTTP/1.1 404 Not Found                                             │
    │   Content-Type: text/plain; charset=utf-8                            │
    │                                                                      │
    │   Cannot find /missing                                               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Content-Length, Date and Server are filled in by to_bytes() when a handler
did not set them.
=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict
import json

from .status_codes import HTTPStatus
from .mime_types import get_content_type


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be sent.

    Handlers normally get one from ResponseBuilder or one of the helper
    functions at the bottom of this module.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """``HTTP/1.1 404 Not Found``"""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", "")

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = "queryserver", include_body: bool = True) -> bytes:
        """
        Serialize status line, headers and body.

        =====================================================================
        HEAD REQUESTS
        =====================================================================

        A HEAD response carries the same headers as the GET would, including
        the Content-Length of the body it leaves out. Passing
        include_body=False gives exactly that.

        =====================================================================
        """
        headers = dict(self.headers)

        if self.status.allows_body:
            headers.setdefault("Content-Length", str(len(self.body)))
        headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        headers.setdefault("Server", server_name)

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in headers.items())
        head = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")

        if not include_body or not self.status.allows_body:
            return head
        return head + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.NOT_FOUND)
            .text("Cannot find /missing")
            .build())

    Every setter returns the builder, so calls chain; build() is terminal.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def html(self, html: str) -> "ResponseBuilder":
        return self.text(html, "text/html; charset=utf-8")

    def json(self, data: Any) -> "ResponseBuilder":
        """
        JSON body in compact form: ``{"beast":"cat"}``.

        ensure_ascii=False keeps non-ASCII values readable; the body is
        UTF-8 and says so in its Content-Type.
        """
        payload = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
        self._body = payload.encode("utf-8")
        self._headers["Content-Type"] = "application/json; charset=utf-8"
        return self

    def file(self, content: bytes, filename: str) -> "ResponseBuilder":
        """File body with a Content-Type guessed from ``filename``."""
        self._body = content
        self._headers["Content-Type"] = get_content_type(filename)
        return self

    def close_connection(self) -> "ResponseBuilder":
        return self.header("Connection", "close")

    def build(self) -> HTTPResponse:
        return HTTPResponse(status=self._status, headers=dict(self._headers), body=self._body)


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an RFC 7231 HTTP-date.

        Thu, 01 Jan 2026 12:00:00 GMT

    Always GMT. Names are spelled out here instead of using strftime
    because %a and %b follow the process locale.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    dt = dt.astimezone(timezone.utc)
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok_json(data: Any) -> HTTPResponse:
    """200 with a JSON body."""
    return ResponseBuilder().json(data).build()


def plain_text(status: HTTPStatus, message: str) -> HTTPResponse:
    """Any status with a text/plain body."""
    return ResponseBuilder().status(status).text(message).build()


def not_modified(etag: str) -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.NOT_MODIFIED).header("ETag", etag).build()


def internal_error() -> HTTPResponse:
    """
    500 with a fixed, generic body.

    Takes no message: whatever went wrong is logged, never sent to the
    client.
    """
    return plain_text(HTTPStatus.INTERNAL_SERVER_ERROR, HTTPStatus.INTERNAL_SERVER_ERROR.phrase)


def error_response(status: HTTPStatus, message: str) -> HTTPResponse:
    """Error the server produces itself (parse errors, overload); closes the connection."""
    return (ResponseBuilder()
        .status(status)
        .text(message)
        .close_connection()
        .build())
