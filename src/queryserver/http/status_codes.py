"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can actually emit, with their RFC 7231
reason phrases.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  WHO SENDS WHAT                                                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   200 OK                   /query with ?animal, static files         │
    │   304 Not Modified         static file, ETag still matches           │
    │   400 Bad Request          unparseable request line                  │
    │   404 Not Found            the fallback handler                      │
    │   405 Method Not Allowed   unknown method token (parser only)        │
    │   408 Request Timeout      client too slow on its first request      │
    │   413 Payload Too Large    request bigger than max_request_size      │
    │   500 Internal Error       a handler raised                          │
    │   503 Service Unavailable  worker queue is full                      │
    │   505 Version Unsupported  anything but HTTP/1.0 and HTTP/1.1        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Note that a known method on a known path never yields 405: routing falls
through to the 404 handler instead.
=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status code with its reason phrase.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200
    NOT_MODIFIED = 304

    BAD_REQUEST = 400
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line (``HTTP/1.1 404 Not Found``)."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_client_error(self) -> bool:
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        return 500 <= self < 600

    @property
    def is_error(self) -> bool:
        """True for 4xx and 5xx; used to pick the access-log level."""
        return self >= 400

    @property
    def allows_body(self) -> bool:
        """304 responses must not carry a body (RFC 7232)."""
        return self != HTTPStatus.NOT_MODIFIED


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
