"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes of one HTTP/1.x request into an HTTPRequest.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     WHAT THE PARSER SEES                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET /query?animal=cat HTTP/1.1\r\n      ← request line             │
    │   Host: localhost:8097\r\n                ← headers                  │
    │   Accept: */*\r\n                                                    │
    │   \r\n                                    ← blank line               │
    │   (body, Content-Length bytes)                                       │
    │                                                                      │
    │   HTTPRequest(                                                       │
    │       method="GET",                                                  │
    │       path="/query",              ← decoded, used for routing        │
    │       raw_path="/query",          ← as sent, echoed by the 404       │
    │       query_params={"animal": ["cat"]},                              │
    │       headers={"host": "localhost:8097", "accept": "*/*"},           │
    │   )                                                                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PRESENT-BUT-EMPTY VS ABSENT
=============================================================================

The /query handler must tell these apart:

    /query?animal=cat    → {"animal": ["cat"]}    present
    /query?animal=       → {"animal": [""]}       present, empty
    /query?animal        → {"animal": [""]}       present, empty
    /query?foo=bar       → {"foo": ["bar"]}       absent
    /query               → {}                     absent

parse_qs drops blank values by default, which would make the second and
third rows look absent. keep_blank_values=True keeps them.
=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import parse_qs, unquote, urlsplit
import re


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    Carries the status code the server should answer with:
    400 (malformed), 405 (unknown method), 413 (too large), 505 (version).
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Lives for exactly one request/response exchange. The router writes
    ``path_params`` when a pattern such as ``/users/:id`` matches; nothing
    else mutates a request after parsing.
    """

    method: str
    path: str                            # decoded, no query string
    version: str = "HTTP/1.1"
    raw_path: str = ""                   # as received, no query string

    headers: Dict[str, str] = field(default_factory=dict)            # lower-case names
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""

    path_params: Dict[str, str] = field(default_factory=dict)
    client_address: tuple[str, int] = ("", 0)

    def __post_init__(self):
        if not self.raw_path:
            self.raw_path = self.path

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def query(self) -> Dict[str, str]:
        """
        Query parameters as a flat name → value mapping.

        When a name repeats (``?a=1&a=2``) the first value wins.
        """
        return {name: values[0] for name, values in self.query_params.items() if values}

    @property
    def content_type(self) -> Optional[str]:
        """Content-Type without parameters (``text/html; charset=x`` → ``text/html``)."""
        value = self.headers.get("content-type", "").split(";")[0].strip().lower()
        return value or None

    @property
    def content_length(self) -> int:
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_head(self) -> bool:
        return self.method == "HEAD"

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the client wants the connection kept open.

            HTTP/1.1: open unless "Connection: close"
            HTTP/1.0: closed unless "Connection: keep-alive"
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def has_query(self, name: str) -> bool:
        """True when the parameter appears in the query string, even with no value."""
        return name in self.query_params

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        First value of a query parameter, or ``default`` when it is absent.

        A present-but-empty parameter returns ``""``, not ``default``.
        """
        values = self.query_params.get(name)
        return values[0] if values else default

    def get_query_list(self, name: str) -> list[str]:
        """Every value of a repeated query parameter, in order."""
        return list(self.query_params.get(name, []))


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

    ==========================================================================
    ALGORITHM
    ==========================================================================

        1. Reject anything over max_request_size          → 413
        2. Split head and body at the first \\r\\n\\r\\n     → 400 if missing
        3. Request line: METHOD SP URI SP VERSION         → 400 / 405 / 505
        4. Header lines: "Name: value", names lower-cased
        5. Body: exactly Content-Length bytes             → 400 if short

    The Connection layer already framed the bytes, so the parser only has
    to deal with one request at a time.
    ==========================================================================
    """

    VALID_METHODS = {
        "GET", "HEAD", "POST", "PUT", "DELETE",
        "PATCH", "OPTIONS", "TRACE", "CONNECT",
    }

    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Za-z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:\s]+):\s*(.*?)\s*$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse one complete request.

        Raises:
            HTTPParseError: with the status code to answer with.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        # latin-1 maps every byte, so stray non-ASCII header bytes never fail here
        head = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = head.split("\r\n")
        method, path, raw_path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError(f"Invalid Content-Length: {headers['content-length']}")
        if content_length < 0:
            raise HTTPParseError(f"Invalid Content-Length: {content_length}")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            raw_path=raw_path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(
        self,
        line: str,
    ) -> tuple[str, str, str, Dict[str, list[str]], str]:
        """
        Split ``GET /query?animal=cat HTTP/1.1`` into its parts.

        Returns:
            (method, decoded path, raw path, query params, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()
        method = method.upper()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        # The head was decoded as latin-1; raw non-ASCII bytes in the target
        # are UTF-8, the same as percent-escapes are taken to be.
        target = target.encode("latin-1").decode("utf-8", "replace")

        # urlsplit also copes with absolute-form targets (http://host/path)
        parts = urlsplit(target)
        raw_path = parts.path or "/"
        path = unquote(raw_path)
        query_params = parse_qs(parts.query, keep_blank_values=True)

        return method, path, raw_path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict keyed by lower-case name.

        Repeated headers are joined with ", " (RFC 7230 §3.2.2). Lines that
        start with whitespace continue the previous header (obsolete line
        folding). Malformed lines are skipped.
        """
        headers: Dict[str, str] = {}
        current: Optional[str] = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current is not None:
                    headers[current] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.lower()
            current = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 1024 * 1024,
) -> HTTPRequest:
    """One-shot helper around RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
