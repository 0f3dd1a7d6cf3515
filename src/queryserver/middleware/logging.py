"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One log line per response, on the "queryserver.access" logger so it can be
routed or silenced on its own:

    logging.getLogger("queryserver.access").setLevel(logging.WARNING)

Two formats:

    text   127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "GET /query?animal=cat" 200 15 0.41ms
    json   {"request_id": "3f2a9c1d", "method": "GET", "path": "/query", ...}

Every response also gets an X-Request-ID header with the id that appears
in the log line, so a client report can be matched to a log entry.
=============================================================================
"""

from dataclasses import asdict, dataclass
from typing import Optional
import json
import logging
import time
import uuid

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("queryserver.access")

LOG_FORMATS = ("text", "json")


@dataclass
class RequestLog:
    """One access-log record."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Apache-style line: client, time, request, status, size, duration."""
        target = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{self.method} {target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class AccessLogMiddleware(Middleware):
    """
    Times each request and logs the outcome.

    Sits outermost, so it also sees the 500s produced by ErrorMiddleware.
    If an exception does get past everything below it, the failure is
    logged at ERROR and the exception re-raised.
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[list[str]] = None,
    ):
        if log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {log_format!r}")
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        start = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000

        if self.include_request_id:
            response.headers["X-Request-ID"] = request_id

        if request.path in self.skip_paths:
            return response

        entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.raw_path,
            query="&".join(
                f"{name}={value}"
                for name, values in request.query_params.items()
                for value in values
            ),
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        # 5xx at WARNING; the traceback itself comes from ErrorMiddleware
        level = logging.WARNING if entry.status_code >= 500 else self.log_level
        if self.log_format == "json":
            logger.log(level, json.dumps(entry.to_dict()))
        else:
            logger.log(level, entry.to_text())

        return response
