"""
HTTP protocol layer: requests, responses, status codes and routing.
"""

from .mime_types import get_content_type, get_mime_type
from .request import HTTPParseError, HTTPRequest, RequestParser, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    error_response,
    internal_error,
    ok_json,
    plain_text,
)
from .router import CONTINUE, Dispatcher, Handled, HandlerResult, Route, Router
from .status_codes import HTTPStatus

__all__ = [
    "HTTPStatus",
    "HTTPRequest",
    "HTTPParseError",
    "RequestParser",
    "parse_request",
    "HTTPResponse",
    "ResponseBuilder",
    "ok_json",
    "plain_text",
    "internal_error",
    "error_response",
    "get_mime_type",
    "get_content_type",
    "Handled",
    "CONTINUE",
    "HandlerResult",
    "Route",
    "Router",
    "Dispatcher",
]
