"""
Fallback handler: runs when every layer declined.
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, plain_text
from ..http.status_codes import HTTPStatus


def file_not_found(request: HTTPRequest) -> HTTPResponse:
    """
    404 ``Cannot find <path>``, for any method.

    The path is echoed as the client sent it, still percent-encoded and
    without the query string: ``/a%20b?x=1`` → ``Cannot find /a%20b``.
    """
    return plain_text(HTTPStatus.NOT_FOUND, f"Cannot find {request.raw_path}")
