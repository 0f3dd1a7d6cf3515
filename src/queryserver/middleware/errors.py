"""
Error middleware: an exception raised while handling a request becomes a
generic 500.

The client only ever sees ``500 Internal Server Error`` with a fixed
text/plain body. The exception, with its traceback, goes to the log.
"""

import logging

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, internal_error


logger = logging.getLogger(__name__)


class ErrorMiddleware(Middleware):
    """Catches handler faults below it in the pipeline."""

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        try:
            return next(request)
        except Exception:
            logger.exception(
                f"Unhandled error in {request.method} {request.raw_path} "
                f"from {request.client_address[0] or '-'}"
            )
            return internal_error()
