"""
The /query endpoint.

    GET /query?animal=cat      → 200 {"beast":"cat"}
    GET /query?animal=         → 200 {"beast":""}
    GET /query?foo=bar         → CONTINUE (falls through to the 404)

Only the presence of ``animal`` matters; other parameters are ignored and
a repeated ``animal`` answers with its first value.
"""

import logging

from ..http.request import HTTPRequest
from ..http.response import ok_json
from ..http.router import CONTINUE, Handled, HandlerResult


logger = logging.getLogger(__name__)


def query_handler(request: HTTPRequest) -> HandlerResult:
    logger.info(f"Query parameters: {request.query}")

    if not request.has_query("animal"):
        return CONTINUE

    return Handled(ok_json({"beast": request.get_query("animal")}))
