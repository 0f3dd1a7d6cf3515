"""
Middleware that wraps the dispatcher.

    from queryserver.middleware import AccessLogMiddleware, ErrorMiddleware, MiddlewarePipeline

    pipeline = MiddlewarePipeline().use(AccessLogMiddleware(), ErrorMiddleware())
    handler = pipeline.wrap(dispatcher.dispatch)
"""

from .base import (
    FunctionMiddleware,
    Middleware,
    MiddlewarePipeline,
    NextHandler,
    function_middleware,
)
from .errors import ErrorMiddleware
from .logging import AccessLogMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "FunctionMiddleware",
    "function_middleware",
    "AccessLogMiddleware",
    "RequestLog",
    "ErrorMiddleware",
]
