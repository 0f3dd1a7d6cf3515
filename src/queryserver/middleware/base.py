"""
=============================================================================
MIDDLEWARE PIPELINE
=============================================================================

Middleware wraps the dispatcher. Each one gets the request and a ``next``
callable, and returns the response:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   request ──► AccessLog ──► Error ──► Dispatcher                     │
    │                   │            │           │                         │
    │   response ◄──────┴────────────┴───────────┘                         │
    │                                                                      │
    │   AccessLog   times the request, logs one line per response          │
    │   Error       turns an exception from below into a generic 500       │
    │   Dispatcher  static → /query → 404 fallback                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Middleware is for cross-cutting concerns around dispatch. Whether a
request is *handled* is decided inside the dispatcher by the Handled /
CONTINUE results, not here.
=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Optional
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# The next middleware, or the dispatcher at the end of the chain.
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

        class Timing(Middleware):
            def __call__(self, request, next):
                start = time.perf_counter()
                response = next(request)
                response.set_header("X-Elapsed", f"{time.perf_counter() - start:.3f}")
                return response

    A middleware may also answer on its own by not calling ``next``.
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Process the request, usually by calling ``next(request)``."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Ordered middleware list. The first one added is the outermost.

        pipeline = MiddlewarePipeline().use(AccessLogMiddleware(), ErrorMiddleware())
        handler = pipeline.wrap(dispatcher.dispatch)
        response = handler(request)
    """

    def __init__(self, middleware: Optional[Iterable[Middleware]] = None):
        self._middleware: List[Middleware] = []
        for mw in middleware or ():
            self.add(mw)

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the chain around ``handler``.

        Given [A, B, C] the result is A(B(C(handler))): wrapping runs in
        reverse so that A sees the request first and the response last.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = _bind(middleware, current)
        return current

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)


def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
    def wrapped(request: HTTPRequest) -> HTTPResponse:
        return middleware(request, next_handler)

    wrapped.__name__ = middleware.name
    return wrapped


# =============================================================================
# FUNCTION MIDDLEWARE
# =============================================================================

class FunctionMiddleware(Middleware):
    """
    Wraps a plain ``(request, next) -> response`` function.

        pipeline.add(FunctionMiddleware(add_header, name="add_header"))
    """

    def __init__(
        self,
        func: Callable[[HTTPRequest, NextHandler], HTTPResponse],
        name: Optional[str] = None,
    ):
        self._func = func
        self._name = name or func.__name__

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(
    func: Callable[[HTTPRequest, NextHandler], HTTPResponse]
) -> FunctionMiddleware:
    """
    Decorator form of FunctionMiddleware.

        @function_middleware
        def powered_by(request, next):
            response = next(request)
            response.set_header("X-Powered-By", "queryserver")
            return response
    """
    return FunctionMiddleware(func)
