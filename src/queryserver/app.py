"""
=============================================================================
APPLICATION
=============================================================================

Assembles the pieces into one immutable value the server can run:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          Application                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   config       ServerConfig                                          │
    │   middleware   (AccessLogMiddleware, ErrorMiddleware)                │
    │   dispatcher   Dispatcher                                            │
    │                  1. USE  *        serve_static   (public/)           │
    │                  2. GET  /query   query_handler                      │
    │                  fallback         file_not_found                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Nothing in an Application changes once it is built, so the same instance
is shared by every worker thread without locking. It is also a plain
callable, HTTPRequest in and HTTPResponse out, which is how the tests
drive it without a socket:

    app = create_app()
    response = app(HTTPRequest(method="GET", path="/query",
                               query_params={"animal": ["cat"]}))
=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional
import logging

from .config import ServerConfig
from .handlers import StaticFileHandler, file_not_found, query_handler
from .http.request import HTTPRequest
from .http.response import HTTPResponse
from .http.router import Dispatcher, Router
from .middleware import AccessLogMiddleware, ErrorMiddleware, Middleware, MiddlewarePipeline


logger = logging.getLogger(__name__)


def create_router(config: ServerConfig) -> Router:
    """The stock layers: static files first, then /query."""
    router = Router()
    router.use(StaticFileHandler(config.public_dir).handle, name="serve_static")
    router.get("/query")(query_handler)
    return router


def default_middleware(config: ServerConfig) -> tuple[Middleware, ...]:
    return (
        AccessLogMiddleware(log_format=config.access_log_format),
        ErrorMiddleware(),
    )


@dataclass(frozen=True)
class Application:
    """Config, middleware and dispatcher, ready to serve."""

    config: ServerConfig
    dispatcher: Dispatcher
    middleware: tuple[Middleware, ...] = ()
    _handler: Callable[[HTTPRequest], HTTPResponse] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self):
        pipeline = MiddlewarePipeline(self.middleware)
        object.__setattr__(self, "_handler", pipeline.wrap(self.dispatcher.dispatch))

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        return self._handler(request)

    handle = __call__


def create_app(
    config: Optional[ServerConfig] = None,
    router: Optional[Router] = None,
    middleware: Optional[tuple[Middleware, ...]] = None,
) -> Application:
    """
    Build the application.

    Any part left as None gets the stock version for ``config``. Pass a
    custom router to add routes:

        router = create_router(config)
        router.get("/boom")(failing_handler)
        app = create_app(config, router=router)
    """
    config = config or ServerConfig()
    config.validate()

    router = router or create_router(config)
    if middleware is None:
        middleware = default_middleware(config)

    for line in router.describe():
        logger.debug(f"Route: {line}")

    return Application(
        config=config,
        dispatcher=router.freeze(fallback=file_not_found),
        middleware=tuple(middleware),
    )
