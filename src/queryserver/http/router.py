"""
=============================================================================
URL ROUTER AND DISPATCHER
=============================================================================

Routing here is an ordered list of layers tried one after another,
each one either answering the request or stepping aside:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        DISPATCH FLOW                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET /query?foo=bar                                                 │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌──────────────────────────────┐                                  │
    │   │ use   *        static files  │ ── CONTINUE (no such file)       │
    │   └──────────────────────────────┘                                  │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌──────────────────────────────┐                                  │
    │   │ GET   /query   query_handler │ ── CONTINUE (no ?animal)         │
    │   └──────────────────────────────┘                                  │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌──────────────────────────────┐                                  │
    │   │ fallback       not_found     │ ── 404 "Cannot find /query"      │
    │   └──────────────────────────────┘                                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
HANDLED OR CONTINUE
=============================================================================

A handler never calls the next layer itself. It declines through its
return value instead:

    def query_handler(request):
        if request.has_query("animal"):
            return Handled(ok_json({...}))
        return CONTINUE

The dispatcher loops until something is Handled, then stops. If the list
runs out, the fallback runs, and the fallback must always answer. That
loop is the whole "middleware chain", and it guarantees exactly one
response per request: there is no next() to forget, and no way to call it
twice.

For convenience a handler may also return a bare HTTPResponse; it is
treated as Handled.

=============================================================================
PATH PATTERNS
=============================================================================

    /query              exact segment match
    /users/:id          :id captures one segment   → path_params["id"]
    /files/*path        *path captures the rest    → path_params["path"]

Matching is case-insensitive by default, and a trailing slash
is ignored (/query/ matches /query).

=============================================================================
INTERVIEW QUESTIONS ABOUT ROUTING
=============================================================================

Q: "Why return a tagged value instead of passing a next() callback?"
A: "The control flow becomes data. The dispatcher is a plain for-loop you
   can unit test, and a handler can't hang the request by forgetting to
   call next() or send two responses by calling it twice."

Q: "What happens with POST /query?"
A: "The GET layer is skipped, nothing else matches, and the fallback
   answers 404. This stack never produces 405."
=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Union
import logging
import re

from .request import HTTPRequest
from .response import HTTPResponse


logger = logging.getLogger(__name__)


# =============================================================================
# HANDLER RESULT
# =============================================================================

@dataclass(frozen=True)
class Handled:
    """The handler produced the response for this request."""
    response: HTTPResponse


class _Continue:
    """The handler declined; try the next layer."""

    _instance: Optional["_Continue"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "CONTINUE"

    def __reduce__(self):
        return (_Continue, ())


CONTINUE = _Continue()

HandlerResult = Union[Handled, _Continue, HTTPResponse]

# A layer handler may decline; the fallback may not.
Handler = Callable[[HTTPRequest], HandlerResult]
FallbackHandler = Callable[[HTTPRequest], HTTPResponse]


# =============================================================================
# ROUTES
# =============================================================================

@dataclass(frozen=True)
class Route:
    """
    One layer of the dispatch list.

    ``method=None`` matches every method; ``path=None`` matches every path
    (an app.use() style layer). A GET route also answers HEAD.
    """

    method: Optional[str]
    path: Optional[str]
    handler: Handler
    name: Optional[str] = None
    pattern: Optional[re.Pattern] = field(default=None, repr=False, compare=False)

    def matches_method(self, method: str) -> bool:
        if self.method is None:
            return True
        method = method.upper()
        return self.method == method or (self.method == "GET" and method == "HEAD")

    def match_path(self, path: str) -> Optional[dict[str, str]]:
        """Captured path parameters when the path matches, else None."""
        if self.pattern is None:
            return {}
        match = self.pattern.match(_normalize(path))
        return match.groupdict() if match else None

    @property
    def label(self) -> str:
        return self.name or getattr(self.handler, "__name__", repr(self.handler))


def _normalize(path: str) -> str:
    """Leading slash always, trailing slash never (except for "/" itself)."""
    if path in ("", "/"):
        return "/"
    return "/" + path.strip("/")


def compile_pattern(path: str, case_sensitive: bool = False) -> re.Pattern:
    """
    Compile a route path into an anchored regex.

        /users/:id/posts/:post_id
          → ^/users/(?P<id>[^/]+)/posts/(?P<post_id>[^/]+)$

        /files/*path
          → ^/files(?:/(?P<path>.*))?$
    """
    parts = ["^"]
    segments = [s for s in path.split("/") if s]

    for segment in segments:
        if segment.startswith(":"):
            parts.append(f"/(?P<{segment[1:]}>[^/]+)")
        elif segment.startswith("*"):
            name = segment[1:] or "wildcard"
            parts.append(f"(?:/(?P<{name}>.*))?")
            break
        else:
            parts.append("/" + re.escape(segment))

    if not segments:
        parts.append("/")
    parts.append("$")

    flags = 0 if case_sensitive else re.IGNORECASE
    return re.compile("".join(parts), flags)


# =============================================================================
# DISPATCHER
# =============================================================================

@dataclass(frozen=True)
class Dispatcher:
    """
    Immutable route table plus fallback.

    Built once by Router.freeze() at start-up and shared by every worker
    thread; nothing about it changes while the server runs.
    """

    routes: tuple[Route, ...]
    fallback: FallbackHandler

    def dispatch(self, request: HTTPRequest) -> HTTPResponse:
        """
        Produce the one response for ``request``.

        Exceptions raised by handlers are not caught here; ErrorMiddleware
        sits outside the dispatcher and turns them into a 500.
        """
        for route in self.routes:
            if not route.matches_method(request.method):
                continue

            params = route.match_path(request.path)
            if params is None:
                continue

            if params:
                request.path_params = params

            result = route.handler(request)

            if isinstance(result, Handled):
                return result.response
            if isinstance(result, HTTPResponse):
                return result
            if result is CONTINUE:
                logger.debug(f"{route.label} declined {request.method} {request.path}")
                continue

            raise TypeError(
                f"Handler {route.label} returned {type(result).__name__}; "
                f"expected Handled, CONTINUE or HTTPResponse"
            )

        return self.fallback(request)

    __call__ = dispatch


# =============================================================================
# ROUTER (REGISTRATION)
# =============================================================================

class Router:
    """
    Collects layers in registration order, then freezes them.

        router = Router()
        router.use(static.handle)            # every method, every path
        router.get("/query")(query_handler)  # decorator form
        dispatcher = router.freeze(fallback=file_not_found)

    Registration is not thread-safe and is meant to happen before the
    server starts; freeze() is the hand-off point.
    """

    def __init__(self, case_sensitive: bool = False):
        self.case_sensitive = case_sensitive
        self._routes: list[Route] = []

    def add_route(
        self,
        path: Optional[str],
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Route:
        pattern = compile_pattern(path, self.case_sensitive) if path is not None else None
        route = Route(
            method=method.upper() if method else None,
            path=path,
            handler=handler,
            name=name,
            pattern=pattern,
        )
        self._routes.append(route)
        return route

    def use(self, handler: Handler, name: Optional[str] = None) -> Route:
        """Register a layer that sees every request, like app.use(fn)."""
        return self.add_route(None, handler, name=name)

    def route(
        self,
        path: str,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of add_route(); returns the handler unchanged."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method, name)
            return handler
        return decorator

    def get(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, "GET", name)

    def post(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, "POST", name)

    def routes(self) -> list[Route]:
        return list(self._routes)

    def freeze(self, fallback: FallbackHandler) -> Dispatcher:
        """Snapshot the layers into an immutable Dispatcher."""
        return Dispatcher(routes=tuple(self._routes), fallback=fallback)

    def describe(self) -> list[str]:
        """
        One line per layer, for the start-up log:

            USE      *           serve_static
            GET      /query      query_handler
        """
        lines = []
        for route in self._routes:
            method = route.method or ("ANY" if route.path is not None else "USE")
            lines.append(f"{method:8} {route.path or '*':12} {route.label}")
        return lines
