"""
=============================================================================
QUERYSERVER
=============================================================================

A small HTTP/1.1 server on raw sockets that does two things:

    GET /<file>              files from the public directory
    GET /query?animal=<x>    {"beast": "<x>"}

and answers everything else with ``404 Cannot find <path>``.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    queryserver/
    ├── config.py          ServerConfig (frozen, env overrides)
    ├── app.py             create_app(): router + middleware → Application
    ├── server.py          HTTPServer: sockets, workers, keep-alive loop
    ├── core/              SocketServer, Connection, ThreadPool
    ├── http/              request parser, responses, status codes, router
    ├── middleware/        pipeline, access log, error → 500
    └── handlers/          static files, /query, 404 fallback

=============================================================================
QUICK START
=============================================================================

    from queryserver import HTTPServer, ServerConfig, create_app

    server = HTTPServer(create_app(ServerConfig(port=8097)))
    server.run()
=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .app import Application, create_app, create_router
from .http.router import CONTINUE, Handled, Router
from .server import HTTPServer, serve

__all__ = [
    "__version__",
    "ServerConfig",
    "Application",
    "create_app",
    "create_router",
    "Router",
    "Handled",
    "CONTINUE",
    "HTTPServer",
    "serve",
]
