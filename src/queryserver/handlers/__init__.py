"""
=============================================================================
HANDLERS
=============================================================================

The three layers the application is made of, in dispatch order:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Layer              │ Answers                          │ Declines    │
    ├─────────────────────────────────────────────────────────────────────┤
    │ StaticFileHandler  │ files under public/              │ otherwise   │
    │ query_handler      │ GET /query with ?animal          │ otherwise   │
    │ file_not_found     │ everything that reaches it (404) │ never       │
    └─────────────────────────────────────────────────────────────────────┘

A layer handler returns Handled(response) or CONTINUE; the fallback
always returns a response.
=============================================================================
"""

from .not_found import file_not_found
from .query import query_handler
from .static import StaticFileHandler, serve_static

__all__ = [
    "StaticFileHandler",
    "serve_static",
    "query_handler",
    "file_not_found",
]
