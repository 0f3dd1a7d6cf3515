"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Serves files under the public directory, and steps aside for everything
else.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                   WHEN STATIC ANSWERS, WHEN IT DECLINES             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET  /style.css          public/style.css exists  → 200 file       │
    │   GET  /                   public/index.html        → 200 file       │
    │   GET  /style.css          If-None-Match matches    → 304            │
    │   HEAD /style.css                                   → 200, no body   │
    │                                                                      │
    │   GET  /query              no such file             → CONTINUE       │
    │   GET  /.env               dotfile                  → CONTINUE       │
    │   GET  /%2e%2e/secret      escapes public/          → CONTINUE       │
    │   POST /style.css          not GET or HEAD          → CONTINUE       │
    │   GET  /empty-dir/         directory, no index      → CONTINUE       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Declining is what lets the static layer go first in the dispatch list: a
request for /query only reaches the query handler because public/query
does not exist.

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

The request path is decoded before it gets here, so /%2e%2e/etc/passwd
arrives as /../etc/passwd. The candidate is resolved (following ".." and
symlinks) and must still sit inside the resolved root:

    root      /srv/app/public
    request   /../secret.txt
    resolved  /srv/app/secret.txt      → outside root → decline

A file that exists but cannot be read (permissions, say) is declined
with a warning, the same as a missing one. A path the filesystem rejects
outright, such as a segment longer than NAME_MAX, is a plain miss.

=============================================================================
CACHING
=============================================================================

    ETag            "<mtime>-<size>"
    Last-Modified   file mtime as an HTTP-date
    Cache-Control   public, max-age=0   (revalidate every time)

A matching If-None-Match, or failing that an If-Modified-Since no older
than the file, gets an empty 304.
=============================================================================
"""

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Optional
import logging
import os

from ..http.request import HTTPRequest
from ..http.response import ResponseBuilder, format_http_date, not_modified
from ..http.router import CONTINUE, Handled, HandlerResult
from ..http.mime_types import get_content_type


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Dispatch-list layer that serves files from ``root_dir``.

        static = StaticFileHandler("public")
        router.use(static.handle, name="serve_static")

    A missing ``root_dir`` is not an error: a warning is logged and every
    request is declined.
    """

    SERVABLE_METHODS = ("GET", "HEAD")

    def __init__(
        self,
        root_dir: str | Path,
        index_file: str = "index.html",
        cache_control: str = "public, max-age=0",
        serve_dotfiles: bool = False,
    ):
        self.root_dir = Path(root_dir).resolve()
        self.index_file = index_file
        self.cache_control = cache_control
        self.serve_dotfiles = serve_dotfiles

        if not self.root_dir.is_dir():
            logger.warning(f"Static root {self.root_dir} does not exist; static files disabled")

    def __call__(self, request: HTTPRequest) -> HandlerResult:
        return self.handle(request)

    def handle(self, request: HTTPRequest) -> HandlerResult:
        if request.method not in self.SERVABLE_METHODS:
            return CONTINUE

        path = self.resolve(request.path)
        if path is None:
            return CONTINUE

        try:
            return Handled(self._serve_file(path, request))
        except OSError as e:
            logger.warning(f"Cannot read {path}: {e}")
            return CONTINUE

    def resolve(self, url_path: str) -> Optional[Path]:
        """
        Map a decoded URL path to a file under the root, or None.

        Directories map to their index file. Dotfile segments, NUL bytes
        and anything resolving outside the root give None.
        """
        if "\x00" in url_path:
            return None

        relative = url_path.lstrip("/")
        segments = [s for s in relative.split("/") if s]

        if not self.serve_dotfiles and any(
            s.startswith(".") and s not in (".", "..") for s in segments
        ):
            return None

        # Names the filesystem refuses (too long, say) are misses, not faults.
        try:
            candidate = (self.root_dir / relative).resolve()
            try:
                candidate.relative_to(self.root_dir)
            except ValueError:
                logger.warning(f"Path traversal attempt: {url_path!r}")
                return None

            if candidate.is_dir():
                candidate = candidate / self.index_file

            if not candidate.is_file():
                return None
        except OSError as e:
            logger.debug(f"Cannot look up {url_path!r}: {e}")
            return None
        return candidate

    def _serve_file(self, path: Path, request: HTTPRequest):
        stat = path.stat()
        mtime = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        etag = f'"{int(stat.st_mtime)}-{stat.st_size}"'

        if self._is_fresh(request, etag, mtime):
            response = not_modified(etag)
            response.set_header("Last-Modified", format_http_date(mtime))
            response.set_header("Cache-Control", self.cache_control)
            return response

        with open(path, "rb") as f:
            content = f.read()

        logger.debug(f"Serving {path} ({len(content)} bytes)")
        return (ResponseBuilder()
            .file(content, path.name)
            .header("ETag", etag)
            .header("Last-Modified", format_http_date(mtime))
            .header("Cache-Control", self.cache_control)
            .header("Accept-Ranges", "bytes")
            .build())

    @staticmethod
    def _is_fresh(request: HTTPRequest, etag: str, mtime: datetime) -> bool:
        """Conditional GET check; If-None-Match takes precedence over If-Modified-Since."""
        if_none_match = request.get_header("if-none-match")
        if if_none_match:
            tags = [t.strip() for t in if_none_match.split(",")]
            return "*" in tags or etag in tags or f"W/{etag}" in tags

        if_modified_since = request.get_header("if-modified-since")
        if if_modified_since:
            try:
                since = parsedate_to_datetime(if_modified_since)
            except (TypeError, ValueError):
                return False
            if since.tzinfo is None:
                since = since.replace(tzinfo=timezone.utc)
            return mtime.replace(microsecond=0) <= since

        return False


def serve_static(root_dir: str | os.PathLike, **kwargs) -> StaticFileHandler:
    """Factory for StaticFileHandler."""
    return StaticFileHandler(root_dir, **kwargs)
