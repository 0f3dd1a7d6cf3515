"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to Content-Type values for the static file handler.

The browser relies on Content-Type, not on the file name, to decide what
to do with a response body:

    style.css served as text/css        → applied as a stylesheet
    style.css served as text/plain      → ignored (and a console warning)
    app.js served as octet-stream       → refused under X-Content-Type-Options

So the table below covers what a small public/ directory usually holds.
Anything unknown is sent as application/octet-stream ("opaque bytes").
=============================================================================
"""

from pathlib import Path
from typing import Optional


MIME_TYPES = {
    # Documents and code the browser renders or executes
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".txt": "text/plain",
    ".csv": "text/csv",
    ".md": "text/markdown",
    ".xml": "application/xml",
    ".json": "application/json",
    ".map": "application/json",
    ".webmanifest": "application/manifest+json",
    ".wasm": "application/wasm",
    ".pdf": "application/pdf",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Media
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # Archives
    ".zip": "application/zip",
    ".gz": "application/gzip",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

# application/* and image/* types that are still text and take a charset
_TEXTUAL_NON_TEXT_TYPES = {
    "application/json",
    "application/xml",
    "application/manifest+json",
    "image/svg+xml",
}


def get_mime_type(path: str | Path, default: Optional[str] = None) -> str:
    """
    Look up the MIME type for a file name by its (case-insensitive) extension.

        >>> get_mime_type("public/Index.HTML")
        'text/html'
        >>> get_mime_type("blob.xyz")
        'application/octet-stream'
    """
    extension = Path(path).suffix.lower()
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)


def is_text_type(mime_type: str) -> bool:
    """True when the type is text and should be sent with a charset."""
    return mime_type.startswith("text/") or mime_type in _TEXTUAL_NON_TEXT_TYPES


def get_content_type(path: str | Path, charset: str = "utf-8") -> str:
    """
    Full Content-Type header value for a file.

        >>> get_content_type("index.html")
        'text/html; charset=utf-8'
        >>> get_content_type("logo.png")
        'image/png'
    """
    mime_type = get_mime_type(path)
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type
