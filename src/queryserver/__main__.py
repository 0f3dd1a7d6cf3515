"""
=============================================================================
COMMAND LINE ENTRY POINT
=============================================================================

    python -m queryserver                  # 127.0.0.1:8097, ./public
    python -m queryserver --port 3000
    queryserver --public ./site --log-level DEBUG

Flags override QUERYSERVER_* environment variables, which override the
built-in defaults. Exit status is 1 when the server cannot start (port in
use, bad configuration) and 0 after a normal shutdown.
=============================================================================
"""

from typing import Optional, Sequence
import argparse
import sys

from . import __version__
from .app import create_app
from .config import ACCESS_LOG_FORMATS, LOG_LEVELS, ServerConfig
from .server import HTTPServer


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="queryserver",
        description="Static files from a public directory plus a /query JSON endpoint.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  queryserver                        # http://127.0.0.1:8097
  queryserver --port 3000
  queryserver --host 0.0.0.0         # all interfaces
  queryserver --public ./site        # serve another directory
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})",
    )

    # ─────────────────────────────────────────────────────────────────────
    # APPLICATION
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--public", "-d",
        dest="public_dir",
        default=defaults.public_dir,
        help=f"Directory to serve static files from (default: {defaults.public_dir})",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=defaults.workers,
        help=f"Number of worker threads (default: {defaults.workers})",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=defaults.log_level,
        help=f"Logging level (default: {defaults.log_level})",
    )
    parser.add_argument(
        "--access-log-format",
        choices=ACCESS_LOG_FORMATS,
        default=defaults.access_log_format,
        help="Access log line format (default: text)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"queryserver {__version__}",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None):
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    args = build_parser(defaults).parse_args(argv)

    config = defaults.replace(
        host=args.host,
        port=args.port,
        public_dir=args.public_dir,
        workers=args.workers,
        log_level=args.log_level,
        access_log_format=args.access_log_format,
    )

    try:
        server = HTTPServer(create_app(config))
        server.run()
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
