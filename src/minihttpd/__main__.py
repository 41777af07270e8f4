"""
=============================================================================
HTTP SERVER CLI ENTRY POINT
=============================================================================

    # Run with defaults (localhost:8080, 10 concurrent connections)
    python -m minihttpd

    # Listen on all interfaces, allow 32 concurrent connections
    python -m minihttpd --host 0.0.0.0 --max-connections 32

    # Serve static files and a couple of routes
    python -m minihttpd --static ./public \\
        --route "/=<h1>Home Page</h1>" \\
        --route-file /about=templates/about.html

Environment variables (HTTP_HOST, HTTP_PORT, HTTP_MAX_CONNECTIONS,
HTTP_STATIC_ROOT, HTTP_TIMEOUT, HTTP_LOG_LEVEL) provide the defaults;
command-line arguments win.

Exit status: 0 after a normal shutdown, 1 if the server could not start,
2 for bad arguments (argparse).

=============================================================================
"""

import argparse
import sys
from typing import Optional, Sequence

from . import __version__
from .config import ServerConfig
from .core import ServerStartupError
from .server import HTTPServer


def _split_pair(value: str) -> tuple[str, str]:
    """Parse "PATH=VALUE" (the first '=' splits)."""
    path, sep, rest = value.partition("=")
    if not sep or not path:
        raise argparse.ArgumentTypeError(f"expected PATH=VALUE, got {value!r}")
    return path, rest


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minihttpd",
        description="Minimal HTTP/1.1 server: exact routes, a static root, one request per connection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m minihttpd                              # Run with defaults
  python -m minihttpd --port 3000                  # Custom port
  python -m minihttpd --static ./public            # Serve static files
  python -m minihttpd --route "/=<h1>Home</h1>"    # Register a route
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: $HTTP_HOST or 127.0.0.1)",
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: $HTTP_PORT or 8080)",
    )

    parser.add_argument(
        "--max-connections", "-c",
        type=int,
        default=None,
        help="Maximum concurrent connections (default: $HTTP_MAX_CONNECTIONS or 10)",
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Client socket timeout in seconds, 0 disables (default: $HTTP_TIMEOUT or 30)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--static", "-s",
        default=None,
        help="Directory to serve static files from (e.g., ./public)",
    )

    parser.add_argument(
        "--route",
        type=_split_pair,
        action="append",
        default=[],
        metavar="PATH=BODY",
        help="Serve BODY as text/html at exactly PATH (repeatable)",
    )

    parser.add_argument(
        "--route-file",
        type=_split_pair,
        action="append",
        default=[],
        metavar="PATH=FILE",
        help="Serve the contents of FILE at exactly PATH (repeatable)",
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: $HTTP_LOG_LEVEL or INFO)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"minihttpd {__version__}",
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment first, then anything given on the command line."""
    overrides = {}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.max_connections is not None:
        overrides["max_connections"] = args.max_connections
    if args.timeout is not None:
        overrides["timeout"] = args.timeout if args.timeout > 0 else None
    if args.static is not None:
        overrides["static_root"] = args.static
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    return ServerConfig.from_env(**overrides)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        server = HTTPServer(config_from_args(args))
        for path, body in args.route:
            server.register_route(path, body)
        for path, filename in args.route_file:
            server.register_route(path, server.load_template(filename))
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        server.run()
    except ServerStartupError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
