"""
=============================================================================
MINIHTTPD - A Minimal HTTP/1.1 Server on Raw Sockets
=============================================================================

Accepts TCP connections, reads ONE request per connection, answers from a
table of exact-match routes or a static file root, and closes.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     WHAT THIS SERVER DOES                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. ACCEPT LOOP WITH AN ADMISSION CEILING                          │
    │      - One thread per connection                                    │
    │      - Never more than max_connections handlers at once             │
    │                                                                      │
    │   2. REQUEST PIPELINE                                               │
    │      - Parse request line, keep headers raw                         │
    │      - Decode form-encoded POST bodies                              │
    │      - Resolve: route → static file → 404                           │
    │      - Respond with Content-Length and Connection: close            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    minihttpd/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m minihttpd)
    ├── server.py            # HTTPServer facade
    ├── config.py            # ServerConfig (frozen dataclass)
    ├── core/
    │   ├── socket_server.py # Accept loop and dispatch
    │   ├── limiter.py       # Concurrency ceiling
    │   ├── connection.py    # Client socket wrapper
    │   └── handler.py       # Per-connection pipeline
    └── http/
        ├── request.py       # Request parsing
        ├── forms.py         # Form body decoding
        ├── resolver.py      # Route / static file resolution
        ├── response.py      # Response framing
        ├── status_codes.py  # HTTP status enum
        └── mime_types.py    # Content-Type by extension

=============================================================================
QUICK START
=============================================================================

    from minihttpd import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(port=8080, max_connections=10))
    server.register_route("/", "<h1>Home Page</h1>")
    server.set_static_root("public")
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, create_app
from .config import ServerConfig
from .core import ServerStartupError

__all__ = ["HTTPServer", "ServerConfig", "ServerStartupError", "create_app", "__version__"]
