"""
=============================================================================
MAIN HTTP SERVER
=============================================================================

Ties configuration, the accept loop and the per-connection pipeline
together.

=============================================================================
TWO PHASES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SETUP (single thread, mutable)                                     │
    │                                                                      │
    │     server = HTTPServer(ServerConfig(port=8080))                     │
    │     server.register_route("/", "<h1>Home Page</h1>")                 │
    │     server.register_route("/about", server.load_template(...))       │
    │     server.set_static_root("public")                                 │
    └─────────────────────────────────┬───────────────────────────────────┘
                                      │ run(): freeze + validate
                                      ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  SERVING (many threads, read-only)                                  │
    │                                                                      │
    │     SocketServer ──► ConcurrencyLimiter ──► ConnectionHandler        │
    │                                                                      │
    │     register_route() / set_static_root() now raise RuntimeError      │
    └─────────────────────────────────────────────────────────────────────┘

Handlers never see a route table that is being modified: the table they
read is a snapshot taken when run() started.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Optional, Union

from .config import ServerConfig
from .core import ConcurrencyLimiter, ConnectionHandler, SocketServer


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Minimal HTTP/1.1 server: exact-match routes, a static root, one request
    per connection, bounded concurrency.

    Usage:
        server = HTTPServer()
        server.register_route("/", "<h1>Home Page</h1>")
        server.set_static_root("public")
        server.run()  # blocks until Ctrl+C / SIGTERM / shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Routes and static root in it are
                    the starting point; more can be registered before run().
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._routes: dict[str, str] = dict(self.config.routes)
        self._static_root: Optional[str] = self.config.static_root

        self.limiter = ConcurrencyLimiter(self.config.max_connections)
        self._socket_server = SocketServer(self.config, self.limiter)
        self._handler: Optional[ConnectionHandler] = None
        self._running = False

    # =========================================================================
    # CONFIGURATION METHODS
    # =========================================================================

    def _check_not_running(self):
        if self._running:
            raise RuntimeError("Cannot change routes or static root while the server is running")

    def register_route(self, path: str, body: str) -> "HTTPServer":
        """
        Serve `body` as text/html for requests to exactly `path`.

        Registering the same path again replaces the body.

        Returns:
            Self for method chaining.
        """
        self._check_not_running()
        if not path.startswith("/"):
            raise ValueError(f"Route path must start with '/': {path!r}")
        self._routes[path] = body
        return self

    def set_static_root(self, root: Optional[Union[str, Path]]) -> "HTTPServer":
        """Serve files from `root` when no route matches. None disables it."""
        self._check_not_running()
        self._static_root = None if root is None else str(root)
        return self

    @staticmethod
    def load_template(path: Union[str, Path], encoding: str = "utf-8") -> str:
        """
        Read a template file to use as a route body.

        Raises:
            OSError: If the file cannot be read. This happens at setup
                     time, before the server accepts anything.
        """
        return Path(path).read_text(encoding=encoding)

    @property
    def routes(self) -> dict[str, str]:
        """A copy of the registered routes."""
        return dict(self._routes)

    @property
    def address(self):
        """The bound (host, port); meaningful once run() is listening."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def build_config(self, host: Optional[str] = None, port: Optional[int] = None) -> ServerConfig:
        """
        Snapshot the current routes and static root into a frozen config.
        """
        changes = dict(routes=self._routes, static_root=self._static_root)
        if host:
            changes["host"] = host
        if port is not None:
            changes["port"] = port

        config = self.config.with_overrides(**changes)
        config.validate()
        return config

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start the server (blocking).

        Args:
            host: Override config host.
            port: Override config port.

        Raises:
            ServerStartupError: If the address cannot be bound or listened on.
        """
        self.config = self.build_config(host, port)

        self._setup_logging()
        self._handler = ConnectionHandler(self.config)
        self._socket_server.config = self.config

        logger.info(f"Starting HTTP server on {self.config.host}:{self.config.port}")
        self._log_routes()

        self._running = True
        try:
            self._socket_server.start(self._handler.handle)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._running = False
            logger.info("Server stopped")

    def shutdown(self):
        """Stop accepting connections. Running handlers finish on their own."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until run() is listening (for tests and embedding)."""
        return self._socket_server.wait_until_ready(timeout)

    def _log_routes(self):
        for path in sorted(self.config.routes):
            logger.info(f"  route {path}")
        if self.config.static_root is not None:
            logger.info(f"  static root {self.config.static_root}")

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("minihttpd").setLevel(level)


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """Factory function for creating server instances."""
    return HTTPServer(config)
