"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized, immutable configuration for the HTTP server.

=============================================================================
WHY A FROZEN CONFIG?
=============================================================================

Every connection handler runs on its own thread and reads the route table
and static root concurrently. If the configuration could change while
handlers are running, one thread might observe a half-updated route table.

Freezing the dataclass (and wrapping the routes in a read-only mapping)
means handlers can read it without any locking:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      CONFIGURATION LIFECYCLE                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Build       HTTPServer.register_route(), set_static_root()     │
    │                  (mutable, single thread, before run())             │
    │                                                                      │
    │   2. Freeze      ServerConfig(routes=MappingProxyType(...))         │
    │                  validate() - fail fast                              │
    │                                                                      │
    │   3. Share       Every ConnectionHandler gets the same object        │
    │                  Read-only, no locks                                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    Priority (highest to lowest):

    1. Command-line arguments       python -m minihttpd --port 3000
    2. Environment variables        HTTP_PORT=3000 python -m minihttpd
    3. Default values (in this dataclass)

=============================================================================
"""

import os
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping, Optional


# Largest request read from one connection, headers and body together.
DEFAULT_MAX_REQUEST_SIZE = 30000


def _freeze_routes(routes: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    """Copy a route table into a read-only mapping."""
    return MappingProxyType(dict(routes or {}))


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    CONCURRENCY
    - max_connections (the admission ceiling)

    CONTENT
    - routes, static_root, safe_static_paths

    REQUEST LIMITS
    - max_request_size

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only (development)
    - "0.0.0.0" - All network interfaces
    """

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free port (tests)."""

    backlog: int = 128
    """
    Kernel accept queue size.
    Connections waiting for an admission slot sit here.
    """

    buffer_size: int = 8192
    """Size of each recv() call in bytes."""

    timeout: Optional[float] = 30.0
    """
    Read/write deadline for client sockets in seconds.
    None = block forever (a silent client then holds its slot indefinitely).
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY
    # ─────────────────────────────────────────────────────────────────────

    max_connections: int = 10
    """
    Maximum number of connection handlers running at the same time.
    The acceptor stops dispatching while this many are active.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    routes: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    """Exact path → HTML body. Checked before the static root."""

    static_root: Optional[str] = None
    """
    Directory used as a fallback content source.
    The request path is appended to it to locate a file.
    None disables static serving.
    """

    safe_static_paths: bool = True
    """
    Reject static lookups that resolve outside static_root (../ escapes).
    False keeps plain string concatenation.
    """

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_request_size: int = DEFAULT_MAX_REQUEST_SIZE
    """Stop reading a request after this many bytes."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    def __post_init__(self):
        # frozen=True forbids normal assignment, so go through object
        object.__setattr__(self, "routes", _freeze_routes(self.routes))
        # The resolver joins by string concatenation, so Path roots become str
        if self.static_root is not None:
            object.__setattr__(self, "static_root", os.fspath(self.static_root))

    @classmethod
    def from_env(cls, **overrides) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST             Server host (default: 127.0.0.1)
        HTTP_PORT             Server port (default: 8080)
        HTTP_MAX_CONNECTIONS  Admission ceiling (default: 10)
        HTTP_STATIC_ROOT      Static files directory (default: None)
        HTTP_TIMEOUT          Socket timeout in seconds, 0 = none (default: 30)
        HTTP_LOG_LEVEL        Logging level (default: INFO)

        =====================================================================

        Args:
            **overrides: Explicit values that win over the environment.
        """
        timeout = float(os.getenv("HTTP_TIMEOUT", "30"))
        values = dict(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            max_connections=int(os.getenv("HTTP_MAX_CONNECTIONS", "10")),
            static_root=os.getenv("HTTP_STATIC_ROOT") or None,
            timeout=timeout if timeout > 0 else None,
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
        )
        values.update(overrides)
        return cls(**values)

    def with_overrides(self, **changes) -> "ServerConfig":
        """Return a copy with some fields replaced (the original is untouched)."""
        return replace(self, **changes)

    def validate(self) -> None:
        """
        Validate configuration values.

        We validate at startup, not at first use, so a bad value fails
        before the socket is even bound.

        Raises:
            ValueError: On the first invalid value found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.max_connections < 1:
            raise ValueError("max_connections must be >= 1")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.max_request_size < self.buffer_size:
            raise ValueError("max_request_size must be >= buffer_size")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        for path in self.routes:
            if not path.startswith("/"):
                raise ValueError(f"Route path must start with '/': {path!r}")
