"""
=============================================================================
CONNECTION HANDLER
=============================================================================

Runs the whole request/response pipeline for ONE connection, on that
connection's own thread.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      PIPELINE (linear)                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Read ──► empty? ─────────────────────────────────────────► Close  │
    │     │                                                          ▲    │
    │     ▼                                                          │    │
    │   Parse ──► malformed? ──► 400 Bad Request ──► Write ──────────┤    │
    │     │                                                          │    │
    │     ▼                                                          │    │
    │   Log "[ip:port] METHOD path"                                   │    │
    │     │                                                          │    │
    │     ▼                                                          │    │
    │   POST? ──► decode_form ──► log each "key = value"              │    │
    │     │                                                          │    │
    │     ▼                                                          │    │
    │   Resolve(path) ──► Build ──► Write ───────────────────────────┘    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every exit path closes the socket exactly once (the `with conn:` block)
and no exception ever leaves handle(): a broken connection must not take
the acceptor down with it.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..config import ServerConfig
from ..http.forms import decode_form
from ..http.request import IncomingRequest, MalformedRequest, RequestParser
from ..http.resolver import Resolver
from ..http.response import ResolutionResult, bad_request, build_response
from .connection import Connection, ConnectionState


logger = logging.getLogger(__name__)

# Per-request lines go to a dedicated logger so they can be routed
# separately: logging.getLogger("minihttpd.access").addHandler(...)
access_logger = logging.getLogger("minihttpd.access")


@dataclass
class Exchange:
    """
    What happened on one connection.

    Returned by ConnectionHandler.handle() for logging and tests; the
    server itself ignores it.
    """

    peer: str
    request: Optional[IncomingRequest] = None
    form: dict = field(default_factory=dict)
    result: Optional[ResolutionResult] = None
    sent: bool = False

    @property
    def responded(self) -> bool:
        return self.result is not None and self.sent


class ConnectionHandler:
    """
    Handles one connection from first byte to close.

    A single instance is shared by all handler threads; it only reads the
    immutable config and the stateless parser/resolver.
    """

    def __init__(self, config: ServerConfig, resolver: Optional[Resolver] = None):
        self.config = config
        self.parser = RequestParser()
        self.resolver = resolver or Resolver(config)

    def handle(self, conn: Connection) -> Exchange:
        """
        Serve one request on conn, then close it.

        Args:
            conn: The accepted client connection.

        Returns:
            The Exchange describing what was read and sent.
        """
        exchange = Exchange(peer=conn.peer)

        with conn:
            try:
                self._serve(conn, exchange)
            except Exception as e:
                # Anything unexpected stays inside this connection
                logger.exception(f"[{conn.id}] Connection error: {e}")

        return exchange

    def _serve(self, conn: Connection, exchange: Exchange):
        # ─────────────────────────────────────────────────────────────────
        # READ
        # ─────────────────────────────────────────────────────────────────
        raw = conn.read_request()
        if not raw:
            # Nothing received: close without a response
            logger.debug(f"[{conn.id}] Empty read from {conn.peer}")
            return

        conn.state = ConnectionState.PROCESSING

        # ─────────────────────────────────────────────────────────────────
        # PARSE
        # ─────────────────────────────────────────────────────────────────
        try:
            request = self.parser.parse(raw, conn.address)
        except MalformedRequest as e:
            logger.warning(f"[{conn.id}] {conn.peer} sent a malformed request: {e}")
            self._respond(conn, exchange, bad_request())
            return

        exchange.request = request
        access_logger.info(f"[{conn.peer}] {request.method} {request.path}")

        # ─────────────────────────────────────────────────────────────────
        # FORM DATA
        # ─────────────────────────────────────────────────────────────────
        if request.is_form:
            exchange.form = decode_form(request.body)
            for key, value in exchange.form.items():
                access_logger.info(f"{key} = {value}")

        # ─────────────────────────────────────────────────────────────────
        # RESOLVE + RESPOND
        # ─────────────────────────────────────────────────────────────────
        self._respond(conn, exchange, self.resolver.resolve(request.path))

    def _respond(self, conn: Connection, exchange: Exchange, result: ResolutionResult):
        exchange.result = result
        exchange.sent = conn.send_response(build_response(result))
        if not exchange.sent:
            logger.debug(f"[{conn.id}] Client left before the response was written")
