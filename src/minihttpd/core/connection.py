"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the I/O the server needs: read one
request, write one response, close.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. A client that sends

    POST /submit HTTP/1.1\r\nContent-Length: 19\r\n\r\nname=John+Doe&x=%41

might be received as

    recv() → "POST /submit HTTP/1.1\r\nCont"
    recv() → "ent-Length: 19\r\n\r\nname=Jo"
    recv() → "hn+Doe&x=%41"

A single recv() therefore is not a request. read_request() keeps reading
until it has seen the blank line that ends the headers and, when the
headers announce a Content-Length, the whole body. It also stops at
max_request_size so a client cannot make us buffer without limit.

=============================================================================
CONNECTION LIFECYCLE
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSED
               │                                     ▲
               └──── empty / failed read ────────────┘

There is no keep-alive: every connection serves exactly one request.

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..http.request import HEADER_TERMINATOR, content_length


logger = logging.getLogger(__name__)

# Total time close() spends reading what the client still sends
DRAIN_TIMEOUT = 0.5


class ConnectionState(Enum):
    """Connection lifecycle states, used for logging and debugging."""
    NEW = "new"                # Just accepted
    READING = "reading"        # Reading request bytes
    PROCESSING = "processing"  # Parsing and resolving
    WRITING = "writing"        # Sending the response
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The client socket returned by accept().
        address: Client's (ip, port) tuple.
        id: Short identifier used in log lines.
        state: Current lifecycle state.
        created_at: When the connection was accepted.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    # Configuration (passed from ServerConfig)
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    max_request_size: int = 30000

    def __post_init__(self):
        # Sockets from a listener with a timeout inherit it on some platforms
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def peer(self) -> str:
        """ "ip:port" of the client."""
        return f"{self.client_ip}:{self.client_port}"

    @property
    def age(self) -> float:
        return time.time() - self.created_at

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one HTTP request from the socket.

        ┌─────────────────────────────────────────────────────────────────┐
        │                    read_request() Flow                           │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   while no \\r\\n\\r\\n and under the cap:                           │
        │       recv() → buffer          (peer closed? stop)               │
        │                                                                  │
        │   Content-Length in head?                                        │
        │       while body short and under the cap:                        │
        │           recv() → buffer                                        │
        │                                                                  │
        │   return buffer[:max_request_size]                               │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘

        Returns:
            The request bytes, or None if nothing at all was received
            (peer closed, timed out, or the socket failed before the
            first byte).
        """
        self.state = ConnectionState.READING
        buffer = b""

        try:
            # STEP 1: read until the headers are complete
            while HEADER_TERMINATOR not in buffer and len(buffer) < self.max_request_size:
                chunk = self.socket.recv(self.buffer_size)
                if not chunk:
                    return buffer or None
                buffer += chunk

            # STEP 2: read the rest of the body, if one was announced
            header_end = buffer.find(HEADER_TERMINATOR)
            if header_end != -1:
                expected = content_length(buffer[:header_end])
                if expected:
                    request_end = header_end + len(HEADER_TERMINATOR) + expected
                    while len(buffer) < min(request_end, self.max_request_size):
                        chunk = self.socket.recv(self.buffer_size)
                        if not chunk:
                            break
                        buffer += chunk

        except socket.timeout:
            logger.debug(f"[{self.id}] Read timed out after {len(buffer)} bytes")
            return buffer or None

        except OSError as e:
            logger.debug(f"[{self.id}] Read failed: {e}")
            return buffer or None

        if len(buffer) > self.max_request_size:
            logger.debug(f"[{self.id}] Request truncated to {self.max_request_size} bytes")
            buffer = buffer[:self.max_request_size]

        return buffer

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes to the client.

        Uses sendall() so the whole response goes out or an error is raised.

        Returns:
            True if sent, False if the client went away.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.debug(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection. Safe to call more than once.

        shutdown(SHUT_WR) first so the client sees a clean FIN after the
        response, then drain whatever the client still sends, then release
        the file descriptor.

        The drain stops after DRAIN_TIMEOUT seconds in total (not per recv)
        or max_request_size bytes, whichever comes first.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        self._drain()

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def _drain(self):
        deadline = time.monotonic() + DRAIN_TIMEOUT
        drained = 0
        try:
            while drained < self.max_request_size:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                chunk = self.socket.recv(1024)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass  # socket.timeout is an OSError too

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
