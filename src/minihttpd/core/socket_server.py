"""
=============================================================================
ACCEPTOR: LOW-LEVEL TCP SOCKET SERVER
=============================================================================

The long-running loop that accepts connections and hands each one to its
own handler thread, never running more handlers than the admission
ceiling allows.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create a TCP socket
    2. bind()      Associate it with IP:PORT
    3. listen()    OS starts queueing incoming connections (backlog)
    4. accept()    Take one queued connection → NEW socket for that client
    5. close()     Release the listening socket

Steps 1-3 happen once. Failing any of them is fatal: there is no point
running a server that cannot receive connections, so we raise
ServerStartupError and let the caller exit.

Step 4 repeats forever. A failed accept() only affects the connection
that was being accepted, so it is logged and the loop keeps going.

=============================================================================
THE ACCEPT LOOP
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   while running:                                                     │
    │       sock, addr = accept()              ◄── blocks (1s slices)     │
    │       limiter.acquire()                  ◄── blocks at the ceiling  │
    │       Thread(handle, conn).start()       ◄── fire and forget        │
    │                                                                      │
    │   handler thread:                                                    │
    │       try:     handler(conn)                                         │
    │       finally: limiter.release()         ◄── exactly once, always   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The 1 second timeout on accept() (and the 0.5 second slices on acquire())
exist only so that shutdown() is noticed. Timeouts are not errors.

=============================================================================
SIGNAL HANDLING
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (docker stop, kill) stop the accept loop.
Python only lets the main thread install signal handlers, so when the
server runs on another thread (tests, embedding) we skip that step and
rely on shutdown() being called.

=============================================================================
"""

import errno
import logging
import signal
import socket
import threading
import time
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection
from .limiter import ConcurrencyLimiter


logger = logging.getLogger(__name__)


# accept() errors that mean the process is out of resources; back off
# briefly instead of spinning on them
_RESOURCE_ERRNOS = {errno.EMFILE, errno.ENFILE, errno.ENOBUFS, errno.ENOMEM}

# accept() errors that mean the listening socket itself is gone
_FATAL_ACCEPT_ERRNOS = {errno.EBADF, errno.ENOTSOCK, errno.EINVAL}


class ServerStartupError(OSError):
    """
    The listening socket could not be created, bound, or put in listen mode.

    Attributes:
        reason: Short description of the cause ("address already in use",
                "permission denied", "invalid address", ...).
    """

    def __init__(self, reason: str, address: Tuple[str, int], cause: OSError):
        message = f"Cannot listen on {address[0]}:{address[1]}: {reason}"
        if cause.errno is None:
            super().__init__(message)
        else:
            super().__init__(cause.errno, message)
        self.reason = reason
        self.address = address


def describe_startup_error(e: OSError) -> str:
    """Map a bind/listen OSError to a short human-readable reason."""
    if isinstance(e, socket.gaierror):
        return "invalid address"
    if e.errno == errno.EADDRINUSE:
        return "address already in use"
    if e.errno in (errno.EACCES, errno.EPERM):
        return "permission denied"
    if e.errno in (errno.EADDRNOTAVAIL, errno.EAFNOSUPPORT, errno.EINVAL):
        return "invalid address"
    return e.strerror or "socket error"


class SocketServer:
    """
    Accepts TCP connections and dispatches them to handler threads.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(handler)                                                    │
    │        ├──► _create_socket()   socket() + SO_REUSEADDR              │
    │        ├──► bind() / listen()  (failure → ServerStartupError)       │
    │        ├──► _setup_signals()   main thread only                     │
    │        └──► _accept_loop()     blocks here                          │
    │                                                                      │
    │    shutdown()                  _running = False                      │
    │    _cleanup()                  restore signals, close socket         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        def handle(conn: Connection):
            ...

        server = SocketServer(config, ConcurrencyLimiter(config.max_connections))
        server.start(handle)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig, limiter: Optional[ConcurrencyLimiter] = None):
        """
        Args:
            config: Server configuration (host, port, backlog, timeouts).
            limiter: Admission gate. Defaults to one sized by
                     config.max_connections.
        """
        self.config = config
        self.limiter = limiter or ConcurrencyLimiter(config.max_connections)

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._bound_address: Optional[Tuple[str, int]] = None

        self._ready_event = threading.Event()
        self._shutdown_event = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The address actually bound (port filled in when config.port is 0).
        Falls back to the configured address before start().
        """
        return self._bound_address or (self.config.host, self.config.port)

    # =========================================================================
    # STARTUP
    # =========================================================================

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Avoid "Address already in use" while old connections sit in TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Short accept() timeout so the loop can notice shutdown()
        sock.settimeout(1.0)
        return sock

    def _listen(self) -> socket.socket:
        """
        Create, bind and listen. Any failure is reported and re-raised.

        Raises:
            ServerStartupError: Wrapping the original OSError.
        """
        address = (self.config.host, self.config.port)
        sock = None
        try:
            sock = self._create_socket()
            sock.bind(address)
            sock.listen(self.config.backlog)
        except OSError as e:
            if sock is not None:
                sock.close()
            reason = describe_startup_error(e)
            logger.error(f"Failed to listen on {address[0]}:{address[1]}: {reason} ({e})")
            raise ServerStartupError(reason, address, e) from e
        return sock

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread; signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], object]):
        """
        Bind, listen and run the accept loop.

        This method BLOCKS until shutdown() is called.

        Args:
            connection_handler: Called with each Connection on a new thread.
                                Its return value is ignored.

        Raises:
            ServerStartupError: If the socket cannot be bound or listened on.
        """
        self._socket = self._listen()
        self._bound_address = self._socket.getsockname()[:2]

        self._running = True
        self._shutdown_event.clear()
        self._setup_signals()

        host, port = self._bound_address
        logger.info(f"Server listening on {host}:{port} (max {self.limiter.ceiling} concurrent connections)")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def _accept_loop(self, connection_handler: Callable[[Connection], object]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running:
                    break
                if e.errno in _FATAL_ACCEPT_ERRNOS:
                    logger.error(f"Listening socket failed: {e}")
                    break
                logger.warning(f"Accept error (continuing): {e}")
                if e.errno in _RESOURCE_ERRNOS:
                    time.sleep(0.1)
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                max_request_size=self.config.max_request_size,
            )

            if not self._admit(conn):
                break

            self._dispatch(conn, connection_handler)

    def _admit(self, conn: Connection) -> bool:
        """
        Wait for a free handler slot.

        Returns:
            True once a slot is held, False if the server stopped meanwhile
            (the connection is closed in that case).
        """
        while not self.limiter.acquire(timeout=0.5):
            if not self._running:
                conn.close()
                return False
        return True

    def _dispatch(self, conn: Connection, connection_handler: Callable[[Connection], object]):
        def run():
            try:
                connection_handler(conn)
            finally:
                conn.close()
                self.limiter.release()

        thread = threading.Thread(target=run, name=f"conn-{conn.id}", daemon=True)
        try:
            thread.start()
        except RuntimeError as e:
            # Could not start a thread: give the slot back and drop the client
            logger.error(f"[{conn.id}] Could not start handler thread: {e}")
            conn.close()
            self.limiter.release()

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def shutdown(self):
        """
        Stop the accept loop. Safe to call from any thread, more than once.

        Handlers already running are not interrupted.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False
        self._shutdown_event.set()

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._ready_event.clear()
        self._shutdown_event.set()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the server has stopped. Returns False on timeout."""
        return self._shutdown_event.wait(timeout)
