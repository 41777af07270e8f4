"""
Unit tests for the accept loop.

A scripted stand-in for the listening socket feeds accept() results to
SocketServer._accept_loop(), so error paths can be driven directly.
"""

import errno
import logging
import socket
import threading

import pytest

from minihttpd.config import ServerConfig
from minihttpd.core import socket_server
from minihttpd.core.connection import Connection
from minihttpd.core.socket_server import (
    ServerStartupError,
    SocketServer,
    describe_startup_error,
)


class ScriptedListener:
    """Returns (or raises) the scripted accept() results, then stops the server."""

    def __init__(self, server: SocketServer, script: list):
        self.server = server
        self.script = list(script)
        self.calls = 0

    def accept(self):
        self.calls += 1
        if not self.script:
            self.server.shutdown()
            raise socket.timeout("timed out")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture
def client_pair():
    server_side, client_side = socket.socketpair()
    client_side.shutdown(socket.SHUT_WR)
    yield server_side, client_side
    server_side.close()
    client_side.close()


def run_loop(server: SocketServer, script: list) -> tuple[ScriptedListener, list]:
    """Run the accept loop over a script; return the listener and handled connections."""
    handled = []
    lock = threading.Lock()

    def handler(conn: Connection):
        with lock:
            handled.append(conn)

    listener = ScriptedListener(server, script)
    server._socket = listener
    server._running = True
    server._accept_loop(handler)

    assert server.limiter.wait_idle(timeout=5.0)
    return listener, handled


class TestAcceptLoop:
    """Errors from accept() and how the loop reacts."""

    def test_transient_error_is_logged_and_loop_continues(self, client_pair, caplog):
        server = SocketServer(ServerConfig(timeout=2.0))
        server_side, _ = client_pair

        with caplog.at_level(logging.WARNING, logger="minihttpd.core.socket_server"):
            listener, handled = run_loop(server, [
                OSError(errno.ECONNABORTED, "Software caused connection abort"),
                (server_side, ("10.0.0.1", 4000)),
            ])

        assert [conn.peer for conn in handled] == ["10.0.0.1:4000"]
        assert handled[0].is_closed
        assert listener.calls == 3
        assert "Accept error (continuing)" in caplog.text
        assert server.limiter.admitted == 1

    def test_resource_exhaustion_backs_off(self, client_pair, monkeypatch):
        server = SocketServer(ServerConfig(timeout=2.0))
        server_side, _ = client_pair
        sleeps = []
        monkeypatch.setattr(socket_server.time, "sleep", sleeps.append)

        _, handled = run_loop(server, [
            OSError(errno.EMFILE, "Too many open files"),
            (server_side, ("10.0.0.2", 4001)),
        ])

        assert sleeps == [0.1]
        assert len(handled) == 1

    def test_dead_listening_socket_stops_loop(self, client_pair, caplog):
        server = SocketServer(ServerConfig(timeout=2.0))
        server_side, _ = client_pair

        with caplog.at_level(logging.ERROR, logger="minihttpd.core.socket_server"):
            listener, handled = run_loop(server, [
                OSError(errno.EBADF, "Bad file descriptor"),
                (server_side, ("10.0.0.3", 4002)),
            ])

        assert listener.calls == 1
        assert handled == []
        assert "Listening socket failed" in caplog.text

    def test_error_after_shutdown_ends_quietly(self, caplog):
        server = SocketServer(ServerConfig(timeout=2.0))

        class ClosedListener:
            def accept(self):
                server.shutdown()
                raise OSError(errno.ECONNABORTED, "closed")

        server._socket = ClosedListener()
        server._running = True
        with caplog.at_level(logging.WARNING, logger="minihttpd.core.socket_server"):
            server._accept_loop(lambda conn: None)

        assert "Accept error" not in caplog.text


class TestStartupErrors:

    @pytest.mark.parametrize("error,reason", [
        (OSError(errno.EADDRINUSE, "Address already in use"), "address already in use"),
        (OSError(errno.EACCES, "Permission denied"), "permission denied"),
        (OSError(errno.EADDRNOTAVAIL, "Cannot assign requested address"), "invalid address"),
        (socket.gaierror(-2, "Name or service not known"), "invalid address"),
    ])
    def test_describe_startup_error(self, error: OSError, reason: str):
        assert describe_startup_error(error) == reason

    def test_startup_error_keeps_errno(self):
        cause = OSError(errno.EADDRINUSE, "Address already in use")
        error = ServerStartupError("address already in use", ("127.0.0.1", 8080), cause)

        assert error.errno == errno.EADDRINUSE
        assert error.reason == "address already in use"
        assert "127.0.0.1:8080" in str(error)
