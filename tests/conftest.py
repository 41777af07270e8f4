"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from minihttpd import HTTPServer, ServerConfig


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET / HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample form POST request."""
    body = b"name=John+Doe&x=%41"
    return (
        b"POST /submit HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/x-www-form-urlencoded\r\n"
        b"Content-Length: %d\r\n"
        b"\r\n"
    ) % len(body) + body


@pytest.fixture
def static_root(tmp_path: Path) -> Path:
    """A static root with a few files of different types."""
    root = tmp_path / "public"
    root.mkdir()
    (root / "style.css").write_text("body { color: red; }")
    (root / "index.html").write_text("<h1>Index</h1>")
    (root / "app.js").write_text("console.log('hi');")
    (root / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00\x00")
    (root / "notes.txt").write_text("plain notes")
    (root / "sub").mkdir()
    (root / "sub" / "page.html").write_text("<p>nested</p>")
    # A file next to the root that must not be reachable through it
    (tmp_path / "secret.txt").write_text("top secret")
    return root


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def send_raw(port: int, data: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes to the server and read until it closes the connection."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as s:
        if data:
            s.sendall(data)
        s.shutdown(socket.SHUT_WR)
        chunks = []
        while True:
            chunk = s.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def split_response(raw: bytes) -> tuple[str, dict, bytes]:
    """Split a response into (status line, headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip()] = value.strip()
    return lines[0], headers, body


@pytest.fixture
def http_raw():
    """send_raw(port, data) as a fixture."""
    return send_raw


@pytest.fixture
def parse_response():
    """split_response(raw) as a fixture."""
    return split_response


class RunningServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, data: bytes) -> bytes:
        return send_raw(self.port, data)


@pytest.fixture
def make_server() -> Generator:
    """Factory for running servers; every server started is stopped afterwards."""
    started = []

    def factory(config: Optional[ServerConfig] = None, routes: Optional[dict] = None) -> RunningServer:
        server = HTTPServer(config or ServerConfig(port=0, log_level="WARNING", timeout=5.0))
        for path, body in (routes or {}).items():
            server.register_route(path, body)
        running = RunningServer(server)
        running.start()
        started.append(running)
        return running

    yield factory

    for running in started:
        running.stop()


@pytest.fixture
def test_server(make_server) -> RunningServer:
    """A running server with the demo routes and no static root."""
    return make_server(routes={
        "/": "<h1>Home Page</h1>",
        "/hello": "<h1>Hello Route</h1>",
    })
