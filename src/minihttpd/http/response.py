"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Turns a resolution result (status, content type, body) into the exact bytes
written back to the client.

=============================================================================
RESPONSE FORMAT
=============================================================================

Every response this server sends has the same shape:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   HTTP/1.1 200 OK\r\n                   ← Status line               │
    │   Content-Type: text/html\r\n           ← What the body is          │
    │   Content-Length: 18\r\n                ← Exact body byte count     │
    │   Connection: close\r\n                 ← Always: one request only  │
    │   \r\n                                  ← Blank line                │
    │   <h1>Home Page</h1>                    ← Body bytes                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Content-Length is the length of the body in BYTES, not characters:
"<h1>Café</h1>" is 13 characters but 14 bytes in UTF-8.

=============================================================================
"""

from dataclasses import dataclass
from typing import Union

from .mime_types import HTML_MIME_TYPE
from .status_codes import HTTPStatus


NOT_FOUND_BODY = b"<h1>404 Not Found</h1>"
BAD_REQUEST_BODY = b"<h1>400 Bad Request</h1>"


@dataclass(frozen=True)
class ResolutionResult:
    """
    Outcome of resolving a request path.

    Produced by the resolver, consumed immediately by build_response().

    Attributes:
        status:       HTTP status (200, 404, ...)
        content_type: Value for the Content-Type header
        body:         Response body bytes
    """

    status: HTTPStatus
    content_type: str
    body: bytes

    @property
    def status_text(self) -> str:
        """Status token as it appears after the version: "200 OK"."""
        return f"{int(self.status)} {self.status.phrase}"


def ok_html(body: Union[str, bytes]) -> ResolutionResult:
    """200 OK with an HTML body."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    return ResolutionResult(HTTPStatus.OK, HTML_MIME_TYPE, body)


def not_found() -> ResolutionResult:
    """The fixed 404 page."""
    return ResolutionResult(HTTPStatus.NOT_FOUND, HTML_MIME_TYPE, NOT_FOUND_BODY)


def bad_request() -> ResolutionResult:
    """The fixed 400 page, sent for malformed request lines."""
    return ResolutionResult(HTTPStatus.BAD_REQUEST, HTML_MIME_TYPE, BAD_REQUEST_BODY)


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be serialized.

    Header order is fixed: Content-Type, Content-Length, Connection.
    """

    status: HTTPStatus = HTTPStatus.OK
    content_type: str = HTML_MIME_TYPE
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"
        """
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def headers(self) -> list[tuple[str, str]]:
        return [
            ("Content-Type", self.content_type),
            ("Content-Length", str(len(self.body))),
            ("Connection", "close"),
        ]

    def to_bytes(self) -> bytes:
        """
        Serialize the response for socket.sendall().

        Returns:
            Status line, headers, blank line and body as one bytes object.
        """
        lines = [self.status_line]
        for name, value in self.headers:
            lines.append(f"{name}: {value}")

        # Empty line separates headers from body
        lines.append("")

        head = "\r\n".join(lines).encode("latin-1") + b"\r\n"
        return head + self.body

    @classmethod
    def from_result(cls, result: ResolutionResult) -> "HTTPResponse":
        return cls(
            status=result.status,
            content_type=result.content_type,
            body=result.body,
        )


def build_response(result: ResolutionResult) -> bytes:
    """
    Build the complete response bytes for a resolution result.

    This never fails: every ResolutionResult has a valid framing.

    Example:
        >>> build_response(ok_html("<h1>Hi</h1>"))[:17]
        b'HTTP/1.1 200 OK\\r\\n'
    """
    return HTTPResponse.from_result(result).to_bytes()
