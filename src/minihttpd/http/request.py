"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes read from a connection into an IncomingRequest.

This parser is deliberately shallow. The server only needs three things
from a request: the method, the path, and (for POST) the body. So we:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     WHAT THE PARSER DOES                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   POST /submit HTTP/1.1\r\n          ◄── request line: tokenized    │
    │   Host: localhost\r\n                ◄─┐                             │
    │   Content-Length: 19\r\n               ├─ header block: kept raw     │
    │   \r\n                               ◄─┘  (first CRLFCRLF)           │
    │   name=John+Doe&x=%41                ◄── body: raw bytes             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    - No HTTP version validation ("HTTP/9.9" is fine)
    - No header-by-header parsing
    - Unknown methods are accepted (the resolver treats them like GET)
    - The query string stays part of the path

The only failure is a request line with fewer than three whitespace
separated tokens, which raises MalformedRequest.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional


HEADER_TERMINATOR = b"\r\n\r\n"

# Latin-1 maps every byte to a code point, so decoding never fails and
# the request line can always be tokenized.
HEAD_ENCODING = "iso-8859-1"


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the HTTP status code that should be returned to the client.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class MalformedRequest(HTTPParseError):
    """The request line could not be split into method, path and version."""


@dataclass
class IncomingRequest:
    """
    A parsed HTTP request, scoped to one connection handler.

    Attributes:
        method:         Request method exactly as sent ("GET", "POST", "BREW")
        path:           Request target, query string included
        version:        HTTP version token, not validated
        headers:        Raw header block (lines between request line and
                        the blank line), CRLF separated
        body:           Bytes following the first CRLFCRLF
        client_address: (ip, port) of the peer
        raw:            The bytes the request was parsed from
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: str = ""
    body: bytes = b""
    client_address: tuple = ("", 0)
    raw: bytes = field(default=b"", repr=False)

    @property
    def is_form(self) -> bool:
        """Only POST bodies are decoded as form fields."""
        return self.method == "POST"

    def header_lines(self) -> list[str]:
        """The raw header block split into lines (empty lines dropped)."""
        return [line for line in self.headers.split("\r\n") if line]


class RequestParser:
    """
    Parses raw HTTP request bytes into IncomingRequest objects.

    ==========================================================================
    PARSING STEPS
    ==========================================================================

        1. Split at the first \\r\\n\\r\\n
              └── absent? whole buffer is the head, body is empty
        2. Decode the head as Latin-1
        3. First line → split on whitespace
              └── fewer than 3 tokens? MalformedRequest
        4. Rest of the head → raw header block

    ==========================================================================
    """

    def parse(
        self,
        data: bytes,
        client_address: tuple = ("", 0),
    ) -> IncomingRequest:
        """
        Parse raw request bytes.

        Args:
            data: Bytes read from the socket.
            client_address: Peer (ip, port), carried along for logging.

        Returns:
            The parsed IncomingRequest.

        Raises:
            MalformedRequest: If the request line has fewer than three tokens.
        """
        head, body = split_head(data)
        text = head.decode(HEAD_ENCODING)

        request_line, _, header_block = text.partition("\r\n")
        tokens = request_line.split()
        if len(tokens) < 3:
            raise MalformedRequest(f"Invalid request line: {request_line!r}")

        method, path, version = tokens[:3]

        return IncomingRequest(
            method=method,
            path=path,
            version=version,
            headers=header_block,
            body=body,
            client_address=client_address,
            raw=data,
        )


def split_head(data: bytes) -> tuple[bytes, bytes]:
    """
    Split request bytes into (head, body) at the first CRLFCRLF.

    When no terminator is present the whole buffer is the head.
    """
    header_end = data.find(HEADER_TERMINATOR)
    if header_end == -1:
        return data, b""
    return data[:header_end], data[header_end + len(HEADER_TERMINATOR):]


def content_length(head: bytes) -> Optional[int]:
    """
    Find a Content-Length value in a raw request head.

    This is a simple scan rather than header parsing; the connection
    uses it before the request is parsed to know how much body to wait
    for. Returns None when the header is missing or not a number.
    """
    for line in head.split(b"\r\n")[1:]:
        name, sep, value = line.partition(b":")
        if sep and name.strip().lower() == b"content-length":
            try:
                length = int(value.strip())
            except ValueError:
                return None
            return length if length >= 0 else None
    return None


def parse_request(data: bytes, client_address: tuple = ("", 0)) -> IncomingRequest:
    """Convenience wrapper around RequestParser().parse()."""
    return RequestParser().parse(data, client_address)
