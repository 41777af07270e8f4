"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

Everything that happens to a request between "bytes arrived" and "bytes
go out", with no sockets involved. Each piece can be tested on its own.

    raw bytes
       │
       ▼
    ┌──────────────┐   IncomingRequest   ┌──────────────┐
    │ RequestParser│ ──────────────────► │ decode_form  │  (POST only)
    └──────┬───────┘                     └──────────────┘
           │ path
           ▼
    ┌──────────────┐  ResolutionResult   ┌──────────────┐
    │   Resolver   │ ──────────────────► │build_response│ ──► bytes
    └──────────────┘                     └──────────────┘

=============================================================================
"""

from .request import (
    IncomingRequest,
    RequestParser,
    HTTPParseError,
    MalformedRequest,
    parse_request,
)
from .forms import decode_form, encode_form
from .resolver import Resolver, resolve
from .response import (
    HTTPResponse,
    ResolutionResult,
    build_response,
    ok_html,
    not_found,
    bad_request,
)
from .status_codes import HTTPStatus
from .mime_types import content_type_for

__all__ = [
    # Request parsing
    "IncomingRequest",
    "RequestParser",
    "HTTPParseError",
    "MalformedRequest",
    "parse_request",

    # Form decoding
    "decode_form",
    "encode_form",

    # Resolution
    "Resolver",
    "resolve",
    "ResolutionResult",

    # Response building
    "HTTPResponse",
    "build_response",
    "ok_html",
    "not_found",
    "bad_request",

    # Status codes
    "HTTPStatus",

    # MIME types
    "content_type_for",
]
