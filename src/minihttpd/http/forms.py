"""
=============================================================================
FORM DECODER
=============================================================================

Decodes application/x-www-form-urlencoded bodies, the format browsers use
when an HTML <form method="POST"> is submitted:

    name=John+Doe&city=S%C3%A3o+Paulo&x=%41
    ─┬── ────┬───  ──┬─ ──────┬──────
     │       │       │        │
    key    value    key     value

    {"name": "John Doe", "city": "São Paulo", "x": "A"}

=============================================================================
DECODING RULES
=============================================================================

    &      separates pairs
    =      first one separates key from value (later ones belong to value)
    +      space
    %XY    byte with hex value XY
    other  passed through unchanged

A pair without "=" is dropped. When a key repeats, the last value wins.

MALFORMED ESCAPES
─────────────────
A "%" that is not followed by two hex digits ("%", "%4", "%zz") is kept
as a literal "%" and decoding continues right after it:

    "100%"   → "100%"
    "%4"     → "%4"
    "%zz41"  → "%zz41"

The decoder never raises; a body that is not form-encoded at all just
produces fewer (or zero) fields.

=============================================================================
"""

from typing import Mapping, Union
from urllib.parse import unquote_to_bytes, urlencode


def unquote_plus_bytes(data: bytes) -> bytes:
    """
    Percent-decode one form component without leaving bytes.

    Decoding to text happens afterwards, so multi-byte UTF-8 sequences
    split across escapes ("%C3%A3") come out whole.

    Args:
        data: A key or value exactly as it appeared in the body.

    Returns:
        The decoded bytes. Malformed escapes are kept literally.
    """
    return unquote_to_bytes(data.replace(b"+", b" "))


def decode_component(data: bytes) -> str:
    """Decode one key or value to text (UTF-8, undecodable bytes replaced)."""
    return unquote_plus_bytes(data).decode("utf-8", errors="replace")


def decode_form(body: Union[bytes, str]) -> dict[str, str]:
    """
    Decode a form-encoded body into a dict.

    Args:
        body: The raw request body.

    Returns:
        Decoded key → value pairs. Never raises.

    Example:
        >>> decode_form(b"name=John+Doe&x=%41")
        {'name': 'John Doe', 'x': 'A'}
    """
    if isinstance(body, str):
        body = body.encode("utf-8")

    fields: dict[str, str] = {}
    for candidate in body.split(b"&"):
        key, sep, value = candidate.partition(b"=")
        if not sep:
            continue
        fields[decode_component(key)] = decode_component(value)
    return fields


def encode_form(fields: Mapping[str, str]) -> bytes:
    """
    Encode fields the way a browser would.

    Handy for building request bodies in clients and tests.
    """
    return urlencode(dict(fields)).encode("ascii")
