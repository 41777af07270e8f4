"""
Unit tests for HTTP request parsing.
"""

import pytest

from minihttpd.http.request import (
    IncomingRequest,
    RequestParser,
    HTTPParseError,
    MalformedRequest,
    content_length,
    parse_request,
    split_head,
)


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        """Test parsing a simple GET request."""
        parser = RequestParser()
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)
        assert request.body == b""

    def test_header_block_kept_raw(self, sample_get_request: bytes):
        """Headers are not parsed, only separated from the body."""
        request = parse_request(sample_get_request)

        assert request.headers == "Host: localhost:8080\r\nUser-Agent: pytest"
        assert request.header_lines() == ["Host: localhost:8080", "User-Agent: pytest"]

    def test_parse_post_with_body(self, sample_post_request: bytes):
        """Body is everything after the first blank line."""
        request = parse_request(sample_post_request)

        assert request.method == "POST"
        assert request.path == "/submit"
        assert request.body == b"name=John+Doe&x=%41"
        assert request.is_form is True
        assert "Content-Length: 19" in request.header_lines()

    def test_query_string_stays_in_path(self):
        request = parse_request(b"GET /search?q=a+b HTTP/1.1\r\n\r\n")

        assert request.path == "/search?q=a+b"

    def test_no_header_terminator(self):
        """Without CRLFCRLF the whole buffer is the head and the body is empty."""
        request = parse_request(b"GET /partial HTTP/1.1\r\nHost: x")

        assert request.path == "/partial"
        assert request.headers == "Host: x"
        assert request.body == b""

    def test_only_first_terminator_splits(self):
        request = parse_request(b"POST / HTTP/1.1\r\n\r\nfirst\r\n\r\nsecond")

        assert request.body == b"first\r\n\r\nsecond"

    def test_unknown_method_accepted(self):
        request = parse_request(b"BREW /pot HTTP/1.1\r\n\r\n")

        assert request.method == "BREW"
        assert request.is_form is False

    def test_version_not_validated(self):
        request = parse_request(b"GET / HTTP/9.9\r\n\r\n")

        assert request.version == "HTTP/9.9"

    def test_extra_whitespace_in_request_line(self):
        request = parse_request(b"GET   /spaced \t HTTP/1.0 extra\r\n\r\n")

        assert (request.method, request.path, request.version) == ("GET", "/spaced", "HTTP/1.0")

    @pytest.mark.parametrize("raw", [
        b"GET\r\nHost: test\r\n\r\n",
        b"GET /only-two\r\n\r\n",
        b"\r\n\r\n",
        b"   \r\n",
    ])
    def test_malformed_request_line(self, raw: bytes):
        with pytest.raises(MalformedRequest) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400
        assert isinstance(exc_info.value, HTTPParseError)

    def test_non_utf8_bytes_do_not_break_parsing(self):
        request = parse_request(b"GET /caf\xe9 HTTP/1.1\r\n\r\n")

        assert request.path == "/caf\xe9"


class TestHelpers:
    """Tests for the framing helpers used by the connection."""

    def test_split_head(self):
        assert split_head(b"HEAD\r\n\r\nBODY") == (b"HEAD", b"BODY")
        assert split_head(b"HEAD only") == (b"HEAD only", b"")

    def test_content_length_found(self):
        head = b"POST / HTTP/1.1\r\nHost: x\r\ncontent-LENGTH:  42"
        assert content_length(head) == 42

    def test_content_length_missing_or_invalid(self):
        assert content_length(b"GET / HTTP/1.1\r\nHost: x") is None
        assert content_length(b"POST / HTTP/1.1\r\nContent-Length: abc") is None
        assert content_length(b"POST / HTTP/1.1\r\nContent-Length: -5") is None

    def test_content_length_ignores_request_line(self):
        assert content_length(b"Content-Length: 5 / HTTP/1.1") is None


class TestIncomingRequest:
    """Tests for IncomingRequest dataclass."""

    def test_defaults(self):
        request = IncomingRequest(method="GET", path="/")

        assert request.version == "HTTP/1.1"
        assert request.body == b""
        assert request.header_lines() == []

    def test_only_post_is_form(self):
        assert IncomingRequest(method="POST", path="/").is_form
        assert not IncomingRequest(method="PUT", path="/").is_form
