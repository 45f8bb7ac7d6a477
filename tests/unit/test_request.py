"""
Unit tests for HTTP request parsing.
"""

import pytest

from simplewebserver.http.request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    parse_request,
)


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        """Test parsing a simple GET request."""
        parser = RequestParser()
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/report.action"
        assert request.target == "/report.action?page=1&limit=10"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)

    def test_parse_headers(self, sample_get_request: bytes):
        """Test that headers are parsed correctly."""
        request = parse_request(sample_get_request)

        assert request.host == "localhost:9999"
        assert request.headers["user-agent"] == "pytest"
        assert request.headers["accept"] == "text/html"

    def test_parse_query_params(self, sample_get_request: bytes):
        """Test query parameter parsing."""
        request = parse_request(sample_get_request)

        assert request.get_query("page") == "1"
        assert request.get_query("limit") == "10"
        assert request.get_query("missing") is None
        assert request.get_query("missing", "default") == "default"
        assert request.query_string == "page=1&limit=10"

    def test_parse_post_with_body(self, sample_post_request: bytes):
        """Test parsing POST request with a form body."""
        request = parse_request(sample_post_request)

        assert request.method == "POST"
        assert request.path == "/save.action"
        assert request.content_type == "application/x-www-form-urlencoded"
        assert request.charset == "utf-8"
        assert request.has_body is True
        assert request.body == b"name=John&email=john%40example.com"

    def test_parse_path_with_special_chars(self):
        """Test that URL-encoded paths are decoded."""
        data = b"GET /my%20file.html HTTP/1.1\r\nHost: localhost\r\n\r\n"
        request = parse_request(data)

        assert request.path == "/my file.html"
        assert request.target == "/my%20file.html"

    def test_absolute_form_target(self):
        """Test that absolute-form targets are reduced to origin-form."""
        data = b"GET http://localhost:9999/a.action?x=1 HTTP/1.1\r\n\r\n"
        request = parse_request(data)

        assert request.path == "/a.action"
        assert request.target == "/a.action?x=1"

    def test_parse_invalid_method(self):
        """Test that unknown methods are rejected with 405."""
        data = b"FOO / HTTP/1.1\r\nHost: localhost\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(data)

        assert exc_info.value.status_code == 405

    def test_parse_invalid_request_line(self):
        """Test that malformed request lines are rejected."""
        data = b"INVALID\r\nHost: localhost\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(data)

        assert exc_info.value.status_code == 400

    def test_parse_missing_terminator(self):
        """Test that a request without \\r\\n\\r\\n is incomplete."""
        with pytest.raises(HTTPParseError):
            parse_request(b"GET / HTTP/1.1\r\nHost: localhost\r\n")

    def test_parse_path_traversal_blocked(self):
        """Test that path traversal is blocked."""
        data = b"GET /../../../etc/passwd HTTP/1.1\r\nHost: localhost\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(data)

        assert exc_info.value.status_code == 400

    def test_encoded_traversal_blocked(self):
        """Test that a percent-encoded ".." segment is also rejected."""
        data = b"GET /css/%2e%2e/secret.css HTTP/1.1\r\n\r\n"

        with pytest.raises(HTTPParseError):
            parse_request(data)

    def test_double_dot_inside_name_allowed(self):
        """Test that ".." inside a file name is not traversal."""
        request = parse_request(b"GET /notes..v2.html HTTP/1.1\r\n\r\n")

        assert request.path == "/notes..v2.html"

    def test_leading_double_slash_keeps_path(self):
        """Test that "//x" is a path, not a network location."""
        request = parse_request(b"GET //css/site.css HTTP/1.1\r\nHost: x\r\n\r\n")

        assert request.path == "//css/site.css"
        assert request.target == "//css/site.css"

    def test_leading_double_slash_with_query(self):
        request = parse_request(b"GET //index.html?a=1 HTTP/1.1\r\n\r\n")

        assert request.path == "//index.html"
        assert request.get_query("a") == "1"

    def test_fragment_is_dropped(self):
        request = parse_request(b"GET /a.action?x=1#top HTTP/1.1\r\n\r\n")

        assert request.path == "/a.action"
        assert request.get_query("x") == "1"

    def test_http_version_parsing(self):
        """Test HTTP version parsing."""
        data_10 = b"GET / HTTP/1.0\r\n\r\n"
        assert parse_request(data_10).version == "HTTP/1.0"

        data_20 = b"GET / HTTP/2.0\r\n\r\n"
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(data_20)

        assert exc_info.value.status_code == 505

    def test_content_length_handling(self):
        """Test that the body is cut at Content-Length."""
        data = (
            b"POST /a.action HTTP/1.1\r\n"
            b"Content-Length: 5\r\n"
            b"\r\n"
            b"helloEXTRA"
        )
        request = parse_request(data)

        assert request.body == b"hello"
        assert request.content_length == 5

    def test_incomplete_body(self):
        """Test that a body shorter than Content-Length is rejected."""
        data = b"POST /a.action HTTP/1.1\r\nContent-Length: 50\r\n\r\nshort"

        with pytest.raises(HTTPParseError):
            parse_request(data)

    def test_invalid_content_length(self):
        data = b"POST /a.action HTTP/1.1\r\nContent-Length: abc\r\n\r\n"

        with pytest.raises(HTTPParseError):
            parse_request(data)

    def test_case_insensitive_headers(self):
        """Test that header names are case-insensitive."""
        data = b"GET / HTTP/1.1\r\nContent-Type: text/html\r\nX-CUSTOM: value\r\n\r\n"
        request = parse_request(data)

        assert request.get_header("content-type") == "text/html"
        assert request.get_header("Content-Type") == "text/html"
        assert request.get_header("x-custom") == "value"

    def test_repeated_headers_are_joined(self):
        data = b"GET / HTTP/1.1\r\nAccept: text/html\r\nAccept: image/png\r\n\r\n"
        request = parse_request(data)

        assert request.get_header("accept") == "text/html, image/png"


class TestHTTPRequest:
    """Tests for HTTPRequest class."""

    def test_get_header_default(self):
        """Test get_header with default value."""
        request = HTTPRequest(method="GET", path="/", headers={})

        assert request.get_header("missing") == ""
        assert request.get_header("missing", "default") == "default"

    def test_query_list(self):
        """Test getting multiple query parameter values."""
        request = HTTPRequest(
            method="GET",
            path="/",
            query_params={"tag": ["a", "b", "c"]},
        )

        assert request.get_query_list("tag") == ["a", "b", "c"]
        assert request.get_query_list("missing") == []

    def test_charset_from_content_type(self):
        request = HTTPRequest(
            method="POST",
            path="/",
            headers={"content-type": 'text/plain; charset="iso-8859-1"'},
        )

        assert request.charset == "iso-8859-1"

    def test_charset_defaults_to_utf8(self):
        request = HTTPRequest(method="POST", path="/", headers={"content-type": "text/plain"})

        assert request.charset == "utf-8"

    def test_no_body(self):
        request = HTTPRequest(method="GET", path="/")

        assert request.has_body is False
        assert request.query_string == ""
