"""
Unit tests for the default action page and its helpers.
"""

import pytest

from simplewebserver.handlers.actions import (
    MalformedActionURLError,
    action_name,
    get_post_data,
    get_query_string,
    write_default_action,
)
from simplewebserver.http.context import RequestContext
from simplewebserver.http.request import HTTPRequest, parse_request
from simplewebserver.http.response import ResponseStream

from conftest import FakeSink


def make_context(data: bytes, local_address=("127.0.0.1", 9999)):
    sink = FakeSink()
    request = parse_request(data, ("127.0.0.1", 50000))
    context = RequestContext(
        request=request,
        response=ResponseStream(sink),
        local_address=local_address,
    )
    return context, sink


class TestActionName:

    def test_cut_at_question_mark(self):
        assert action_name("/report.action?a=1") == "/report.action"

    def test_empty_query(self):
        assert action_name("/report.action?") == "/report.action"

    def test_no_question_mark_raises(self):
        with pytest.raises(MalformedActionURLError):
            action_name("/report.action")

    def test_error_is_value_error(self):
        assert issubclass(MalformedActionURLError, ValueError)


class TestGetQueryString:

    def test_two_params(self):
        context, _ = make_context(b"GET /a.action?a=1&b=2 HTTP/1.1\r\n\r\n")

        assert get_query_string(context.request) == "a=1&b=2"

    def test_repeated_keys_join_values(self):
        context, _ = make_context(b"GET /a.action?a=1&a=2&b=3 HTTP/1.1\r\n\r\n")

        assert get_query_string(context.request) == "a=1,2&b=3"

    def test_blank_value(self):
        context, _ = make_context(b"GET /a.action?flag= HTTP/1.1\r\n\r\n")

        assert get_query_string(context.request) == "flag="

    def test_no_params(self):
        context, _ = make_context(b"GET /a.action HTTP/1.1\r\n\r\n")

        assert get_query_string(context.request) is None


class TestGetPostData:

    def test_no_body(self):
        assert get_post_data(HTTPRequest(method="GET", path="/a.action")) is None

    def test_utf8_body(self, sample_post_request):
        request = parse_request(sample_post_request)

        assert get_post_data(request) == "name=John&email=john%40example.com"

    def test_declared_charset(self):
        request = HTTPRequest(
            method="POST",
            path="/a.action",
            headers={"content-type": "text/plain; charset=latin-1"},
            body="café".encode("latin-1"),
        )

        assert get_post_data(request) == "café"

    def test_unknown_charset_falls_back_to_utf8(self):
        request = HTTPRequest(
            method="POST",
            path="/a.action",
            headers={"content-type": "text/plain; charset=no-such-charset"},
            body="café".encode("utf-8"),
        )

        assert get_post_data(request) == "café"


class TestWriteDefaultAction:
    """Tests for the diagnostic page."""

    def test_page_lines(self):
        context, sink = make_context(
            b"GET /report.action?a=1&b=2 HTTP/1.1\r\nHost: localhost:9999\r\n\r\n"
        )

        write_default_action(context)

        assert context.response.content_type == "text/html; charset=utf-8"
        lines = sink.body.decode("utf-8").split("\n")
        assert lines[0].startswith("Request time : ")
        assert lines[1] == "Request URL : http://localhost:9999/report.action?a=1&b=2<br>"
        assert lines[2] == "Action name : /report.action<br>"
        assert lines[3] == "Request method : GET<br>"
        assert lines[4] == "POST DATA : <br>"
        assert lines[5] == "QUERY STRING : a=1&b=2<br>"
        assert lines[6] == ""

    def test_post_data_line(self, sample_post_request):
        context, sink = make_context(sample_post_request)

        write_default_action(context)

        body = sink.body.decode("utf-8")
        assert "Request method : POST<br>" in body
        assert "POST DATA : name=John&email=john%40example.com<br>" in body
        assert "QUERY STRING : x=1<br>" in body

    def test_url_without_host_header(self):
        context, sink = make_context(b"GET /r.action?z=9 HTTP/1.0\r\n\r\n")

        write_default_action(context)

        assert b"Request URL : http://127.0.0.1:9999/r.action?z=9<br>" in sink.body

    def test_without_question_mark_writes_nothing(self):
        context, sink = make_context(b"GET /report.action HTTP/1.1\r\n\r\n")

        with pytest.raises(MalformedActionURLError):
            write_default_action(context)

        assert sink.sent == []
