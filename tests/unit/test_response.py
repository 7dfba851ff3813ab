"""
Unit tests for HTTP response building and serialization.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from minihttp.http.response import (
    HTTPResponse,
    format_http_date,
    json_response,
    html_response,
    bad_request,
    forbidden,
    not_found,
    method_not_allowed,
    internal_error,
    created,
)
from minihttp.http.status_codes import HTTPStatus, reason_phrase


FIXED_NOW = datetime(2026, 10, 19, 12, 30, 5, tzinfo=timezone.utc)


def head_lines(raw: bytes) -> list[str]:
    head, _, _ = raw.partition(b"\r\n\r\n")
    return head.decode("utf-8").split("\r\n")


class TestHTTPStatus:
    """Tests for status codes and reason phrases."""

    def test_status_values(self):
        """Test status code values."""
        assert HTTPStatus.OK == 200
        assert HTTPStatus.NOT_FOUND == 404
        assert HTTPStatus.METHOD_NOT_ALLOWED == 405

    def test_status_phrases(self):
        """Test status code phrases."""
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.CREATED.phrase == "Created"
        assert HTTPStatus.NOT_FOUND.phrase == "Not Found"
        assert HTTPStatus.INTERNAL_SERVER_ERROR.phrase == "Internal Server Error"

    def test_unknown_code_phrase(self):
        """Test that codes outside the table are 'Unknown'."""
        assert reason_phrase(418) == "Unknown"
        assert reason_phrase(302) == "Unknown"


class TestHTTPResponse:
    """Tests for HTTPResponse serialization."""

    def test_status_line(self):
        """Test status line formatting."""
        assert HTTPResponse(HTTPStatus.OK).status_line == "HTTP/1.1 200 OK"
        assert HTTPResponse(404).status_line == "HTTP/1.1 404 Not Found"
        assert HTTPResponse(299).status_line == "HTTP/1.1 299 Unknown"

    def test_header_order(self):
        """Test that managed headers come first, in fixed order."""
        response = HTTPResponse(200, "text/html", "<p>hi</p>")
        response.set_header("X-Custom", "value")

        lines = head_lines(response.to_bytes("MiniHTTP/1.0", now=FIXED_NOW))

        assert lines == [
            "HTTP/1.1 200 OK",
            "Content-Type: text/html",
            "Content-Length: 9",
            "Date: Mon, 19 Oct 2026 12:30:05 GMT",
            "Server: MiniHTTP/1.0",
            "Connection: close",
            "X-Custom: value",
        ]

    def test_blank_line_then_body(self):
        """Test that exactly one CRLF CRLF separates head and body."""
        raw = HTTPResponse(200, "text/plain", "hello").to_bytes("S", now=FIXED_NOW)

        assert raw.endswith(b"Connection: close\r\n\r\nhello")
        assert raw.count(b"\r\n\r\n") == 1

    def test_content_length_counts_bytes(self):
        """Test that Content-Length is the UTF-8 byte count, not chars."""
        response = HTTPResponse(200, "text/plain", "héllo")

        assert response.body == "héllo".encode("utf-8")
        assert "Content-Length: 6" in head_lines(response.to_bytes("S"))

    def test_binary_body_untouched(self):
        """Test that binary bodies are sent byte-for-byte."""
        body = b"\x89PNG\r\n\x1a\n\x00\xff\xfe\r\n\r\n"
        raw = HTTPResponse(200, "image/png", body).to_bytes("S")

        _, _, sent = raw.partition(b"\r\n\r\n")
        assert sent == body
        assert f"Content-Length: {len(body)}" in head_lines(raw)

    def test_empty_body(self):
        """Test that an empty body still gets Content-Length: 0."""
        raw = HTTPResponse(200).to_bytes("S")

        assert "Content-Length: 0" in head_lines(raw)
        assert raw.endswith(b"\r\n\r\n")

    def test_extra_headers_cannot_override_managed(self):
        """Test that extras named like managed headers are dropped."""
        response = HTTPResponse(200, "text/plain", "abc")
        response.set_header("Content-Length", "999")
        response.set_header("connection", "keep-alive")
        response.set_header("Server", "Spoofed")

        lines = head_lines(response.to_bytes("MiniHTTP/1.0"))

        assert "Content-Length: 3" in lines
        assert "Content-Length: 999" not in lines
        assert "connection: keep-alive" not in lines
        assert "Server: Spoofed" not in lines

    def test_extras_keep_insertion_order(self):
        """Test that extra headers are written in the order they were set."""
        response = HTTPResponse().set_header("X-B", "2").set_header("X-A", "1")

        lines = head_lines(response.to_bytes("S"))

        assert lines[-2:] == ["X-B: 2", "X-A: 1"]


class TestFormatHTTPDate:
    """Tests for the Date header format."""

    def test_rfc1123_format(self):
        assert format_http_date(FIXED_NOW) == "Mon, 19 Oct 2026 12:30:05 GMT"

    def test_converts_to_gmt(self):
        """Test that aware datetimes in other zones are converted."""
        plus_two = timezone(timedelta(hours=2))
        dt = datetime(2026, 10, 19, 14, 30, 5, tzinfo=plus_two)

        assert format_http_date(dt) == "Mon, 19 Oct 2026 12:30:05 GMT"

    def test_day_zero_padded(self):
        dt = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

        assert format_http_date(dt) == "Fri, 02 Jan 2026 03:04:05 GMT"

    def test_default_is_now(self):
        assert format_http_date().endswith(" GMT")


class TestConvenienceFunctions:
    """Tests for the response shortcuts."""

    def test_json_response(self):
        """Test JSON response builder."""
        response = json_response({"key": "value"})

        assert response.status == 200
        assert response.content_type == "application/json"
        assert json.loads(response.body) == {"key": "value"}

    def test_json_response_with_status(self):
        response = json_response({"status": "received"}, status=HTTPStatus.CREATED)

        assert response.status == 201

    def test_html_response(self):
        response = html_response("<h1>Hello</h1>")

        assert response.content_type == "text/html"
        assert response.body == b"<h1>Hello</h1>"

    def test_created(self):
        assert created("done").status == HTTPStatus.CREATED

    @pytest.mark.parametrize("factory, status, body", [
        (bad_request, 400, b"Bad Request"),
        (forbidden, 403, b"Forbidden"),
        (not_found, 404, b"Not Found"),
        (internal_error, 500, b"Internal Server Error"),
    ])
    def test_error_responses(self, factory, status, body):
        """Test that error shortcuts use fixed plain-text bodies."""
        response = factory()

        assert response.status == status
        assert response.content_type == "text/plain"
        assert response.body == body

    def test_method_not_allowed_sets_allow(self):
        """Test that 405 lists the allowed methods, sorted."""
        response = method_not_allowed(["POST", "GET"])

        assert response.status == 405
        assert response.headers["Allow"] == "GET, POST"
        assert response.body == b"Method Not Allowed"
