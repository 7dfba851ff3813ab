"""
Unit tests for HTTP request parsing.
"""

import dataclasses
import io

import pytest

from minihttp.http.request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    EmptyRequestError,
    MalformedRequestLineError,
    parse_query_string,
    parse_request,
)


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        """Test parsing a simple GET request."""
        parser = RequestParser()
        request = parser.parse(io.BytesIO(sample_get_request), ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/api/users"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)

    def test_parse_headers(self, sample_get_request: bytes):
        """Test that headers are parsed with lower-cased names."""
        request = parse_request(sample_get_request)

        assert request.host == "localhost:8080"
        assert request.user_agent == "pytest"
        assert request.headers["accept"] == "application/json"

    def test_parse_query_params(self, sample_get_request: bytes):
        """Test query parameter parsing."""
        request = parse_request(sample_get_request)

        assert request.get_query("page") == "1"
        assert request.get_query("limit") == "10"
        assert request.get_query("missing") is None
        assert request.get_query("missing", "default") == "default"

    def test_percent_decoded_query(self):
        """Test that query keys and values are percent-decoded."""
        request = parse_request(b"GET /search?q=hello%20world&x= HTTP/1.1\r\n\r\n")

        assert request.path == "/search"
        assert dict(request.query_params) == {"q": "hello world", "x": ""}

    def test_no_query_string(self):
        """Test that a target without '?' yields no parameters."""
        request = parse_request(b"GET /search HTTP/1.1\r\n\r\n")

        assert request.path == "/search"
        assert dict(request.query_params) == {}

    def test_query_pairs_without_equals_ignored(self):
        """Test that 'flag' in '?flag&a=1' is skipped, not an error."""
        request = parse_request(b"GET /p?flag&a=1&=orphan HTTP/1.1\r\n\r\n")

        assert dict(request.query_params) == {"a": "1"}

    def test_query_value_keeps_later_equals(self):
        """Test that only the first '=' splits key from value."""
        request = parse_request(b"GET /p?expr=a%3Db=c HTTP/1.1\r\n\r\n")

        assert request.get_query("expr") == "a=b=c"

    def test_path_is_decoded(self):
        """Test that the path is percent-decoded."""
        request = parse_request(b"GET /..%2fsecrets.txt HTTP/1.1\r\n\r\n")

        assert request.path == "/../secrets.txt"

    def test_raw_utf8_target(self):
        """Test that unescaped UTF-8 in the target decodes like %-escapes."""
        raw = "GET /café.txt?name=Zoë HTTP/1.1\r\n\r\n".encode("utf-8")
        request = parse_request(raw)

        assert request.path == "/café.txt"
        assert request.get_query("name") == "Zoë"
        assert request.path == parse_request(b"GET /caf%C3%A9.txt HTTP/1.1\r\n\r\n").path

    def test_invalid_utf8_target_is_replaced(self):
        """Test that undecodable target bytes don't fail the request."""
        request = parse_request(b"GET /bad\xff.txt HTTP/1.1\r\n\r\n")

        assert request.path == "/bad\ufffd.txt"

    def test_headers_stay_latin1(self):
        """Test that header values still map one byte to one character."""
        request = parse_request(b"GET / HTTP/1.1\r\nX-Name: caf\xe9\r\n\r\n")

        assert request.get_header("X-Name") == "caf\xe9"

    def test_method_uppercased(self):
        """Test that the method token is normalized to upper case."""
        request = parse_request(b"get / HTTP/1.1\r\n\r\n")

        assert request.method == "GET"

    def test_parse_post_with_body(self, sample_post_request: bytes):
        """Test parsing POST request with JSON body."""
        request = parse_request(sample_post_request)

        assert request.method == "POST"
        assert request.content_type == "application/json"
        assert request.body_truncated is False

        json_body = request.json
        assert json_body["name"] == "John"
        assert json_body["email"] == "john@example.com"

    def test_put_reads_body(self):
        """Test that PUT bodies are read like POST bodies."""
        raw = b"PUT /item HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello"

        assert parse_request(raw).body == b"hello"

    def test_get_body_not_read(self):
        """Test that a GET with Content-Length leaves the body unread."""
        stream = io.BytesIO(b"GET / HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello")
        request = RequestParser().parse(stream)

        assert request.body == b""
        assert stream.read() == b"hello"

    def test_body_read_exactly_content_length(self):
        """Test that bytes after Content-Length stay in the stream."""
        stream = io.BytesIO(b"POST / HTTP/1.1\r\nContent-Length: 3\r\n\r\nabcdef")
        request = RequestParser().parse(stream)

        assert request.body == b"abc"
        assert stream.read() == b"def"

    def test_short_body_sets_truncated(self):
        """Test that a body cut short by EOF is kept and flagged."""
        raw = b"POST / HTTP/1.1\r\nContent-Length: 100\r\n\r\nonly this"
        request = parse_request(raw)

        assert request.body == b"only this"
        assert request.body_truncated is True

    @pytest.mark.parametrize("length", ["99999999999999999999", str(2 ** 40)])
    def test_huge_content_length_reads_what_arrived(self, length: str):
        """Test that an enormous declared length doesn't allocate it up front."""
        raw = f"POST /echo HTTP/1.1\r\nContent-Length: {length}\r\n\r\nabc".encode()
        request = parse_request(raw)

        assert request.body == b"abc"
        assert request.body_truncated is True

    def test_large_body_read_across_chunks(self):
        """Test that a body bigger than one read chunk arrives whole."""
        body = bytes(range(256)) * 1000
        raw = f"PUT /blob HTTP/1.1\r\nContent-Length: {len(body)}\r\n\r\n".encode() + body
        request = parse_request(raw)

        assert request.body == body
        assert request.body_truncated is False

    @pytest.mark.parametrize("value", ["abc", "-5", "0", ""])
    def test_unusable_content_length_means_no_body(self, value: str):
        """Test that non-numeric, negative or zero lengths read nothing."""
        raw = f"POST / HTTP/1.1\r\nContent-Length: {value}\r\n\r\nbody".encode()

        assert parse_request(raw).body == b""

    def test_binary_body_untouched(self):
        """Test that body bytes are kept verbatim."""
        body = bytes(range(256))
        raw = b"POST /upload HTTP/1.1\r\nContent-Length: 256\r\n\r\n" + body

        assert parse_request(raw).body == body

    def test_bare_lf_line_endings(self):
        """Test that LF-only line endings are accepted."""
        request = parse_request(b"GET /x HTTP/1.1\nHost: test\n\n")

        assert request.path == "/x"
        assert request.host == "test"

    def test_duplicate_header_last_wins(self):
        """Test that a later duplicate header overwrites an earlier one."""
        raw = b"GET / HTTP/1.1\r\nX-Tag: first\r\nx-tag: second\r\n\r\n"

        assert parse_request(raw).get_header("X-Tag") == "second"

    def test_header_split_on_first_colon(self):
        """Test that colons inside the value are preserved."""
        raw = b"GET / HTTP/1.1\r\nHost:  localhost:8080  \r\n\r\n"

        assert parse_request(raw).host == "localhost:8080"

    def test_header_without_colon_skipped(self):
        """Test that garbage header lines are skipped, not fatal."""
        raw = b"GET / HTTP/1.1\r\nnot a header\r\n: no name\r\nX-Ok: yes\r\n\r\n"
        request = parse_request(raw)

        assert dict(request.headers) == {"x-ok": "yes"}

    def test_headers_end_at_eof(self):
        """Test that a missing blank line after headers is tolerated."""
        request = parse_request(b"GET / HTTP/1.1\r\nHost: test\r\n")

        assert request.host == "test"

    def test_case_insensitive_headers(self):
        """Test that header names are case-insensitive."""
        raw = b"GET / HTTP/1.1\r\nCONTENT-TYPE: text/html; charset=utf-8\r\n\r\n"
        request = parse_request(raw)

        assert request.content_type == "text/html"
        assert request.get_header("Content-Type") == "text/html; charset=utf-8"


class TestParseErrors:
    """Tests for the parse failure taxonomy."""

    def test_empty_stream(self):
        """Test that zero bytes is an EmptyRequestError."""
        with pytest.raises(EmptyRequestError) as exc_info:
            parse_request(b"")

        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize("raw", [
        b"GET\r\n\r\n",                      # single token
        b"GET /\r\n\r\n",                    # two tokens
        b"\r\n",                             # empty first line
        b"GET / HTTP/1.1 extra\r\n\r\n",     # four tokens
        b"GET  / HTTP/1.1\r\n\r\n",          # double space
    ])
    def test_malformed_request_line(self, raw: bytes):
        """Test that anything but 3 single-space tokens is rejected."""
        with pytest.raises(MalformedRequestLineError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400

    def test_errors_share_base_class(self):
        """Test that callers can catch both with HTTPParseError."""
        assert issubclass(EmptyRequestError, HTTPParseError)
        assert issubclass(MalformedRequestLineError, HTTPParseError)
        assert not issubclass(EmptyRequestError, MalformedRequestLineError)


class TestHTTPRequest:
    """Tests for HTTPRequest dataclass."""

    def test_get_header_default(self):
        """Test get_header with default value."""
        request = HTTPRequest(method="GET", path="/")

        assert request.get_header("X-Missing") == ""
        assert request.get_header("X-Missing", "default") == "default"

    def test_request_is_frozen(self):
        """Test that fields cannot be reassigned."""
        request = HTTPRequest(method="GET", path="/")

        with pytest.raises(dataclasses.FrozenInstanceError):
            request.path = "/other"

    def test_mappings_are_read_only(self):
        """Test that headers and query params cannot be mutated."""
        request = HTTPRequest(method="GET", path="/", headers={"a": "1"}, query_params={"q": "x"})

        with pytest.raises(TypeError):
            request.headers["a"] = "2"
        with pytest.raises(TypeError):
            request.query_params["q"] = "y"

    def test_source_dict_changes_do_not_leak(self):
        """Test that the request copies the mappings it was given."""
        headers = {"host": "a"}
        request = HTTPRequest(method="GET", path="/", headers=headers)
        headers["host"] = "b"

        assert request.host == "a"

    def test_content_length_property(self):
        """Test Content-Length parsing with bad values."""
        assert HTTPRequest("POST", "/", headers={"content-length": "9"}).content_length == 9
        assert HTTPRequest("POST", "/", headers={"content-length": "x"}).content_length == 0
        assert HTTPRequest("POST", "/").content_length == 0

    def test_text_and_json(self):
        """Test body helpers."""
        request = HTTPRequest("POST", "/", body=b'{"a": [1, 2]}')

        assert request.text == '{"a": [1, 2]}'
        assert request.json == {"a": [1, 2]}
        assert HTTPRequest("POST", "/").json is None

    def test_invalid_json_raises_value_error(self):
        """Test that a bad JSON body raises ValueError."""
        with pytest.raises(ValueError):
            HTTPRequest("POST", "/", body=b"{not json").json


class TestParseQueryString:
    """Tests for parse_query_string helper."""

    def test_plus_decodes_to_space(self):
        assert parse_query_string("name=Ada+Lovelace") == {"name": "Ada Lovelace"}

    def test_empty_string(self):
        assert parse_query_string("") == {}

    def test_later_duplicate_wins(self):
        assert parse_query_string("a=1&a=2") == {"a": "2"}
