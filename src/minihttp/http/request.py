"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Reads one HTTP/1.1 request from a connection's byte stream and turns it
into an immutable HTTPRequest.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  REQUEST LINE                                                        │
    │      GET /search?q=hello%20world&x= HTTP/1.1\r\n                     │
    │      ─┬─ ──────────────┬──────────  ────┬────                        │
    │     Method       Request-target       Version                        │
    │                        │                                             │
    │            ┌───────────┴────────────┐                                │
    │          Path                 Query string                           │
    │        /search             q=hello%20world&x=                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │  HEADERS (until the first empty line)                                │
    │      Host: localhost:8080\r\n                                        │
    │      Content-Length: 13\r\n                                          │
    │      \r\n                                                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │  BODY (POST and PUT only, exactly Content-Length bytes)              │
    │      {"key": "v"}                                                    │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
READING FROM A STREAM, NOT A BUFFER
=============================================================================

TCP is a byte stream, so a request can arrive in any number of recv()
chunks. Instead of accumulating chunks by hand and searching for
\r\n\r\n, the parser reads from a buffered binary file object
(socket.makefile("rb")):

    readline()  → blocks until a full line (or EOF) is available
    read(n)     → blocks until n bytes (or EOF) are available

The same parser works unchanged on io.BytesIO in tests.

=============================================================================
FAILURE MODES
=============================================================================

    Client sent nothing at all        → EmptyRequestError          (400)
    First line isn't 3 tokens         → MalformedRequestLineError  (400)
    Header line without a colon       → skipped
    Query pair without '='            → skipped
    Body shorter than Content-Length  → kept, body_truncated=True
    Invalid UTF-8 in request line     → U+FFFD, request goes on
    Socket read timeout               → TimeoutError propagates
"""

import io
import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, BinaryIO, Mapping, Optional
from urllib.parse import unquote, unquote_plus


# Request bodies are only read for these methods
BODY_METHODS = frozenset({"POST", "PUT"})

# ISO-8859-1 maps every byte to a code point, so decoding never fails
HEADER_ENCODING = "iso-8859-1"

# Raw non-ASCII in the request-target is taken as UTF-8, like %-escapes are
REQUEST_LINE_ENCODING = "utf-8"

# Upper bound on a single body read, whatever Content-Length says
BODY_CHUNK_SIZE = 65536


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the status code that should be returned to the client, so the
    connection handler can answer without knowing which check failed.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code  # HTTP status to return


class EmptyRequestError(HTTPParseError):
    """The connection closed before a single byte of request arrived."""


class MalformedRequestLineError(HTTPParseError):
    """The request line is not 'METHOD TARGET VERSION'."""


def _freeze(mapping: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class HTTPRequest:
    """
    Represents a parsed HTTP request.

    Instances are frozen: handlers running on different worker threads
    can never alter a request after the parser built it. Header and query
    mappings are read-only views.

    Attributes:
        method:         Upper-case method ("GET", "POST", ...)
        path:           Percent-decoded path WITHOUT the query string
        version:        Version token from the request line ("HTTP/1.1")
        headers:        Lower-case header name → trimmed value
        query_params:   Decoded query key → decoded value (last one wins)
        body:           Raw body bytes (POST/PUT only)
        body_truncated: True if the peer closed before Content-Length bytes
        client_address: (ip, port) of the peer
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Mapping[str, str] = field(default_factory=dict)
    query_params: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    body_truncated: bool = False
    client_address: tuple[str, int] = ("", 0)

    def __post_init__(self):
        # frozen=True blocks normal assignment, so go through object
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", _freeze(self.headers))
        object.__setattr__(self, "query_params", _freeze(self.query_params))

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def content_type(self) -> Optional[str]:
        """
        Get the Content-Type header value without parameters.

        "application/json; charset=utf-8" → "application/json"
        """
        ct = self.headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    @property
    def content_length(self) -> int:
        """Get Content-Length as an int; 0 if missing or not a number."""
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def text(self) -> str:
        """Body decoded as UTF-8 (undecodable bytes are replaced)."""
        return self.body.decode("utf-8", errors="replace")

    @property
    def json(self) -> Any:
        """
        Parse the body as JSON.

        Returns:
            The decoded value, or None for an empty body.

        Raises:
            ValueError: If the body is not valid JSON.
        """
        if not self.body:
            return None
        return json.loads(self.body.decode("utf-8"))

    def get_header(self, name: str, default: str = "") -> str:
        """Get a header value by case-insensitive name."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get a query parameter.

        Example:
            # URL: /api/hello?name=Ada
            request.get_query("name")           # "Ada"
            request.get_query("missing", "x")   # "x"
        """
        return self.query_params.get(name, default)


class RequestParser:
    """
    Stream-based HTTP/1.1 request parser.

    The parser holds no per-request state, so one instance can be shared
    by every worker thread.

    Usage:
        parser = RequestParser()
        with sock.makefile("rb") as stream:
            request = parser.parse(stream, client_address)
    """

    def parse(
        self,
        stream: BinaryIO,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Read and parse one request from a binary stream.

        Args:
            stream: Readable binary file object positioned at the start
                    of a request.
            client_address: Peer's (ip, port) tuple.

        Returns:
            The parsed request.

        Raises:
            EmptyRequestError: Stream ended before any byte arrived.
            MalformedRequestLineError: Request line is not 3 tokens.
            TimeoutError: The underlying socket timed out.
        """
        raw_line = stream.readline()
        if not raw_line:
            raise EmptyRequestError("Empty request")

        method, target, version = self._parse_request_line(
            _decode_line(raw_line, REQUEST_LINE_ENCODING)
        )
        path, query_params = self._split_target(target)
        headers = self._parse_headers(stream)

        body = b""
        truncated = False
        if method in BODY_METHODS:
            expected = _declared_length(headers)
            if expected > 0:
                body = _read_body(stream, expected)
                truncated = len(body) < expected

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body,
            body_truncated=truncated,
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        """
        Split "GET /path?query HTTP/1.1" into its three tokens.

        Splitting is on single spaces, so "GET  / HTTP/1.1" (two spaces)
        yields four tokens and is rejected.
        """
        parts = line.split(" ")
        if len(parts) != 3 or not all(parts):
            raise MalformedRequestLineError(f"Malformed request line: {line!r}")

        method, target, version = parts
        return method.upper(), target, version

    def _split_target(self, target: str) -> tuple[str, dict[str, str]]:
        """Split the request-target into a decoded path and query dict."""
        path, sep, query = target.partition("?")
        return unquote(path), parse_query_string(query) if sep else {}

    def _parse_headers(self, stream: BinaryIO) -> dict[str, str]:
        """
        Read header lines up to the blank line that ends the block.

        A later duplicate header overwrites an earlier one.
        """
        headers: dict[str, str] = {}

        while True:
            raw_line = stream.readline()
            if not raw_line:
                break  # EOF before the blank line; use what we have

            line = _decode_line(raw_line)
            if not line:
                break

            name, colon, value = line.partition(":")
            name = name.strip().lower()
            if not colon or not name:
                continue  # Not a header line, skip it

            headers[name] = value.strip()

        return headers


def parse_query_string(query: str) -> dict[str, str]:
    """
    Parse "a=1&b=hello%20world" into {"a": "1", "b": "hello world"}.

    '+' decodes to a space. Pairs without '=' or with an empty key are
    ignored.
    """
    params: dict[str, str] = {}

    for pair in query.split("&"):
        key, sep, value = pair.partition("=")
        if not sep or not key:
            continue
        params[unquote_plus(key)] = unquote_plus(value)

    return params


def _decode_line(raw_line: bytes, encoding: str = HEADER_ENCODING) -> str:
    """
    Decode a request or header line and strip CRLF (or a bare LF).

    Undecodable bytes become U+FFFD instead of failing the request.
    """
    return raw_line.decode(encoding, errors="replace").rstrip("\r\n")


def _read_body(stream: BinaryIO, expected: int) -> bytes:
    """Read up to expected bytes, stopping early at EOF."""
    chunks = []
    remaining = expected

    while remaining > 0:
        chunk = stream.read(min(BODY_CHUNK_SIZE, remaining))
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)

    return b"".join(chunks)


def _declared_length(headers: Mapping[str, str]) -> int:
    try:
        length = int(headers.get("content-length", ""))
    except ValueError:
        return 0
    return max(length, 0)


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0)
) -> HTTPRequest:
    """
    Convenience function to parse a request held in memory.

    Args:
        data: Raw HTTP request bytes.
        client_address: Client's (ip, port) tuple.

    Returns:
        Parsed HTTPRequest object.
    """
    return RequestParser().parse(io.BytesIO(data), client_address)
