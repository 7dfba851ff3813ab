"""
=============================================================================
HTTP RESPONSE WRITER
=============================================================================

Builds HTTP responses and serializes them into wire bytes.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  STATUS LINE                                                         │
    │      HTTP/1.1 200 OK\r\n                                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │  HEADERS (always in this order)                                      │
    │      Content-Type: text/html\r\n                                     │
    │      Content-Length: 1234\r\n      ← computed from body, never set   │
    │      Date: Mon, 19 Oct 2026 12:00:00 GMT\r\n                         │
    │      Server: MiniHTTP/1.0\r\n                                        │
    │      Connection: close\r\n                                           │
    │      X-Custom: value\r\n           ← extras from the handler         │
    │      \r\n                                                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │  BODY (verbatim bytes)                                               │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY CONTENT-LENGTH IS NEVER TRUSTED
=============================================================================

Content-Length tells the client where the body ends. If it disagrees with
the bytes actually sent, the client either hangs waiting for bytes that
never come or silently truncates the body. So HTTPResponse has no
Content-Length field at all: it is derived from len(body) at the moment
of serialization, and a Content-Length smuggled in through the extra
headers is dropped.

The body is raw bytes and is written without re-encoding, so a PNG read
from disk arrives byte-for-byte identical.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Union

from .status_codes import HTTPStatus, reason_phrase


HTTP_VERSION = "HTTP/1.1"

# Headers written by to_bytes() itself; extras with these names are dropped
MANAGED_HEADERS = frozenset({
    "content-type",
    "content-length",
    "date",
    "server",
    "connection",
})


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be written.

    Attributes:
        status: Status code (int or HTTPStatus).
        content_type: Value of the Content-Type header.
        body: Body bytes. A str is encoded as UTF-8 on construction.
        headers: Extra headers written after the managed ones, in
                 insertion order.

    Example:
        response = HTTPResponse(
            status=HTTPStatus.OK,
            content_type="application/json",
            body='{"ok": true}',
        )
        response.set_header("Cache-Control", "no-store")
        sock.sendall(response.to_bytes("MiniHTTP/1.0"))
    """

    status: int = HTTPStatus.OK
    content_type: str = "text/plain"
    body: Union[bytes, str] = b""
    headers: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if isinstance(self.body, str):
            self.body = self.body.encode("utf-8")

    @property
    def content_length(self) -> int:
        """Length of the body in bytes (what Content-Length will say)."""
        return len(self.body)

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Format: HTTP-Version SP Status-Code SP Reason-Phrase
        Example: HTTP/1.1 404 Not Found
        """
        return f"{HTTP_VERSION} {int(self.status)} {reason_phrase(self.status)}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set an extra header (chainable).

        Names matching one of the managed headers are accepted here but
        ignored at serialization time.
        """
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str, now: Optional[datetime] = None) -> bytes:
        """
        Serialize the response to bytes for sending over a socket.

        Args:
            server_name: Value of the Server header.
            now: Timestamp for the Date header (defaults to current UTC).

        Returns:
            Complete HTTP response ready for socket.sendall().
        """
        lines = [
            self.status_line,
            f"Content-Type: {self.content_type}",
            f"Content-Length: {len(self.body)}",
            f"Date: {format_http_date(now)}",
            f"Server: {server_name}",
            "Connection: close",
        ]

        for name, value in self.headers.items():
            if name.lower() in MANAGED_HEADERS:
                continue
            lines.append(f"{name}: {value}")

        # Trailing "" produces the blank line that ends the header block
        lines.append("")
        head = "\r\n".join(lines) + "\r\n"
        return head.encode("utf-8") + self.body


def format_http_date(dt: Optional[datetime] = None) -> str:
    """
    Format a datetime as an RFC 1123 HTTP-date.

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Mon, 19 Oct 2026 12:00:00 GMT

    HTTP dates are always GMT. Aware datetimes are converted; naive ones
    are assumed to be UTC already.
    """
    if dt is None:
        dt = datetime.now(timezone.utc)
    elif dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    # Weekday names (0=Monday in Python's datetime)
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# One-liners for the responses handlers and the server produce most often:
#
#     return json_response({"message": "Hello"})
#     return created(json.dumps(item), content_type="application/json")
#     return not_found()
#
# Error bodies are short fixed phrases. Exception text never goes here.
# =============================================================================

def ok(body: Union[str, bytes] = "", content_type: str = "text/plain") -> HTTPResponse:
    return HTTPResponse(HTTPStatus.OK, content_type, body)


def created(body: Union[str, bytes] = "", content_type: str = "text/plain") -> HTTPResponse:
    return HTTPResponse(HTTPStatus.CREATED, content_type, body)


def text_response(text: str, status: int = HTTPStatus.OK) -> HTTPResponse:
    return HTTPResponse(status, "text/plain", text)


def html_response(html: str, status: int = HTTPStatus.OK) -> HTTPResponse:
    return HTTPResponse(status, "text/html", html)


def json_response(data: Any, status: int = HTTPStatus.OK) -> HTTPResponse:
    """
    Serialize data with json.dumps and wrap it in a response.

    Example:
        json_response({"message": "Hello, World!"})
        json_response({"status": "created"}, status=HTTPStatus.CREATED)
    """
    return HTTPResponse(status, "application/json", json.dumps(data))


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    return text_response(message, HTTPStatus.BAD_REQUEST)


def forbidden(message: str = "Forbidden") -> HTTPResponse:
    return text_response(message, HTTPStatus.FORBIDDEN)


def not_found(message: str = "Not Found") -> HTTPResponse:
    return text_response(message, HTTPStatus.NOT_FOUND)


def method_not_allowed(allowed_methods: Iterable[str]) -> HTTPResponse:
    """
    Create a 405 response with the Allow header.

    RFC 7231 requires 405 responses to say which methods ARE allowed.
    """
    response = text_response("Method Not Allowed", HTTPStatus.METHOD_NOT_ALLOWED)
    response.set_header("Allow", ", ".join(sorted(allowed_methods)))
    return response


def internal_error() -> HTTPResponse:
    """
    Create a 500 response.

    The body is always the fixed phrase; failure detail goes to the log.
    """
    return text_response("Internal Server Error", HTTPStatus.INTERNAL_SERVER_ERROR)
