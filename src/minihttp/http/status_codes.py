"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The server only ever produces a handful of status codes, so the reason
phrase table is deliberately small:

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  Code  │ When the server sends it                                  │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  200   │ Handler succeeded, or a static file was found            │
    │  201   │ Handler created something (e.g. POST /api/data)          │
    │  400   │ Empty request, or a request line that won't parse        │
    │  401   │ Available to handlers                                     │
    │  403   │ Static path escaped the root, or file not readable       │
    │  404   │ No route and no static file                               │
    │  405   │ Path is routed, but not for this method                   │
    │  500   │ A handler raised                                          │
    └────────┴───────────────────────────────────────────────────────────┘

Any other integer a handler chooses is still written to the status line,
with "Unknown" as its reason phrase:

    HTTP/1.1 418 Unknown

The reason phrase is informational only. Clients must act on the number.
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    Named status codes used by the server.

    IntEnum means these compare equal to plain ints:

        >>> HTTPStatus.NOT_FOUND == 404
        True
    """

    OK = 200
    CREATED = 201

    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405

    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """Get the reason phrase for this status code."""
        return reason_phrase(self.value)


_STATUS_PHRASES = {
    200: "OK",
    201: "Created",
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    500: "Internal Server Error",
}

UNKNOWN_PHRASE = "Unknown"


def reason_phrase(code: int) -> str:
    """
    Get the reason phrase for any status code.

    Args:
        code: Status code, either an int or an HTTPStatus.

    Returns:
        The phrase from the fixed table, or "Unknown".
    """
    return _STATUS_PHRASES.get(int(code), UNKNOWN_PHRASE)
