"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything between raw bytes and handler functions:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   bytes ──► RequestParser ──► HTTPRequest ──► Router.dispatch()     │
    │                (request.py)                      (router.py)        │
    │                                                      │               │
    │                                          Handled / NoRoute           │
    │                                                      │               │
    │   bytes ◄── HTTPResponse.to_bytes() ◄── HTTPResponse ◄─┘            │
    │                (response.py)                                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    status_codes.py   reason phrases for the status line
    mime_types.py     file extension → Content-Type

Nothing in this package touches a socket, so all of it can be tested
with io.BytesIO and plain objects.
"""

from .request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    EmptyRequestError,
    MalformedRequestLineError,
    parse_request,
)
from .response import (
    HTTPResponse,
    format_http_date,
    ok,                  # 200 OK
    created,             # 201 Created
    text_response,
    html_response,
    json_response,
    bad_request,         # 400 Bad Request
    forbidden,           # 403 Forbidden
    not_found,           # 404 Not Found
    method_not_allowed,  # 405 Method Not Allowed
    internal_error,      # 500 Internal Server Error
)
from .router import Router, Route, RouteKey, Handled, NoRoute, Handler
from .status_codes import HTTPStatus, reason_phrase
from .mime_types import get_mime_type

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "EmptyRequestError",
    "MalformedRequestLineError",
    "parse_request",

    # Responses
    "HTTPResponse",
    "format_http_date",
    "ok",
    "created",
    "text_response",
    "html_response",
    "json_response",
    "bad_request",
    "forbidden",
    "not_found",
    "method_not_allowed",
    "internal_error",

    # Routing
    "Router",
    "Route",
    "RouteKey",
    "Handled",
    "NoRoute",
    "Handler",

    # Status codes
    "HTTPStatus",
    "reason_phrase",

    # MIME types
    "get_mime_type",
]
