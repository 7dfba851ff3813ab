"""
=============================================================================
DEMO API ROUTES
=============================================================================

A handful of JSON endpoints that show the routing layer working and
give the sample index.html something to link to:

    GET  /api/hello?name=Ada   {"message": "Hello, Ada!"}
    GET  /api/time             {"timestamp": "2026-10-19T14:03:07.412+02:00"}
    GET  /api/status           {"status": "running", "port": 8080, "threads": 50, ...}
    GET  /api/info             {"server": "MiniHTTP/1.0", "version": "1.0.0", ...}
    POST /api/echo             {"received": "<body>", "method": "POST"}
    POST /api/data             201 {"status": "received", "data": "<body>"}

All bodies go through json.dumps, so quotes or newlines in a name or a
posted body can't break the JSON.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, json_response
from ..http.status_codes import HTTPStatus

if TYPE_CHECKING:
    from ..server import HTTPServer


class DemoAPI:
    """
    Handlers for the demo routes.

    Bound to a server so /api/status and /api/info can report on it.
    """

    def __init__(self, server: "HTTPServer"):
        self.server = server

    def hello(self, request: HTTPRequest) -> HTTPResponse:
        name = request.get_query("name") or "World"
        return json_response({"message": f"Hello, {name}!"})

    def time(self, request: HTTPRequest) -> HTTPResponse:
        # Local time with UTC offset, like 2026-10-19T14:03:07.412+02:00
        now = datetime.now().astimezone()
        return json_response({"timestamp": now.isoformat(timespec="milliseconds")})

    def status(self, request: HTTPRequest) -> HTTPResponse:
        stats = self.server.stats
        return json_response({
            "status": "running" if stats["running"] else "stopped",
            "port": stats["port"],
            "threads": self.server.config.workers,
            "active_connections": stats["active_connections"],
            "uptime": round(stats["uptime"], 3),
        })

    def info(self, request: HTTPRequest) -> HTTPResponse:
        from .. import __version__

        return json_response({
            "server": self.server.config.server_name,
            "version": __version__,
            "static_root": str(self.server.static.root),
            "routes": [f"{r.method} {r.path}" for r in self.server.router.routes()],
        })

    def echo(self, request: HTTPRequest) -> HTTPResponse:
        return json_response({"received": request.text, "method": request.method})

    def data(self, request: HTTPRequest) -> HTTPResponse:
        return json_response(
            {"status": "received", "data": request.text},
            status=HTTPStatus.CREATED,
        )


def register_default_routes(server: "HTTPServer") -> DemoAPI:
    """
    Register the demo routes on a server.

    Returns:
        The DemoAPI instance whose methods were registered.
    """
    api = DemoAPI(server)

    server.add_route("GET", "/api/hello", api.hello)
    server.add_route("GET", "/api/time", api.time)
    server.add_route("GET", "/api/status", api.status)
    server.add_route("GET", "/api/info", api.info)
    server.add_route("POST", "/api/echo", api.echo)
    server.add_route("POST", "/api/data", api.data)

    return api
