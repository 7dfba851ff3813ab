"""
=============================================================================
MINIHTTP - A MINIMAL HTTP/1.1 SERVER
=============================================================================

Raw sockets, a fixed thread pool, exact-match routing and a sandboxed
static file directory. One request per connection, then close.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    minihttp/
    ├── server.py         HTTPServer: lifecycle and per-connection flow
    ├── config.py         ServerConfig dataclass
    ├── access_log.py     one log line per response
    ├── core/
    │   ├── socket_server.py   listening socket, accept loop
    │   ├── connection.py      one client socket
    │   └── thread_pool.py     fixed workers, bounded queue
    ├── http/
    │   ├── request.py         stream parser → HTTPRequest
    │   ├── response.py        HTTPResponse → wire bytes
    │   ├── router.py          (METHOD, path) → handler
    │   ├── status_codes.py    reason phrases
    │   └── mime_types.py      extension → Content-Type
    └── handlers/
        ├── static.py          files under the static root
        └── api.py             demo JSON routes

=============================================================================
QUICK START
=============================================================================

    from minihttp import HTTPServer, ServerConfig
    from minihttp.http import json_response

    server = HTTPServer(ServerConfig(port=8080, static_dir="public"))

    @server.get("/api/hello")
    def hello(request):
        name = request.get_query("name", "World")
        return json_response({"message": f"Hello, {name}!"})

    server.start()

Or from the shell:

    python -m minihttp --port 8080 --static ./public
"""

__version__ = "1.0.0"

from .server import HTTPServer, create_app
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "create_app", "__version__"]
