"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator, Optional

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from minihttp import HTTPServer, ServerConfig
from minihttp.http import HTTPRequest, HTTPResponse, json_response


# Smallest valid PNG signature plus some bytes that break text decoding
PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\xff\xfe\x80\r\n\r\n"


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /api/users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


@pytest.fixture
def static_root(tmp_path: Path) -> Path:
    """
    A static root with a few files, next to a secret it must not leak.

        tmp_path/
        ├── secrets.txt          (outside the root)
        ├── static-evil/x.txt    (sibling whose name starts with "static")
        └── static/
            ├── index.html
            ├── hello.txt
            ├── logo.png
            └── css/site.css
    """
    (tmp_path / "secrets.txt").write_text("TOP SECRET")
    (tmp_path / "static-evil").mkdir()
    (tmp_path / "static-evil" / "x.txt").write_text("evil twin")

    root = tmp_path / "static"
    root.mkdir()
    (root / "index.html").write_text("<h1>Home</h1>")
    (root / "hello.txt").write_text("hello from disk")
    (root / "logo.png").write_bytes(PNG_BYTES)
    (root / "css").mkdir()
    (root / "css" / "site.css").write_text("body { color: red; }")
    return root


@pytest.fixture
def config(static_root: Path) -> ServerConfig:
    """Test server configuration on an OS-assigned port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        workers=8,
        timeout=2.0,
        shutdown_grace=1.0,
        static_dir=str(static_root),
        log_level="WARNING",
    )


class ServerThread:
    """Runs an HTTPServer in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.port

    def start(self):
        self._thread = threading.Thread(target=self.server.start, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        return send_raw(self.port, raw, timeout)

    def exchange(self, raw: bytes, timeout: float = 5.0) -> tuple[int, dict[str, str], bytes]:
        """Send raw bytes and return (status, headers, body)."""
        return split_response(self.request(raw, timeout))

    def get(self, target: str) -> tuple[int, dict[str, str], bytes]:
        return self.exchange(f"GET {target} HTTP/1.1\r\nHost: test\r\n\r\n".encode())


def send_raw(port: int, raw: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes, then read until the server closes the connection."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as sock:
        if raw:
            sock.sendall(raw)
        chunks = []
        while True:
            chunk = sock.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def split_response(raw: bytes) -> tuple[int, dict[str, str], bytes]:
    """Split a raw response into (status, headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("iso-8859-1").split("\r\n")
    status = int(lines[0].split(" ")[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return status, headers, body


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[ServerThread, None, None]:
    """A server with a few test routes, listening on a free port."""
    server = HTTPServer(config)

    @server.get("/api/hello")
    def hello(request: HTTPRequest) -> HTTPResponse:
        name = request.get_query("name") or "World"
        return json_response({"message": f"Hello, {name}!"})

    @server.post("/echo")
    def echo(request: HTTPRequest) -> HTTPResponse:
        return HTTPResponse(200, "application/octet-stream", request.body)

    @server.get("/boom")
    def boom(request: HTTPRequest) -> HTTPResponse:
        raise RuntimeError("database password is hunter2")

    srv = ServerThread(server)
    srv.start()

    yield srv

    srv.stop()
