"""
=============================================================================
MAIN HTTP SERVER
=============================================================================

The orchestrator that ties the pieces together.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          HTTPServer                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    SocketServer ──► ThreadPool ──► RequestParser                     │
    │    (accept loop)    (50 workers)        │                            │
    │                                         ▼                            │
    │                                   Router.dispatch()                  │
    │                                    │            │                    │
    │                               Handled        NoRoute                 │
    │                                    │            │                    │
    │                                    │     GET? ──┴── other            │
    │                                    │      │           │              │
    │                                    │  StaticFile   404 / 405         │
    │                                    │  Resolver                       │
    │                                    ▼      ▼           ▼              │
    │                               HTTPResponse.to_bytes() ──► close      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PER-CONNECTION OUTCOMES
=============================================================================

    Situation                               Client sees
    ─────────                               ───────────
    Route matched                           handler's response
    No route, GET                           static file / 403 / 404
    No route, path known for other methods  405 + Allow
    No route, unknown path                  404
    Nothing sent / bad request line         400
    Handler raised                          500 (detail only in the log)
    Read timed out                          nothing, connection dropped

Every branch ends with the socket closed. One connection's failure never
reaches the accept loop or any other connection.

=============================================================================
SHUTDOWN
=============================================================================

    stop()                            sticky shutdown request, then wait
      1. SocketServer loop exits      listener closed
    start() on its way out
      2. ThreadPool.shutdown(grace)   queued connections still get served
      3. grace expired?               abort() sockets still open, which
                                      unblocks the stuck workers
"""

import logging
import threading
import time
from typing import Callable, List, Optional, Union

from .access_log import AccessLogEntry, log_access
from .config import ServerConfig
from .core import Connection, ConnectionState, SocketServer, ThreadPool
from .handlers.api import register_default_routes
from .handlers.static import StaticFileResolver, ensure_static_root
from .http import (
    HTTPParseError,
    HTTPRequest,
    HTTPResponse,
    Handled,
    Handler,
    RequestParser,
    Route,
    Router,
    bad_request,
    internal_error,
    method_not_allowed,
    not_found,
)


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Minimal HTTP/1.1 server.

    Usage:
        server = HTTPServer(ServerConfig(port=8080, static_dir="public"))

        @server.get("/api/hello")
        def hello(request):
            return json_response({"message": "Hello, World!"})

        server.start()   # Blocks until stop()
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        """
        Args:
            config: Server configuration. Defaults to ServerConfig().
            router: Router to dispatch through. A new one by default.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._router = router or Router()
        self._parser = RequestParser()
        self._static = StaticFileResolver(self.config.static_dir, self.config.index_file)
        self._socket_server = SocketServer(self.config)
        self._thread_pool: Optional[ThreadPool] = None

        # Connections handed to the pool and not yet closed
        self._active: set[Connection] = set()
        self._active_lock = threading.Lock()

        # Reentrant: a signal handler may call stop() while start() holds it
        self._state_lock = threading.RLock()
        self._running = False
        self._finished = threading.Event()  # Set whenever not running
        self._finished.set()
        self._accept_thread: Optional[threading.Thread] = None
        self.started_at: Optional[float] = None

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def router(self) -> Router:
        return self._router

    @property
    def static(self) -> StaticFileResolver:
        return self._static

    @property
    def address(self) -> tuple[str, int]:
        """Bound (host, port); the real port once listening."""
        return self._socket_server.address

    @property
    def port(self) -> int:
        return self.address[1]

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def active_connections(self) -> int:
        with self._active_lock:
            return len(self._active)

    @property
    def stats(self) -> dict:
        pool = self._thread_pool
        return {
            "running": self._running,
            "port": self.port,
            "routes": len(self._router),
            "active_connections": self.active_connections,
            "uptime": time.time() - self.started_at if self.started_at else 0.0,
            "pool": pool.stats if pool else None,
        }

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(self, method: str, path: str, handler: Handler) -> Route:
        """
        Register a handler for an exact (method, path).

        Can be called before or after start().
        """
        return self._router.register(method, path, handler)

    def route(self, path: str, methods: Union[str, List[str]] = "GET") -> Callable[[Handler], Handler]:
        return self._router.route(path, methods)

    def get(self, path: str) -> Callable[[Handler], Handler]:
        return self._router.get(path)

    def post(self, path: str) -> Callable[[Handler], Handler]:
        return self._router.post(path)

    def put(self, path: str) -> Callable[[Handler], Handler]:
        return self._router.put(path)

    def delete(self, path: str) -> Callable[[Handler], Handler]:
        return self._router.delete(path)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        """
        Start the server (blocking).

        Binds the socket and runs the accept loop on the calling thread
        until stop() is called. Teardown (pool drain, straggler abort)
        always runs here, on the way out.

        Raises:
            RuntimeError: If the server is already running.
            OSError: If the address cannot be bound.
        """
        with self._state_lock:
            if self._running:
                raise RuntimeError("Server is already running")
            # A stop() from an earlier run must not cancel this one
            self._socket_server.reset()
            self._running = True
            self._finished.clear()

        self._accept_thread = threading.current_thread()
        self._setup_logging()

        try:
            if self.config.create_static_dir:
                ensure_static_root(self.config.static_dir)

            self._thread_pool = ThreadPool(self.config.workers, self.config.queue_size)
            self._thread_pool.start()
            self.started_at = time.time()

            logger.info(f"Static files served from {self._static.root}")
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._accept_thread = None
            self._teardown()

    def stop(self, wait: bool = True) -> None:
        """
        Stop the server. Idempotent.

        The request sticks: a stop() that lands while start() is still
        setting up makes the accept loop exit as soon as it begins.

        Args:
            wait: If False, only signal and return. Use this from signal
                  handlers running on the accept thread.
        """
        with self._state_lock:
            self._socket_server.shutdown()

        if not wait or threading.current_thread() is self._accept_thread:
            return

        self._finished.wait()

    def _teardown(self) -> None:
        logger.info("Shutting down server...")

        pool, self._thread_pool = self._thread_pool, None
        if pool is not None:
            stragglers = pool.shutdown(timeout=self.config.shutdown_grace)
            if stragglers:
                aborted = self._abort_active_connections()
                logger.warning(
                    f"Aborted {aborted} connection(s) still open after "
                    f"{self.config.shutdown_grace}s grace period"
                )

        with self._state_lock:
            self._running = False
            self._finished.set()
        logger.info("Server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        # No-op if the host application already configured the root logger
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("minihttp").setLevel(level)

    def _abort_active_connections(self) -> int:
        with self._active_lock:
            connections = list(self._active)
        for conn in connections:
            conn.abort()
        return len(connections)

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Queue a connection for a worker (runs on the accept thread).

        Blocks while the pool's queue is full.
        """
        pool = self._thread_pool

        with self._active_lock:
            self._active.add(conn)

        try:
            pool.submit(self._process_connection, args=(conn,))
        except RuntimeError as e:
            # Pool already shutting down
            logger.warning(f"[{conn.id}] Rejecting connection: {e}")
            self._release(conn)
            conn.close()

    def _release(self, conn: Connection):
        with self._active_lock:
            self._active.discard(conn)

    def _process_connection(self, conn: Connection):
        """
        Handle one connection from first byte to close (worker thread).
        """
        started = time.time()
        try:
            with conn:
                self._serve(conn, started)
        finally:
            self._release(conn)

    def _serve(self, conn: Connection, started: float):
        conn.state = ConnectionState.PARSING

        try:
            request = self._parser.parse(conn.reader, conn.address)
        except HTTPParseError as e:
            logger.info(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
            self._respond(conn, None, bad_request(), started)
            return
        except TimeoutError:
            logger.warning(
                f"[{conn.id}] Read timed out after {self.config.timeout}s, dropping connection"
            )
            return
        except OSError as e:
            logger.warning(f"[{conn.id}] Read failed: {e}")
            return

        if request.body_truncated:
            logger.warning(
                f"[{conn.id}] Body truncated: got {len(request.body)} of "
                f"{request.content_length} bytes"
            )

        response = self.handle_request(request, conn)
        self._respond(conn, request, response, started)

    def _respond(
        self,
        conn: Connection,
        request: Optional[HTTPRequest],
        response: HTTPResponse,
        started: float,
    ):
        if not conn.send_response(response.to_bytes(self.config.server_name)):
            return

        entry = AccessLogEntry.build(
            connection_id=conn.id,
            client_ip=conn.client_ip,
            request=request,
            response=response,
            duration_ms=(time.time() - started) * 1000,
        )
        log_access(entry, self.config.log_format)

    def handle_request(self, request: HTTPRequest, conn: Optional[Connection] = None) -> HTTPResponse:
        """
        Turn a parsed request into a response. Never raises.

        Args:
            request: The parsed request.
            conn: Connection to update the state of, if any.

        Returns:
            The handler's response, a static file response, or an error
            response (404, 405, 500).
        """
        try:
            if conn:
                conn.state = ConnectionState.ROUTING

            result = self._router.dispatch(request)
            if isinstance(result, Handled):
                return result.response

            if request.method == "GET":
                if conn:
                    conn.state = ConnectionState.STATIC_LOOKUP
                return self._static.handle(request)

            if result.allowed_methods:
                return method_not_allowed(result.allowed_methods)

            return not_found()

        except Exception as e:
            cid = f"[{conn.id}] " if conn else ""
            logger.exception(f"{cid}Handler error for {request.method} {request.path}: {e}")
            return internal_error()


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Create a server with the demo API routes registered.

    Example:
        app = create_app(ServerConfig(port=3000))
        app.start()
    """
    server = HTTPServer(config)
    register_default_routes(server)
    return server
