"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

Owns the listening socket and the accept loop. It knows nothing about
HTTP: every accepted client is wrapped in a Connection and handed to a
callback.

=============================================================================
SOCKET LIFECYCLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   socket()  ──►  bind()  ──►  listen()  ──►  accept() loop          │
    │                                                   │                  │
    │                                        ┌──────────┴──────────┐       │
    │                                        ▼                     ▼       │
    │                                  Connection(...)      shutdown()?    │
    │                                        │                     │       │
    │                                   callback(conn)          close()    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
INTERRUPTIBLE ACCEPT
=============================================================================

accept() blocks. Closing the socket from another thread while accept()
sits on it is not portable, so the listening socket gets a short
timeout instead and the loop polls a flag:

    while not shutdown_requested:
        try:
            accept()          # waits at most ACCEPT_POLL_INTERVAL
        except timeout:
            continue          # re-check the flag

Only the accept thread ever closes the listening socket.

=============================================================================
ACCEPT ERRORS ARE TRANSIENT
=============================================================================

accept() can fail for reasons that say nothing about the server's health:
the peer reset before we picked it up (ECONNABORTED), or the process ran
out of file descriptors for a moment (EMFILE). The loop logs and keeps
going. The only thing that ends it is shutdown().

The shutdown request is an Event that stays set until reset(). A
shutdown() that arrives before start() has bound the socket is therefore
not lost: the loop sees it on its first check and exits straight away.
"""

import logging
import socket
import threading
import time
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

# Max seconds shutdown() waits for accept() to notice
ACCEPT_POLL_INTERVAL = 0.5

# Pause after a failed accept() so EMFILE doesn't become a busy loop
ACCEPT_ERROR_BACKOFF = 0.05


class SocketServer:
    """
    Low-level TCP socket server.

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Server configuration (host, port, backlog, timeout).

        The socket is created lazily in start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._bound_address: Optional[Tuple[str, int]] = None
        self._running = False

        # Set once listen() succeeded
        self._ready_event = threading.Event()

        # Set by shutdown(), cleared only by reset()
        self._shutdown_requested = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        Get the bound (host, port).

        Before start() this is the configured address. After bind() it is
        the real one, which matters when the configured port is 0.
        """
        return self._bound_address or (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create and configure the listening socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # SO_REUSEADDR: rebind right after a restart while old
        # connections are still in TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    def start(self, connection_handler: Callable[[Connection], None]) -> None:
        """
        Bind, listen, and accept connections until shutdown().

        This method BLOCKS.

        Args:
            connection_handler: Called on the accept thread for every new
                                connection. It must return quickly
                                (HTTPServer hands the connection to the
                                thread pool).

        Raises:
            OSError: If the address cannot be bound.
            RuntimeError: If the server is already running.
        """
        if self._running:
            raise RuntimeError("Socket server is already running")

        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
            self._socket.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._cleanup()
            raise

        self._bound_address = self._socket.getsockname()[:2]
        self._running = True
        self._ready_event.set()

        host, port = self._bound_address
        logger.info(f"Server listening on {host}:{port}")

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]) -> None:
        while not self._shutdown_requested.is_set():
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue  # Normal: re-check the shutdown flag
            except OSError as e:
                if self._shutdown_requested.is_set():
                    break
                logger.error(f"Accept error: {e}")
                time.sleep(ACCEPT_ERROR_BACKOFF)
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            try:
                conn = Connection(
                    socket=client_socket,
                    address=client_address[:2],
                    timeout=self.config.timeout,
                )
            except OSError as e:
                # Peer vanished between accept() and setsockopt()
                logger.warning(f"Dropping connection from {client_address[0]}: {e}")
                client_socket.close()
                continue

            connection_handler(conn)

    def shutdown(self) -> None:
        """
        Ask the accept loop to stop.

        Returns immediately; the loop notices within ACCEPT_POLL_INTERVAL
        and closes the listening socket itself. Safe to call from any
        thread, from a signal handler, and more than once. It also works
        before start(): the next accept loop exits immediately.
        """
        if self._running and not self._shutdown_requested.is_set():
            logger.info("Shutting down socket server...")
        self._shutdown_requested.set()

    def reset(self) -> None:
        """Forget an earlier shutdown() so start() can run again."""
        self._shutdown_requested.clear()

    def _cleanup(self) -> None:
        self._running = False
        self._ready_event.clear()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None
            logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the socket is listening.

        Returns:
            True if listening, False on timeout.
        """
        return self._ready_event.wait(timeout)
