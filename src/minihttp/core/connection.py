"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket for the lifetime of a single
request/response exchange.

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

This server never keeps connections alive. Every response carries
"Connection: close" and the socket is closed right after:

    ┌─────────────────────────────────────────────────────────────────────┐
    │   TCP Connect → Request → Response → TCP Close                       │
    │   TCP Connect → Request → Response → TCP Close                       │
    └─────────────────────────────────────────────────────────────────────┘

That makes the lifecycle a straight line with no loop back:

    ACCEPTED ──► PARSING ──► ROUTING ──┬──────────────► RESPONDING ──► CLOSED
                                       │                     ▲
                                       └─► STATIC_LOOKUP ────┘

    Any failure on any state jumps straight to CLOSED.

=============================================================================
READING: A BUFFERED STREAM OVER THE SOCKET
=============================================================================

TCP delivers bytes in arbitrary chunks, so "GET /api/he" and "llo HTTP/1.1"
may arrive in separate recv() calls. socket.makefile("rb") gives a
BufferedReader that hides this: readline() blocks until a whole line is
there, read(n) until n bytes are there. The socket timeout still applies
to every underlying recv().
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Optional


logger = logging.getLogger(__name__)

# Limits on how long and how much close() drains before giving up
DRAIN_TIMEOUT = 0.5
DRAIN_MAX_BYTES = 64 * 1024


class ConnectionState(Enum):
    """
    Connection lifecycle states.

    Tracked for logging and so stop() can tell which connections are
    still in flight.
    """
    ACCEPTED = "accepted"            # Just accepted, nothing read yet
    PARSING = "parsing"              # Reading the request
    ROUTING = "routing"              # Looking up / running a handler
    STATIC_LOOKUP = "static_lookup"  # No route, trying the static root
    RESPONDING = "responding"        # Writing the response
    CLOSED = "closed"                # Socket released


@dataclass(eq=False)
class Connection:
    """
    Represents a client connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. SOCKET OPTIONS                                                   │
    │     └── Read timeout so a silent client can't pin a worker          │
    │     └── TCP_NODELAY so the response isn't held back by Nagle        │
    │                                                                      │
    │  2. BUFFERED READING                                                 │
    │     └── reader: line-oriented binary stream for the parser          │
    │                                                                      │
    │  3. STATE TRACKING                                                   │
    │                                                                      │
    │  4. GRACEFUL CLOSE                                                   │
    │     └── Half-close, drain, then release the file descriptor         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        timeout: Read timeout in seconds.
        id: Short unique identifier for log lines.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
    """

    socket: socket.socket
    address: tuple[str, int]
    timeout: Optional[float] = 30.0

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.ACCEPTED
    created_at: float = field(default_factory=time.time)

    _reader: Optional[BinaryIO] = field(default=None, repr=False)

    def __post_init__(self):
        """Apply per-connection socket options."""
        self.socket.settimeout(self.timeout)

        try:
            self.socket.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        except OSError:
            pass  # Not a TCP socket (e.g. socketpair in tests)

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else ""

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    @property
    def reader(self) -> BinaryIO:
        """
        Buffered binary stream over the socket, created on first use.

        Raises:
            RuntimeError: If the connection has been closed.
        """
        if self.closed:
            raise RuntimeError(f"[{self.id}] Connection is closed")
        if self._reader is None:
            self._reader = self.socket.makefile("rb")
        return self._reader

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes to the client.

        Uses sendall() so a large body is written completely or not at all
        from the caller's point of view.

        Returns:
            True if the send succeeded, False if the peer went away.
        """
        self.state = ConnectionState.RESPONDING

        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def abort(self) -> None:
        """
        Shut the socket down in both directions.

        Safe to call from another thread: a worker blocked in recv() or
        sendall() on this socket wakes up with an error. The worker still
        owns the connection and closes it as usual.
        """
        if self.closed:
            return
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Already disconnected
        logger.debug(f"[{self.id}] Connection aborted in state {self.state.value}")

    def close(self) -> None:
        """
        Close the connection gracefully. Idempotent.

        1. shutdown(SHUT_WR)  → sends FIN, the client sees end of response
        2. drain              → read what the client sent and we ignored,
                                so the kernel doesn't answer it with RST
                                (at most DRAIN_TIMEOUT / DRAIN_MAX_BYTES)
        3. close()            → release the file descriptor

        ┌─────────────────────────────────────────────────────────────────┐
        │   Server                              Client                     │
        │      │   FIN ──────────────────────────► │  (shutdown SHUT_WR)  │
        │      │ ◄───────────────────────── ACK   │                       │
        │      │ ◄───────────────────────── FIN   │  (client closes)      │
        │      │   ACK ──────────────────────────► │                       │
        │   (socket closed)                  (socket closed)               │
        └─────────────────────────────────────────────────────────────────┘
        """
        if self.closed:
            return

        # makefile() holds a reference that keeps the fd open; drop it first
        if self._reader is not None:
            try:
                self._reader.close()
            except OSError:
                pass
            self._reader = None

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected, that's fine

        self._drain()

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def _drain(self) -> None:
        """
        Discard unread input until the peer's FIN.

        Bounded by DRAIN_TIMEOUT in total and DRAIN_MAX_BYTES, so a peer
        that keeps sending can't hold the worker.
        """
        deadline = time.monotonic() + DRAIN_TIMEOUT
        drained = 0

        try:
            while drained < DRAIN_MAX_BYTES:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass  # Timeout or reset, we're closing anyway

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensure connection is closed."""
        self.close()
        return False  # Don't suppress exceptions
