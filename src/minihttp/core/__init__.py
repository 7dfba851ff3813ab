"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing underneath the HTTP layer:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SocketServer   listening socket, accept loop                        │
    │  Connection     one client socket: timeout, reader, graceful close   │
    │  ThreadPool     fixed workers behind a bounded queue                 │
    └─────────────────────────────────────────────────────────────────────┘

None of these know anything about HTTP.
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",     # Main TCP server - accepts connections
    "Connection",       # Wrapper for client socket - handles I/O
    "ConnectionState",  # Enum for connection lifecycle states
    "ThreadPool",       # Manages worker threads for concurrency
]
