"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All tunables for the server in one dataclass.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION SOURCES                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                      │
    │                                                                      │
    │   1. Command-line arguments       python -m minihttp --port 3000     │
    │   2. Environment variables        HTTP_PORT=3000 python -m minihttp  │
    │   3. Defaults in this dataclass                                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The environment is only consulted through ServerConfig.from_env(), which
the CLI calls. Code that builds ServerConfig(...) directly gets exactly
what it passed in.
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional


LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    Example:
        # Tests: ephemeral port, small pool, quiet logs
        ServerConfig(port=0, workers=4, log_level="WARNING")

        # Serving a site on every interface
        ServerConfig(host="0.0.0.0", static_dir="/srv/www")
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only
    - "0.0.0.0" - All network interfaces
    """

    port: int = 8080
    """
    The port number to listen on. 0 asks the OS for a free port; read
    the real one from HTTPServer.address after start.
    """

    backlog: int = 128
    """Maximum number of connections queued by the kernel before accept()."""

    timeout: float = 30.0
    """
    Per-connection read timeout in seconds. On expiry the connection is
    dropped without a response.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    workers: int = 50
    """Fixed number of worker threads. Each handles one connection at a time."""

    queue_size: int = 100
    """
    Accepted connections waiting for a worker. When full, the accept loop
    blocks until a worker frees up.
    """

    shutdown_grace: float = 5.0
    """
    Seconds stop() waits for in-flight connections before aborting them.
    """

    # ─────────────────────────────────────────────────────────────────────
    # STATIC FILES
    # ─────────────────────────────────────────────────────────────────────

    static_dir: str = "static"
    """Directory GET requests fall back to when no route matches."""

    index_file: str = "index.html"
    """File served for "/"."""

    create_static_dir: bool = True
    """
    Create static_dir on start if it is missing, with a sample index.html.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """
    Access log format: 'text' (Apache-style line) or 'json' (one object
    per line, for log aggregators).
    """

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "MiniHTTP/1.0"
    """Value of the Server response header."""

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST        Server host (default: 127.0.0.1)
        HTTP_PORT        Server port (default: 8080)
        HTTP_WORKERS     Worker threads (default: 50)
        HTTP_TIMEOUT     Read timeout in seconds (default: 30)
        HTTP_STATIC_DIR  Static files directory (default: static)
        HTTP_LOG_LEVEL   Logging level (default: INFO)

        =====================================================================

        Args:
            environ: Mapping to read from. Defaults to os.environ.

        Raises:
            ValueError: If a numeric variable does not parse.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        return cls(
            host=env.get("HTTP_HOST", defaults.host),
            port=int(env.get("HTTP_PORT", defaults.port)),
            workers=int(env.get("HTTP_WORKERS", defaults.workers)),
            timeout=float(env.get("HTTP_TIMEOUT", defaults.timeout)),
            static_dir=env.get("HTTP_STATIC_DIR", defaults.static_dir),
            log_level=env.get("HTTP_LOG_LEVEL", defaults.log_level),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called by HTTPServer at construction, so a bad value fails at
        startup rather than on the first request.

        Raises:
            ValueError: Describing the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.workers < 1:
            raise ValueError("workers must be >= 1")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.shutdown_grace < 0:
            raise ValueError("shutdown_grace must be >= 0")

        if not self.static_dir:
            raise ValueError("static_dir must not be empty")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Type-safe configuration with a dataclass
# 2. Environment variables, but only when asked (from_env)
# 3. Validation at startup (fail-fast)
# =============================================================================
