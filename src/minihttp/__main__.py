"""
=============================================================================
COMMAND-LINE INTERFACE
=============================================================================

    python -m minihttp                        # 127.0.0.1:8080, ./static
    python -m minihttp --port 3000            # Custom port
    python -m minihttp --host 0.0.0.0         # Listen on all interfaces
    python -m minihttp --static ./public      # Different static root
    python -m minihttp --no-demo-routes       # Static files only

Settings come from HTTP_* environment variables first (see
ServerConfig.from_env), then flags override them.

Ctrl+C or SIGTERM stops the server gracefully: in-flight requests get
the configured grace period to finish.
"""

import argparse
import logging
import signal
import sys
from typing import Optional, Sequence

from . import __version__
from .config import LOG_FORMATS, ServerConfig
from .handlers.api import register_default_routes
from .server import HTTPServer


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minihttp",
        description="Minimal HTTP/1.1 server with routing and static files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
  HTTP_HOST, HTTP_PORT, HTTP_WORKERS, HTTP_TIMEOUT,
  HTTP_STATIC_DIR, HTTP_LOG_LEVEL
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for containers)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on (default: 8080)"
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        help="Per-connection read timeout in seconds (default: 30)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # PERFORMANCE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Number of worker threads (default: 50)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # FEATURE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--static", "-s",
        dest="static_dir",
        help="Directory to serve static files from (default: ./static)"
    )

    parser.add_argument(
        "--no-demo-routes",
        dest="demo_routes",
        action="store_false",
        help="Don't register the /api/* demo endpoints"
    )

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"minihttp {__version__}"
    )

    return parser


def build_config(args: argparse.Namespace) -> ServerConfig:
    """Environment first, then any flag that was actually given."""
    config = ServerConfig.from_env()

    for name in ("host", "port", "timeout", "workers", "static_dir", "log_level", "log_format"):
        value = getattr(args, name)
        if value is not None:
            setattr(config, name, value)

    config.validate()
    return config


def install_signal_handlers(server: HTTPServer) -> None:
    """
    Stop the server on SIGINT / SIGTERM.

    The handler runs on the main thread, which is also the accept thread,
    so it only signals; start() completes the shutdown on its way out.
    """
    def shutdown_handler(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
        server.stop(wait=False)

    signal.signal(signal.SIGINT, shutdown_handler)
    signal.signal(signal.SIGTERM, shutdown_handler)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except ValueError as e:
        parser.error(str(e))  # Exits with status 2

    server = HTTPServer(config)
    if args.demo_routes:
        register_default_routes(server)

    install_signal_handlers(server)

    try:
        server.start()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
