"""
=============================================================================
MICROSERVE CLI ENTRY POINT
=============================================================================

    # Run with defaults (localhost:8080)
    python -m microserve

    # Custom port
    python -m microserve --port 3000

    # Listen on all interfaces (for containers)
    python -m microserve --host 0.0.0.0

    # JSON access logs, verbose
    python -m microserve --log-format json --log-level DEBUG

Settings come from the environment first (see ServerConfig.from_env), then
command-line flags override them.

The app serves:

    GET /user          200 "User information"
    GET /health        health status (JSON)
    GET /health/live   liveness probe

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig, LOG_FORMATS, LOG_LEVELS
from .handlers import HealthHandler, UserHandler
from .server import HTTPServer, create_app


def build_app(config: ServerConfig) -> HTTPServer:
    """
    Create the CLI application: standard middleware plus the built-in
    routes.
    """
    server = create_app(config)

    users = UserHandler()
    server.add_route("GET", "/user", users.get_user)

    health = HealthHandler(stats=lambda: server.stats)
    server.add_route("GET", "/health", health.handle)
    server.add_route("GET", "/health/live", health.liveness)

    return server


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="microserve",
        description="Minimal HTTP server with exact-match routing and middleware",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m microserve                      # Run with defaults
  python -m microserve --port 3000          # Custom port
  python -m microserve --host 0.0.0.0       # Listen on all interfaces
  python -m microserve --workers 8          # 8 worker threads
  python -m microserve --no-recovery        # Let faults close connections
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: $HTTP_HOST or 127.0.0.1)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: $PORT, $HTTP_PORT or 8080)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # PERFORMANCE
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Maximum worker threads (default: $HTTP_WORKERS or 16)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING AND FAULTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: $HTTP_LOG_LEVEL or INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Access log format (default: $HTTP_LOG_FORMAT or text)"
    )

    parser.add_argument(
        "--no-recovery",
        action="store_true",
        help="Do not install the recovery middleware"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"microserve {__version__}"
    )

    return parser.parse_args(argv)


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment configuration with any given flags applied on top."""
    config = ServerConfig.from_env()

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.max_workers = args.workers
        config.min_workers = min(config.min_workers, args.workers)
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format
    if args.no_recovery:
        config.recovery = False

    return config


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Returns the process exit code."""
    try:
        args = parse_args(argv)
        config = config_from_args(args)
        server = build_app(config)
    except ValueError as e:
        print(f"microserve: {e}", file=sys.stderr)
        return 2

    server.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
