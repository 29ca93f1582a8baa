"""
=============================================================================
MICROSERVE - Minimal HTTP/1.1 Server Framework
=============================================================================

A small threaded HTTP server built on raw sockets, organized around three
pieces:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   1. ROUTER                                                         │
    │      - Exact (method, path) matching, no patterns                   │
    │      - Unregistered method → 405, unknown path → 404                │
    │                                                                      │
    │   2. MIDDLEWARE CHAIN                                               │
    │      - First registered = outermost                                 │
    │      - Logging (never breaks a request), recovery (fault → 500)     │
    │                                                                      │
    │   3. ERROR MODEL                                                    │
    │      - HTTPError(code, message): returned or raised by handlers     │
    │      - Rendered as {"error": message} with that status              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    microserve/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m microserve)
    ├── server.py            # HTTPServer, create_app
    ├── config.py            # ServerConfig dataclass
    ├── core/                # Sockets, connections, thread pool
    ├── http/                # Request, response, errors, router
    ├── middleware/          # Pipeline, logging, recovery
    └── handlers/            # Health and user endpoints

=============================================================================
QUICK START
=============================================================================

    from microserve import create_app, ServerConfig, HTTPError, ok

    app = create_app(ServerConfig(port=8080))

    @app.get("/user")
    def get_user(request):
        return ok("User information")

    @app.get("/err")
    def err(request):
        return HTTPError(400, "bad input")

    app.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .http import (
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    HTTPError,
    ResponseBuilder,
    Router,
    Route,
    RouteOutcome,
    ok,
    text,
)
from .middleware import (
    Middleware,
    MiddlewarePipeline,
    LoggingMiddleware,
    RecoveryMiddleware,
    compose,
    function_middleware,
)
from .server import HTTPServer, create_app

__all__ = [
    "__version__",

    # Server
    "HTTPServer",
    "ServerConfig",
    "create_app",

    # HTTP
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "HTTPError",
    "ResponseBuilder",
    "ok",
    "text",

    # Routing
    "Router",
    "Route",
    "RouteOutcome",

    # Middleware
    "Middleware",
    "MiddlewarePipeline",
    "LoggingMiddleware",
    "RecoveryMiddleware",
    "compose",
    "function_middleware",
]
