"""
=============================================================================
HTTP SERVER
=============================================================================

HTTPServer ties the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer ──► ThreadPool ──► _process_connection(conn)          │
    │                                        │                             │
    │                                        ├─ conn.read_request()        │
    │                                        ├─ RequestParser.parse()      │
    │                                        ├─ dispatch(request)  ◄── core│
    │                                        │     middleware chain        │
    │                                        │       └─ router.handle      │
    │                                        └─ conn.send_response()       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

dispatch() is the one entry point per request. It can be called directly,
without sockets, which is how most tests exercise the server.

=============================================================================
REQUEST OUTCOMES
=============================================================================

Every request ends in exactly one of:

    handler completed        → handler's response (or its HTTPError)
    method not registered    → 405
    path not found           → 404
    recovered fault          → 500 (needs RecoveryMiddleware)

Without RecoveryMiddleware, a fault escapes dispatch(); the connection loop
logs it and closes the connection without a response. The server keeps
serving other connections either way.

=============================================================================
"""

import logging
from typing import Callable, Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus, Router, Handler,
    error_response,
)
from .middleware import (
    MiddlewarePipeline,
    LoggingMiddleware,
    RecoveryMiddleware,
)
from .middleware.base import MiddlewareLike


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    HTTP/1.1 server with exact-match routing and a middleware chain.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(port=8080))

        server.use(LoggingMiddleware())
        server.use(RecoveryMiddleware())

        @server.get("/user")
        def get_user(request):
            return ok("User information")

        @server.get("/err")
        def err(request):
            return HTTPError(400, "bad input")

        server.run()

    =========================================================================

    Routes and middleware are normally registered before run(). Routes may
    also be added while serving (the router swaps its table atomically);
    middleware added while serving applies to requests that start after
    the call.
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        """
        Args:
            config: Server configuration. Defaults to ServerConfig().
            router: Route table to serve. A fresh Router if not given.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._router = router if router is not None else Router()
        self._middleware = MiddlewarePipeline()
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None

        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def use(self, middleware: MiddlewareLike) -> "HTTPServer":
        """
        Append middleware. The first one added is the outermost.

        Returns:
            Self for method chaining.
        """
        self._middleware.add(middleware)
        self._handler = None
        return self

    @property
    def router(self) -> Router:
        return self._router

    @property
    def middleware(self) -> MiddlewarePipeline:
        return self._middleware

    def add_route(self, method: str, path: str, handler: Handler) -> "HTTPServer":
        """Register (or overwrite) the handler for an exact (method, path)."""
        self._router.add_route(method, path, handler)
        return self

    def route(self, method: str, path: str):
        """Decorator registering a handler for any method."""
        return self._router.route(method, path)

    def get(self, path: str):
        return self._router.get(path)

    def post(self, path: str):
        return self._router.post(path)

    def put(self, path: str):
        return self._router.put(path)

    def delete(self, path: str):
        return self._router.delete(path)

    def patch(self, path: str):
        return self._router.patch(path)

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def dispatch(self, request: HTTPRequest) -> HTTPResponse:
        """
        Run one request through the middleware chain and the router.

        Raises:
            Exception: Whatever the handler raised, if no RecoveryMiddleware
                       is installed.
        """
        handler = self._handler
        if handler is None:
            handler = self._middleware.wrap(self._router.handle)
            self._handler = handler
        return handler(request)

    # =========================================================================
    # SERVING
    # =========================================================================

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once listening with port=0."""
        return self._socket_server.address

    @property
    def ready(self):
        """threading.Event set once the listening socket is bound."""
        return self._socket_server.ready

    @property
    def stats(self) -> dict:
        return self._thread_pool.stats

    def run(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """
        Start serving. Blocks until shutdown() or Ctrl+C.

        Args:
            host: Override config host.
            port: Override config port (0 for any free port).
        """
        if host is not None:
            self.config.host = host
        if port is not None:
            self.config.port = port
            self.config.validate()

        self._setup_logging()
        self._handler = self._middleware.wrap(self._router.handle)
        self._thread_pool.start()

        logger.info(
            f"Starting {self.config.server_name} on {self.config.host}:{self.config.port} "
            f"({len(self._router)} routes, {len(self._middleware)} middleware, "
            f"{self.config.min_workers}-{self.config.max_workers} workers)"
        )
        for route in self._router.routes():
            logger.debug(f"  {route.method:7} {route.path}")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._thread_pool.shutdown(wait=True)
            logger.info("Server stopped")

    def shutdown(self) -> None:
        """Stop accepting connections; run() returns shortly after."""
        self._socket_server.shutdown()

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_for_shutdown(timeout)

    def _setup_logging(self) -> None:
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("microserve").setLevel(level)

    def _handle_connection(self, conn: Connection) -> None:
        """Hand a new connection to the pool, or answer 503 if it is full."""
        if not self._thread_pool.submit(self._process_connection, args=(conn,)):
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            with conn:
                self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")

    def _process_connection(self, conn: Connection) -> None:
        """
        Serve one request on `conn` (runs in a worker thread).

            read → parse → dispatch → send → close
        """
        with conn:
            try:
                raw_request = conn.read_request()
            except TimeoutError:
                self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                return
            except HTTPParseError as e:
                self._send_error(conn, e.status_code, str(e))
                return

            if raw_request is None:
                return

            try:
                request = self._parser.parse(raw_request, conn.address)
            except HTTPParseError as e:
                logger.debug(f"[{conn.id}] Parse error: {e}")
                self._send_error(conn, e.status_code, str(e))
                return

            try:
                response = self.dispatch(request)
            except Exception:
                logger.exception(
                    f"[{conn.id}] Unhandled error in {request.method} {request.path}; "
                    f"closing connection without a response"
                )
                return

            response.headers["Connection"] = "close"
            conn.send_response(response.to_bytes(self.config.server_name))

    def _send_error(self, conn: Connection, status: int, message: str) -> None:
        """Answer a request that never reached dispatch()."""
        response = error_response(status, message, headers={"Connection": "close"})
        conn.send_response(response.to_bytes(self.config.server_name))


def create_app(config: Optional[ServerConfig] = None, router: Optional[Router] = None) -> HTTPServer:
    """
    Create a server with the standard middleware stack.

        LoggingMiddleware   (if config.access_log)   outermost
        RecoveryMiddleware  (if config.recovery)

    Example:
        app = create_app(ServerConfig(port=3000))

        @app.get("/")
        def index(request):
            return ok("Hello!")

        app.run()
    """
    server = HTTPServer(config, router)

    if server.config.access_log:
        server.use(LoggingMiddleware(log_format=server.config.log_format))
    if server.config.recovery:
        server.use(RecoveryMiddleware())

    return server
