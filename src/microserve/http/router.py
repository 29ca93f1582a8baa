"""
=============================================================================
EXACT-MATCH ROUTER
=============================================================================

Maps (method, path) pairs to handler functions.

Matching is exact string equality on both keys. There are no path
parameters, no wildcards, no prefix matching, and no trailing-slash or
case normalization:

    registered:  GET /user
    GET  /user    → handler
    GET  /user/   → 404 (different path)
    get  /user    → 405 (different method, unless "get" has routes)

=============================================================================
ROUTE TABLE
=============================================================================

Routes live in a two-level dict, so a lookup is two hash lookups:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  _table                                                             │
    │                                                                      │
    │   "GET"  ──►  { "/user":   Route(GET, /user, get_user),             │
    │                 "/health": Route(GET, /health, health) }            │
    │                                                                      │
    │   "POST" ──►  { "/user":   Route(POST, /user, create_user) }        │
    └─────────────────────────────────────────────────────────────────────┘

The two-level shape is what lets the router tell the two failure cases
apart:

    method missing from _table     → METHOD_NOT_REGISTERED → 405
    method present, path missing   → PATH_NOT_FOUND        → 404

=============================================================================
CONCURRENCY
=============================================================================

Every worker thread reads the table on every request. Writers never mutate
the published table; they build a new one and swap the reference:

    writer (under _write_lock)            readers (no lock)
    ───────────────────────────           ──────────────────────────
    table = copy of _table                table = self._table
    table[method] = copy + new route      table.get(method) ...
    self._table = table   ◄── atomic      (sees old or new, never half)

So routes registered after the server started are safe, and dispatch never
blocks.

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union
import logging
import threading

from .errors import HTTPError
from .request import HTTPRequest
from .response import HTTPResponse, method_not_allowed, not_found


logger = logging.getLogger(__name__)


# A handler takes a request and returns a response, or an HTTPError value
# for an expected failure.
Handler = Callable[[HTTPRequest], Union[HTTPResponse, HTTPError]]


class RouteOutcome(Enum):
    """Result of looking up a (method, path) pair."""

    FOUND = "found"
    METHOD_NOT_REGISTERED = "method_not_registered"
    PATH_NOT_FOUND = "path_not_found"


@dataclass(frozen=True)
class Route:
    """A registered (method, path) → handler binding. Never mutated."""

    method: str
    path: str
    handler: Handler


class Router:
    """
    Exact-match dispatch table.

    Usage:
        router = Router()

        @router.get("/user")
        def get_user(request):
            return ok("User information")

        handler, outcome = router.dispatch("GET", "/user")
        # outcome is RouteOutcome.FOUND, handler is get_user

        response = router.handle(request)   # dispatch + invoke + render errors

    Registering the same (method, path) twice replaces the first handler.
    """

    def __init__(self):
        self._table: Dict[str, Dict[str, Route]] = {}
        self._write_lock = threading.Lock()

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def add_route(self, method: str, path: str, handler: Handler) -> Route:
        """
        Register (or overwrite) the handler for an exact (method, path).

        Only emptiness is checked; anything else is stored as given.

        Raises:
            ValueError: If method or path is empty.
        """
        if not method:
            raise ValueError("Route method must not be empty")
        if not path:
            raise ValueError("Route path must not be empty")

        route = Route(method=method, path=path, handler=handler)

        with self._write_lock:
            table = dict(self._table)
            paths = dict(table.get(method, {}))
            previous = paths.get(path)
            paths[path] = route
            table[method] = paths
            self._table = table

        if previous is not None:
            logger.debug(f"Route {method} {path} overwritten")
        else:
            logger.debug(f"Route {method} {path} registered")

        return route

    def route(self, method: str, path: str) -> Callable[[Handler], Handler]:
        """
        Decorator form of add_route().

            @router.route("PUT", "/user")
            def replace_user(request): ...

        The decorated function is returned unchanged.
        """
        def decorator(handler: Handler) -> Handler:
            self.add_route(method, path, handler)
            return handler
        return decorator

    def get(self, path: str) -> Callable[[Handler], Handler]:
        return self.route("GET", path)

    def post(self, path: str) -> Callable[[Handler], Handler]:
        return self.route("POST", path)

    def put(self, path: str) -> Callable[[Handler], Handler]:
        return self.route("PUT", path)

    def delete(self, path: str) -> Callable[[Handler], Handler]:
        return self.route("DELETE", path)

    def patch(self, path: str) -> Callable[[Handler], Handler]:
        return self.route("PATCH", path)

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def dispatch(self, method: str, path: str) -> Tuple[Optional[Handler], RouteOutcome]:
        """
        Look up the handler for an exact (method, path).

        Returns:
            (handler, RouteOutcome.FOUND) on a hit, otherwise
            (None, METHOD_NOT_REGISTERED) or (None, PATH_NOT_FOUND).
        """
        table = self._table

        paths = table.get(method)
        if paths is None:
            return None, RouteOutcome.METHOD_NOT_REGISTERED

        route = paths.get(path)
        if route is None:
            return None, RouteOutcome.PATH_NOT_FOUND

        return route.handler, RouteOutcome.FOUND

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a request and produce its response.

        This is the innermost handler of the middleware chain:

            FOUND                  → call handler; render a returned or
                                     raised HTTPError
            METHOD_NOT_REGISTERED  → 405, Allow lists the methods serving
                                     the path (omitted when none do)
            PATH_NOT_FOUND         → 404, handler skipped

        Any other exception from the handler propagates to the caller
        (normally RecoveryMiddleware).
        """
        handler, outcome = self.dispatch(request.method, request.path)

        if outcome is RouteOutcome.METHOD_NOT_REGISTERED:
            return method_not_allowed(
                self.methods_for(request.path),
                f"Method {request.method} not allowed",
            )

        if outcome is RouteOutcome.PATH_NOT_FOUND:
            return not_found(f"No route matches {request.method} {request.path}")

        try:
            result = handler(request)
        except HTTPError as error:
            return error.to_response()

        if isinstance(result, HTTPError):
            return result.to_response()

        if not isinstance(result, HTTPResponse):
            raise TypeError(
                f"Handler for {request.method} {request.path} returned "
                f"{type(result).__name__}, expected HTTPResponse or HTTPError"
            )

        if not isinstance(result.body, bytes):
            raise TypeError(
                f"Handler for {request.method} {request.path} set a "
                f"{type(result.body).__name__} body, expected bytes"
            )

        return result

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def methods(self) -> List[str]:
        """Methods that have at least one route, sorted."""
        return sorted(self._table)

    def methods_for(self, path: str) -> List[str]:
        """Methods with a route for exactly `path`, sorted."""
        table = self._table
        return sorted(method for method, paths in table.items() if path in paths)

    def routes(self) -> List[Route]:
        """All registered routes, ordered by method then path."""
        table = self._table
        return [
            table[method][path]
            for method in sorted(table)
            for path in sorted(table[method])
        ]

    def __len__(self) -> int:
        return sum(len(paths) for paths in self._table.values())
