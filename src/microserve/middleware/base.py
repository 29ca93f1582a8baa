"""
=============================================================================
MIDDLEWARE CHAIN
=============================================================================

Middleware wraps a handler with cross-cutting behavior. Each layer gets the
request and a `next` callable, and decides whether, and how, to continue:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          REQUEST FLOW                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Request ─────────────────────────────────────────────►            │
    │                                                                      │
    │   ┌──────────┐    ┌──────────┐    ┌──────────────────┐              │
    │   │ Logging  │───►│ Recovery │───►│  router.handle   │              │
    │   └────┬─────┘    └────┬─────┘    └────────┬─────────┘              │
    │        │               │                   │                         │
    │   [before]         [try:]              dispatch +                    │
    │   log method,       call next           handler                      │
    │   path                                     │                         │
    │        ▲               ▲                   │                         │
    │   [after]          [except:]               │                         │
    │   log status,       fault → 500  ◄─────────┘                         │
    │   duration                                                           │
    │                                                                      │
    │   ◄──────────────────────────────────────────────── Response        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The first middleware added is the OUTERMOST: it runs first on the way in
and last on the way out. Given [A, B] and handler H:

    entry:  A → B → H
    exit:   H → B → A

A middleware can SHORT-CIRCUIT by returning a response without calling
next; everything inside it (including the router) is then skipped.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterable, Iterator, List, Optional, Union
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# The next middleware, or the final handler.
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

    Subclasses implement __call__:

        class TimingHeader(Middleware):
            def __call__(self, request, next):
                start = time.perf_counter()          # before
                response = next(request)             # continue the chain
                elapsed = time.perf_counter() - start
                response.set_header("X-Elapsed", f"{elapsed:.4f}")  # after
                return response

    Instances should not keep per-request state on self: one instance
    serves every concurrent request.
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request.

        Call next(request) to continue the chain (unless short-circuiting)
        and return the resulting response, optionally post-processed.
        """

    @property
    def name(self) -> str:
        """Name used in log lines."""
        return self.__class__.__name__


class FunctionMiddleware(Middleware):
    """
    Adapts a plain function to the Middleware interface.

        def add_header(request, next):
            response = next(request)
            response.set_header("X-Custom", "value")
            return response

        pipeline.add(FunctionMiddleware(add_header))
    """

    def __init__(
        self,
        func: Callable[[HTTPRequest, NextHandler], HTTPResponse],
        name: Optional[str] = None
    ):
        self._func = func
        self._name = name or getattr(func, "__name__", type(func).__name__)

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(
    func: Callable[[HTTPRequest, NextHandler], HTTPResponse]
) -> FunctionMiddleware:
    """
    Decorator turning a (request, next) function into middleware.

        @function_middleware
        def deny_admin(request, next):
            if request.path == "/admin":
                return HTTPError(403, "forbidden").to_response()
            return next(request)
    """
    return FunctionMiddleware(func)


MiddlewareLike = Union[Middleware, Callable[[HTTPRequest, NextHandler], HTTPResponse]]


def _as_middleware(middleware: MiddlewareLike) -> Middleware:
    if isinstance(middleware, Middleware):
        return middleware
    if callable(middleware):
        return FunctionMiddleware(middleware)
    raise TypeError(f"Not a middleware: {middleware!r}")


def compose(middlewares: Iterable[MiddlewareLike], handler: NextHandler) -> NextHandler:
    """
    Wrap `handler` with `middlewares`, first one outermost.

    =========================================================================
    HOW WRAPPING WORKS
    =========================================================================

    Given [A, B, C] and H we wrap in REVERSE order:

        current = H
        current = C(current)     # C calls H
        current = B(current)     # B calls C
        current = A(current)     # A calls B

    Result: A → B → C → H

    =========================================================================

    The same middleware instance listed twice wraps twice.
    """
    current = handler
    for middleware in reversed([_as_middleware(m) for m in middlewares]):
        current = _bind(middleware, current)
    return current


def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
    """Close over one middleware and its successor."""
    def wrapped(request: HTTPRequest) -> HTTPResponse:
        return middleware(request, next_handler)

    wrapped.__qualname__ = f"{middleware.name}.wrapped"
    return wrapped


class MiddlewarePipeline:
    """
    Ordered, append-only list of middleware.

        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware())     # outermost
        pipeline.add(RecoveryMiddleware())    # inside logging

        handler = pipeline.wrap(router.handle)
        response = handler(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: MiddlewareLike) -> "MiddlewarePipeline":
        """
        Append middleware (becomes the innermost layer so far).

        Plain (request, next) callables are wrapped in FunctionMiddleware.

        Returns:
            Self for method chaining
        """
        mw = _as_middleware(middleware)
        self._middleware.append(mw)
        logger.debug(f"Added middleware: {mw.name}")
        return self

    def use(self, *middleware: MiddlewareLike) -> "MiddlewarePipeline":
        """Append several middleware in order."""
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """Build the chain around `handler`. See compose()."""
        return compose(self._middleware, handler)

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)
