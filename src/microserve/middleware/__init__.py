"""
=============================================================================
MIDDLEWARE
=============================================================================

Cross-cutting behavior wrapped around the router:

LoggingMiddleware:
    Logs method and path on the way in, status and timing on the way out.
    Logging failures are swallowed.

RecoveryMiddleware:
    Turns unexpected handler exceptions into a generic 500 response.

Typical order (first = outermost):

    server.use(LoggingMiddleware())
    server.use(RecoveryMiddleware())

With logging outside recovery, a recovered fault is logged as a normal
500 completion line; the traceback is logged by RecoveryMiddleware.

=============================================================================
"""

from .base import (
    Middleware,
    MiddlewarePipeline,
    FunctionMiddleware,
    NextHandler,
    compose,
    function_middleware,
)
from .logging import LoggingMiddleware, RequestLog
from .recovery import RecoveryMiddleware

__all__ = [
    # Base classes
    "Middleware",
    "MiddlewarePipeline",
    "FunctionMiddleware",
    "NextHandler",
    "compose",
    "function_middleware",

    # Built-in middleware
    "LoggingMiddleware",
    "RequestLog",
    "RecoveryMiddleware",
]
