"""
=============================================================================
RECOVERY MIDDLEWARE
=============================================================================

Converts unexpected handler faults into a generic 500 response.

    handler raises KeyError("id")
            │
            ▼
    RecoveryMiddleware
        logger.exception(...)     ← full traceback goes to the log
        return 500 {"error": "Internal Server Error"}
            │                     ← nothing about KeyError reaches the client
            ▼
    outer middleware sees an ordinary 500 response

This is the ONLY place faults become responses. HTTPErrors never get here
as exceptions (the router renders them), so everything caught here is a
genuine bug or an unexpected failure.

Only Exception subclasses are caught. KeyboardInterrupt and SystemExit are
process-level signals and keep propagating.

Without this middleware a fault escapes HTTPServer.dispatch(); the
connection loop then logs it and closes the connection with no response.

=============================================================================
"""

import logging

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, internal_error


logger = logging.getLogger(__name__)


class RecoveryMiddleware(Middleware):
    """
    Catch faults from the rest of the chain and answer 500.

    Args:
        message: Body message for the 500 response. Keep it generic.
    """

    def __init__(self, message: str = "Internal Server Error"):
        self.message = message

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        try:
            return next(request)
        except Exception as e:
            logger.exception(
                f"Recovered from {type(e).__name__} in {request.method} {request.path}"
            )
            return internal_error(self.message)
