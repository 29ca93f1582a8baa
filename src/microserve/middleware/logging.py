"""
=============================================================================
LOGGING MIDDLEWARE
=============================================================================

Access logging for every request that passes through the chain.

=============================================================================
WHAT GETS LOGGED
=============================================================================

Two lines per request on the "microserve.access" logger:

    → GET /user                                    ← before next()
    ← GET /user 200 16B 0.41ms                      ← after next()

or, with log_format="json":

    {"event": "request", "method": "GET", "path": "/user"}
    {"event": "response", "method": "GET", "path": "/user",
     "status": 200, "content_length": 16, "duration_ms": 0.41}

If the downstream chain raises, a "request failed" line is logged at ERROR
and the exception is re-raised untouched.

=============================================================================
LOGGING MUST NEVER BREAK A REQUEST
=============================================================================

Every emission goes through _emit(), which swallows any exception raised
while formatting or writing the log line. A broken handler, an unserializable
value or a full disk therefore cost a log line, not a response.

The response object is never modified.

=============================================================================
"""

import json
import logging
import time
from dataclasses import asdict, dataclass
from typing import Callable, Iterable, Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


# Namespaced so deployments can route access logs separately:
#   logging.getLogger("microserve.access").addHandler(file_handler)
logger = logging.getLogger("microserve.access")


@dataclass
class RequestLog:
    """Structured completion record for one request."""

    method: str
    path: str
    status: int
    content_length: int
    duration_ms: float

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = int(self.status)
        data["duration_ms"] = round(self.duration_ms, 2)
        return {"event": "response", **data}

    def to_text(self) -> str:
        return (
            f"← {self.method} {self.path} {int(self.status)} "
            f"{self.content_length}B {self.duration_ms:.2f}ms"
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Place it FIRST so it sees every request, including ones later layers
    short-circuit:

        server.use(LoggingMiddleware())
        server.use(RecoveryMiddleware())

    Args:
        log_format: "text" (default) or "json".
        log_level: Level for access lines. Default INFO.
        skip_paths: Exact paths not to log (e.g. ["/health"]).
    """

    def __init__(
        self,
        log_format: str = "text",
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        if log_format not in ("text", "json"):
            raise ValueError(f"Unknown log_format: {log_format!r}")

        self.log_format = log_format
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        if request.path in self.skip_paths:
            return next(request)

        self._emit(lambda: self._format_entry(request))

        start_time = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self._emit(
                lambda: (
                    f"Request failed: {request.method} {request.path} "
                    f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
                ),
                level=logging.ERROR,
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        self._emit(lambda: self._format_completion(RequestLog(
            method=request.method,
            path=request.path,
            status=response.status,
            content_length=len(response.body),
            duration_ms=duration_ms,
        )))

        return response

    def _format_entry(self, request: HTTPRequest) -> str:
        if self.log_format == "json":
            return json.dumps({
                "event": "request",
                "method": request.method,
                "path": request.path,
            })
        return f"→ {request.method} {request.path}"

    def _format_completion(self, entry: RequestLog) -> str:
        if self.log_format == "json":
            return json.dumps(entry.to_dict())
        return entry.to_text()

    def _emit(self, build_message: Callable[[], str], level: Optional[int] = None) -> None:
        """Format and log one line; never raises."""
        try:
            logger.log(self.log_level if level is None else level, build_message())
        except Exception:
            # A failed log line must not abort the request.
            pass
