"""
=============================================================================
HEALTH CHECK HANDLER
=============================================================================

GET /health answers whether this instance can serve traffic.

    200 {"status": "healthy",   "uptime_seconds": 12, ...}
    503 {"status": "unhealthy", "uptime_seconds": 12, "checks": {...}}

Registered checks run on every request, so keep them fast. A check that
raises counts as unhealthy; its exception text goes into the body.

=============================================================================
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder
from ..http.status_codes import HTTPStatus


@dataclass
class HealthStatus:
    """
    Result of one health check.

        def check_cache():
            latency = cache.ping()
            return HealthStatus(
                healthy=latency < 100,
                message="OK" if latency < 100 else "High latency",
                details={"latency_ms": latency},
            )
    """

    healthy: bool
    message: str = "OK"
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "status": "healthy" if self.healthy else "unhealthy",
            "message": self.message,
            **self.details,
        }


HealthCheck = Callable[[], HealthStatus]


class HealthHandler:
    """
    Health endpoint.

        health = HealthHandler(stats=lambda: server.stats)
        health.add_check("database", check_database)

        server.get("/health")(health.handle)
        server.get("/health/live")(health.liveness)

    Args:
        stats: Optional zero-argument callable whose dict result is added
               to the body under "server" (e.g. thread pool counts).
    """

    def __init__(self, stats: Optional[Callable[[], dict]] = None):
        self._checks: Dict[str, HealthCheck] = {}
        self._stats = stats
        self._start_time = time.time()

    def add_check(self, name: str, check: HealthCheck) -> "HealthHandler":
        """Register a named check. Returns self for chaining."""
        self._checks[name] = check
        return self

    @property
    def uptime(self) -> float:
        return time.time() - self._start_time

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """200 if every check passes, otherwise 503."""
        results = {}
        all_healthy = True

        for name, check in self._checks.items():
            try:
                status = check()
                results[name] = status.to_dict()
                if not status.healthy:
                    all_healthy = False
            except Exception as e:
                results[name] = {"status": "unhealthy", "error": str(e)}
                all_healthy = False

        body: Dict[str, Any] = {
            "status": "healthy" if all_healthy else "unhealthy",
            "uptime_seconds": int(self.uptime),
        }

        if results:
            body["checks"] = results

        if self._stats is not None:
            body["server"] = self._stats()

        return (ResponseBuilder()
            .status(HTTPStatus.OK if all_healthy else HTTPStatus.SERVICE_UNAVAILABLE)
            .json(body)
            .header("Cache-Control", "no-store")
            .build())

    def liveness(self, request: HTTPRequest) -> HTTPResponse:
        """Always 200 while the process can answer at all."""
        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .json({"status": "alive"})
            .header("Cache-Control", "no-store")
            .build())
