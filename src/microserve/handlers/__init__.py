"""
=============================================================================
HANDLERS
=============================================================================

Request handlers shipped with the server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    REQUEST → HANDLER → RESPONSE                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    Request                 Handler                 Response         │
    │   ┌─────────┐           ┌─────────┐           ┌─────────┐          │
    │   │ GET     │           │         │           │ 200 OK  │          │
    │   │ /user   │ ────────▶ │ Logic   │ ────────▶ │ "User   │          │
    │   │         │           │         │           │  info…" │          │
    │   └─────────┘           └─────────┘           └─────────┘          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A handler is any callable taking an HTTPRequest and returning an
HTTPResponse, or an HTTPError for an expected failure. Bound methods work,
which is how both handlers here are registered.

HealthHandler:  GET /health, GET /health/live
UserHandler:    GET /user

=============================================================================
"""

from .health import HealthHandler, HealthStatus, HealthCheck
from .user import UserHandler, UserService

__all__ = [
    "HealthHandler",
    "HealthStatus",
    "HealthCheck",
    "UserHandler",
    "UserService",
]
