"""
=============================================================================
HTTP LAYER
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py       raw bytes → HTTPRequest (RequestParser)            │
    │ response.py      HTTPResponse, ResponseBuilder, error_response()    │
    │ errors.py        HTTPError: expected failures signalled by handlers │
    │ router.py        exact-match (method, path) → handler dispatch      │
    │ status_codes.py  HTTPStatus enum and reason phrases                 │
    └─────────────────────────────────────────────────────────────────────┘

Import order matters: errors depends on response, router on errors.

=============================================================================
"""

from .status_codes import HTTPStatus, reason_phrase
from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    error_response,
    internal_error,
    text,
    bad_request,
    not_found,
    method_not_allowed,
)
from .errors import HTTPError
from .router import Router, Route, RouteOutcome, Handler

__all__ = [
    # Status codes
    "HTTPStatus",
    "reason_phrase",

    # Requests
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Responses
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "error_response",
    "internal_error",
    "text",
    "bad_request",
    "not_found",
    "method_not_allowed",

    # Errors
    "HTTPError",

    # Routing
    "Router",
    "Route",
    "RouteOutcome",
    "Handler",
]
