"""
=============================================================================
HTTP ERROR MODEL
=============================================================================

HTTPError is how handler code signals an *expected* HTTP-level failure
("bad input", "not allowed", ...) without building a response itself.

=============================================================================
THREE KINDS OF FAILURE
=============================================================================

    ┌──────────────────┬──────────────────────────┬─────────────────────────┐
    │ Kind             │ Produced by              │ Becomes                 │
    ├──────────────────┼──────────────────────────┼─────────────────────────┤
    │ Routing error    │ Router (no method/path)  │ 405 / 404 response      │
    │ HTTPError        │ Handler returns or raises│ response with its code  │
    │ Runtime fault    │ Any other exception      │ 500 (RecoveryMiddleware)│
    └──────────────────┴──────────────────────────┴─────────────────────────┘

Routing errors and HTTPErrors are resolved to responses inside the router,
so middleware only ever sees them as ordinary responses on the way out.
Only genuine faults travel up the stack as exceptions.

=============================================================================
USAGE
=============================================================================

A handler can return the error as a value:

    def get_user(request):
        if not request.get_query("id"):
            return HTTPError(400, "bad input")
        ...

or raise it from deep inside helper code:

    def load_user(user_id):
        if user_id not in USERS:
            raise HTTPError(404, f"user {user_id} not found")

Both render the same way.

=============================================================================
"""

from typing import Dict, Optional

from .response import HTTPResponse, error_response


class HTTPError(Exception):
    """
    An HTTP status code plus a message.

    The code is NOT validated: HTTPError(700, "odd") is accepted and renders
    a response with status 700. Keeping codes in 100-599 is the caller's
    responsibility.

    Args:
        code: HTTP status code for the response.
        message: Human-readable message, embedded in the response body.
        headers: Extra response headers (e.g. Allow for a 405).
    """

    def __init__(self, code: int, message: str, headers: Optional[Dict[str, str]] = None):
        super().__init__(code, message)
        self.code = code
        self.message = message
        self.headers = dict(headers or {})

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    def __repr__(self) -> str:
        return f"HTTPError(code={self.code!r}, message={self.message!r})"

    def to_response(self) -> HTTPResponse:
        """Render as a response with status == code and the message in the body."""
        return error_response(self.code, self.message, self.headers)
