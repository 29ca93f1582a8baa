"""
=============================================================================
HTTP RESPONSE BUILDING
=============================================================================

HTTPResponse is what handlers and middleware pass around; to_bytes() turns
it into the wire format the Connection sends.

=============================================================================
RESPONSE ANATOMY
=============================================================================

    HTTP/1.1 404 Not Found\r\n                       ← status line
    Content-Type: application/json; charset=utf-8\r\n
    Content-Length: 36\r\n                           ← added by to_bytes()
    Date: Sat, 17 Oct 2026 12:00:00 GMT\r\n          ← added by to_bytes()
    Server: microserve/1.0\r\n                       ← added by to_bytes()
    Connection: close\r\n                            ← added by the server
    \r\n
    {"error": "No route matches GET /b"}

=============================================================================
ERROR BODIES
=============================================================================

Every error the framework produces itself (404, 405, 500, 503, parse
errors) has the same JSON shape, built by error_response():

    {"error": "<message>"}

so the body is never empty and always embeds the message.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Union
import json

from .status_codes import HTTPStatus, reason_phrase


@dataclass
class HTTPResponse:
    """
    An HTTP response to be sent to the client.

    `status` is a plain int so that any code an HTTPError carries can be
    represented; HTTPStatus members work too since they are ints.
    """

    status: int = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    def __post_init__(self):
        if isinstance(self.body, str):
            self.body = self.body.encode("utf-8")
        elif not isinstance(self.body, bytes):
            raise TypeError(
                f"Response body must be str or bytes, got {type(self.body).__name__}"
            )

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 200 OK"."""
        return f"{self.version} {int(self.status)} {reason_phrase(self.status)}"

    @property
    def text(self) -> str:
        """Body decoded as UTF-8."""
        return self.body.decode("utf-8", errors="replace")

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = "microserve/1.0") -> bytes:
        """
        Serialize the response for socket.sendall().

        Content-Length, Date and Server are filled in unless the response
        already carries them. The headers dict itself is left untouched.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))

        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .json({"status": "healthy"})
            .header("Cache-Control", "no-store")
            .build())

    Every method except build() returns self.
    """

    def __init__(self):
        self._status: int = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: int) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Raw body; strings are encoded as UTF-8."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        """
        JSON body.

        ensure_ascii=False keeps non-ASCII characters readable instead of
        escaping them.
        """
        indent = 2 if pretty else None
        self._body = json.dumps(data, indent=indent, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = "application/json; charset=utf-8"
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an RFC 7231 HTTP-date.

    Example: "Sat, 17 Oct 2026 12:00:00 GMT". Always GMT; locale
    independent (strftime's %a/%b would follow the process locale).
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok(body: Union[str, bytes, dict, list] = "", content_type: Optional[str] = None) -> HTTPResponse:
    """
    200 OK.

    dict/list bodies are sent as JSON, str as text/plain, bytes as-is.
    """
    builder = ResponseBuilder().status(HTTPStatus.OK)

    if isinstance(body, (dict, list)):
        builder.json(body)
    elif isinstance(body, str):
        builder.text(body, content_type or "text/plain; charset=utf-8")
    else:
        builder.body(body)
        if content_type:
            builder.header("Content-Type", content_type)

    return builder.build()


def error_response(
    status: int,
    message: str,
    headers: Optional[Dict[str, str]] = None
) -> HTTPResponse:
    """
    JSON error response: status `status`, body {"error": message}.

    Shared by HTTPError rendering, the recovery middleware and the
    connection loop so all framework errors look the same.
    """
    return (ResponseBuilder()
        .status(status)
        .headers(headers or {})
        .json({"error": message})
        .build())


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """500 with a generic message. Never put fault details here."""
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)


def text(body: str, status: int = HTTPStatus.OK) -> HTTPResponse:
    """Plain-text response with an arbitrary status."""
    return ResponseBuilder().status(status).text(body).build()


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    return error_response(HTTPStatus.BAD_REQUEST, message)


def not_found(message: str = "Not Found") -> HTTPResponse:
    return error_response(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(allowed: List[str], message: str = "Method Not Allowed") -> HTTPResponse:
    """405 with an Allow header listing `allowed`; no header when it is empty."""
    headers = {"Allow": ", ".join(allowed)} if allowed else None
    return error_response(HTTPStatus.METHOD_NOT_ALLOWED, message, headers=headers)
