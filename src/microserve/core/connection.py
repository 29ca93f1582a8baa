"""
=============================================================================
CONNECTION HANDLING
=============================================================================

A Connection wraps one accepted client socket. The server reads exactly one
request from it, sends exactly one response (or none, see below) and closes
it.

=============================================================================
CONNECTION LIFECYCLE
=============================================================================

    ┌──────────┐  read_request()  ┌──────────┐  send_response()  ┌─────────┐
    │   NEW    │ ───────────────► │ READING  │ ────────────────► │ WRITING │
    └──────────┘                  └──────────┘                   └────┬────┘
                                                                      │
                                        close()                       │
                                  ┌──────────┐                        │
                                  │  CLOSED  │ ◄──────────────────────┘
                                  └──────────┘

A connection may also go straight from READING to CLOSED: when the client
hangs up, when parsing fails after the error response, or when an
unrecovered handler fault means there is nothing to send.

There is no keep-alive: every response carries "Connection: close".

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..http.request import HTTPParseError
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Where a connection is in its (single-request) life."""

    NEW = "new"
    READING = "reading"
    WRITING = "writing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    One accepted client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used in log lines.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    # Copied from ServerConfig by SocketServer
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    max_request_size: int = 10 * 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request from the socket.

        Buffers until the blank line that ends the headers, then reads
        Content-Length more bytes of body.

            ┌──────────────────────┐
            │ while no \\r\\n\\r\\n:   │  ← headers incomplete
            │   recv() → buffer    │
            └──────────┬───────────┘
                       ▼
            ┌──────────────────────┐
            │ Content-Length → n   │
            └──────────┬───────────┘
                       ▼
            ┌──────────────────────┐
            │ while body < n:      │  ← body incomplete
            │   recv() → buffer    │
            └──────────┬───────────┘
                       ▼
                  return bytes

        If the client closes mid-body, whatever arrived is returned and the
        parser reports the short body.

        Returns:
            Request bytes, or None if the client closed before sending
            a full header block.

        Raises:
            TimeoutError: If the client stalls past the socket timeout.
            HTTPParseError: (413) If the request exceeds max_request_size.
        """
        self.state = ConnectionState.READING

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._append(chunk)

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break
                self._append(chunk)

            request_data = self._buffer[:body_start + content_length]
            self._buffer = b""
            return request_data

        except socket.timeout:
            raise TimeoutError("Request read timeout")

    def _append(self, chunk: bytes) -> None:
        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            raise HTTPParseError(
                f"Request exceeds {self.max_request_size} bytes",
                HTTPStatus.PAYLOAD_TOO_LARGE,
            )

    def _recv(self) -> bytes:
        """recv() that reports an abrupt disconnect as end of stream."""
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def _parse_content_length(self, headers: bytes) -> int:
        """
        Content-Length from the raw header block, 0 if absent or invalid.

        Only used to know how much to read; RequestParser validates the
        header properly afterwards.
        """
        header_str = headers.decode("latin-1").lower()
        for line in header_str.split("\r\n"):
            if line.startswith("content-length:"):
                try:
                    return max(0, int(line.split(":", 1)[1].strip()))
                except ValueError:
                    return 0
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send a serialized response.

        Returns:
            True if every byte was sent, False if the client went away.
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self) -> None:
        """
        Close the connection. Safe to call more than once.

        shutdown(SHUT_WR) first so the client sees a clean end of stream
        after the response.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Client already gone

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
