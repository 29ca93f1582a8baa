"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Callable, Generator, List
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from microserve import HTTPServer, ServerConfig, HTTPError, create_app
from microserve.http import HTTPRequest, HTTPResponse, ok


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /user?verbose=1 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/plain\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /user HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
        + body
    )


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    )


class RunningServer:
    """Runs an HTTPServer in a background thread for socket-level tests."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.ready.wait(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw bytes on a fresh connection and read until close."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=timeout) as sock:
            sock.sendall(raw)
            chunks: List[bytes] = []
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)

    def get(self, path: str, method: str = "GET") -> bytes:
        return self.request(
            f"{method} {path} HTTP/1.1\r\nHost: localhost\r\n\r\n".encode()
        )


@pytest.fixture
def start_server() -> Generator[Callable[[HTTPServer], RunningServer], None, None]:
    """Start any HTTPServer in the background; stopped after the test."""
    started: List[RunningServer] = []

    def start(server: HTTPServer) -> RunningServer:
        running = RunningServer(server)
        running.start()
        started.append(running)
        return running

    yield start

    for running in started:
        running.stop()


@pytest.fixture
def running_server(config: ServerConfig, start_server) -> RunningServer:
    """Server with logging + recovery middleware and a few routes."""
    server = create_app(config)

    @server.get("/user")
    def get_user(request: HTTPRequest) -> HTTPResponse:
        return ok("User information")

    @server.get("/err")
    def err(request: HTTPRequest):
        return HTTPError(400, "bad input")

    @server.get("/boom")
    def boom(request: HTTPRequest) -> HTTPResponse:
        raise RuntimeError("secret detail")

    @server.get("/str")
    def str_body(request: HTTPRequest) -> HTTPResponse:
        return HTTPResponse(status=200, body="text")

    @server.post("/echo")
    def echo(request: HTTPRequest) -> HTTPResponse:
        return ok({"received": request.json})

    return start_server(server)
