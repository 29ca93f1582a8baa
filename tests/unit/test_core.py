"""
Unit tests for the transport layer: Connection and ThreadPool.
"""

import socket
import threading
import time

import pytest

from microserve.core import Connection, ConnectionState, ThreadPool
from microserve.http.request import HTTPParseError


@pytest.fixture
def socket_pair():
    """Connected (server side, client side) sockets."""
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    for s in (server_side, client_side):
        try:
            s.close()
        except OSError:
            pass


class TestConnection:
    """Tests for Connection."""

    def test_read_request_with_body(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=2.0)

        client_side.sendall(b"POST /x HTTP/1.1\r\nContent-Length: 5\r\n\r\nhel")
        client_side.sendall(b"lo")

        data = conn.read_request()

        assert data == b"POST /x HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello"
        assert conn.state == ConnectionState.READING

    def test_client_closed_early(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=2.0)

        client_side.sendall(b"GET / HTT")
        client_side.close()

        assert conn.read_request() is None

    def test_timeout(self, socket_pair):
        server_side, _ = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=0.2)

        with pytest.raises(TimeoutError):
            conn.read_request()

    def test_too_large(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(
            socket=server_side, address=("127.0.0.1", 1),
            timeout=2.0, max_request_size=64,
        )

        client_side.sendall(b"GET / HTTP/1.1\r\nX-Pad: " + b"a" * 200 + b"\r\n\r\n")

        with pytest.raises(HTTPParseError) as exc_info:
            conn.read_request()
        assert exc_info.value.status_code == 413

    def test_send_and_close(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.settimeout(2.0)

        with Connection(socket=server_side, address=("127.0.0.1", 1)) as conn:
            assert conn.send_response(b"HTTP/1.1 200 OK\r\n\r\n")

        assert conn.state == ConnectionState.CLOSED
        assert client_side.recv(100) == b"HTTP/1.1 200 OK\r\n\r\n"
        assert client_side.recv(100) == b""

    def test_close_idempotent(self, socket_pair):
        server_side, _ = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 1))

        conn.close()
        conn.close()

        assert conn.state == ConnectionState.CLOSED


class TestThreadPool:
    """Tests for ThreadPool."""

    def test_runs_tasks(self):
        pool = ThreadPool(min_workers=2, max_workers=2)
        pool.start()
        done = threading.Event()

        try:
            assert pool.submit(done.set)
            assert done.wait(timeout=2.0)
        finally:
            pool.shutdown()

    def test_submit_before_start(self):
        with pytest.raises(RuntimeError):
            ThreadPool().submit(lambda: None)

    def test_failing_task_does_not_kill_worker(self):
        pool = ThreadPool(min_workers=1, max_workers=1)
        pool.start()
        done = threading.Event()

        def fail():
            raise ValueError("task broke")

        try:
            pool.submit(fail)
            pool.submit(done.set)
            assert done.wait(timeout=2.0)
            assert pool.stats["tasks"]["failed"] == 1
        finally:
            pool.shutdown()

    def test_full_queue_rejects(self):
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=1)
        pool.start()
        release = threading.Event()
        started = threading.Event()

        def block():
            started.set()
            release.wait(timeout=5.0)

        try:
            assert pool.submit(block)
            assert started.wait(timeout=2.0)
            assert pool.submit(lambda: None)       # fills the queue
            assert pool.submit(lambda: None) is False
        finally:
            release.set()
            pool.shutdown()

    def test_scales_up_when_busy(self):
        pool = ThreadPool(min_workers=1, max_workers=3, queue_size=10)
        pool.start()
        release = threading.Event()
        started = threading.Event()

        def block():
            started.set()
            release.wait(timeout=5.0)

        try:
            pool.submit(block)
            assert started.wait(timeout=2.0)
            pool.submit(block)

            deadline = time.time() + 2.0
            while pool.stats["workers"]["total"] < 2 and time.time() < deadline:
                time.sleep(0.01)

            assert pool.stats["workers"]["total"] == 2
        finally:
            release.set()
            pool.shutdown()
