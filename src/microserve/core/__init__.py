"""
Transport layer: listening socket, per-client connections, worker threads.

    SocketServer  accept loop, hands each Connection to a callback
    Connection    reads one request, sends one response, closes
    ThreadPool    runs connection callbacks on worker threads
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer
from .thread_pool import ThreadPool, Task, Worker, WorkerState

__all__ = [
    "Connection",
    "ConnectionState",
    "SocketServer",
    "ThreadPool",
    "Task",
    "Worker",
    "WorkerState",
]
