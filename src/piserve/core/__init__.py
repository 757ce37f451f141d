"""
Networking and concurrency glue around the dispatcher.

    socket_server.py  listening socket + accept loop
    connection.py     one client socket, single read / single response
    thread_pool.py    worker threads that run dispatches
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer
from .thread_pool import ThreadPool

__all__ = ["Connection", "ConnectionState", "SocketServer", "ThreadPool"]
