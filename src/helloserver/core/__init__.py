"""
=============================================================================
CORE NETWORKING COMPONENTS
=============================================================================

The parts of the server that deal in sockets and threads, not HTTP:

    socket_server.py  Listening socket, accept loop
    connection.py     One client socket: buffered reads, writes, close
    thread_pool.py    Workers that process connections concurrently

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, RequestTooLarge
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "ThreadPool",
]
