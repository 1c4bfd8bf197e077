"""
Networking and concurrency building blocks.

These know nothing about files or HTTP: they accept sockets, wrap them,
and run work on threads.
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, StreamIOError
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",     # Accept loop - hands out connections
    "Connection",       # One client socket - buffered line reads and writes
    "ConnectionState",  # Enum for connection lifecycle states
    "StreamIOError",    # Response bytes could not be delivered
    "ThreadPool",       # Runs one worker per connection, concurrently
]
