"""
=============================================================================
TRANSPORT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ socket_server.py   listening socket, address family, accept loop    │
    │ connection.py      one client: request framing, keep-alive, close   │
    │ thread_pool.py     bounded worker threads, one connection each      │
    └─────────────────────────────────────────────────────────────────────┘

    accept() ──► Connection ──► ThreadPool.submit() ──► worker thread
                                     │                    runs the server's
                                     └─ full → 503        keep-alive loop

Nothing here knows about files or handlers.

=============================================================================
"""

from .socket_server import SocketServer, resolve_bind_target
from .connection import Connection, ConnectionState, RequestTooLargeError
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "resolve_bind_target",
    "Connection",
    "ConnectionState",
    "RequestTooLargeError",
    "ThreadPool",
]
