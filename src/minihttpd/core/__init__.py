"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking and concurrency plumbing.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  • Binds and listens; startup failure is fatal                       │
    │  • Runs the accept() loop                                            │
    │  • Starts one thread per admitted connection                         │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ acquire() before every dispatch
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                      CONCURRENCY LIMITER                             │
    │  • BoundedSemaphore sized by max_connections                         │
    │  • Tracks active / peak handler counts                               │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ one thread per connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │               CONNECTION + CONNECTION HANDLER                        │
    │  • Connection: read one request, write one response, close           │
    │  • ConnectionHandler: parse → form → resolve → build                 │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer, ServerStartupError
from .connection import Connection, ConnectionState
from .handler import ConnectionHandler, Exchange
from .limiter import ConcurrencyLimiter

__all__ = [
    "SocketServer",        # Accept loop + dispatch
    "ServerStartupError",  # Bind/listen failure
    "Connection",          # Client socket wrapper
    "ConnectionState",     # Connection lifecycle states
    "ConnectionHandler",   # Per-connection pipeline
    "Exchange",            # What happened on one connection
    "ConcurrencyLimiter",  # Admission ceiling
]
