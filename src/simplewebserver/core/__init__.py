"""
=============================================================================
CORE - Sockets, Threads and Connection Lifecycle
=============================================================================

    addresses.py   BindingAddress, AddressRegistry
    connection.py  Connection: one accepted client socket
    listener.py    Endpoint (listening socket), ListenLoop (accept thread)
    worker.py      ConnectionWorker (thread per connection), WorkerSet

=============================================================================
"""

from .addresses import AddressRegistry, BindingAddress
from .connection import Connection, ConnectionState
from .listener import Endpoint, ListenLoop, group_endpoints
from .worker import ConnectionWorker, WorkerSet, WorkerState

__all__ = [
    "AddressRegistry",   # Binding address strings, frozen while running
    "BindingAddress",    # One parsed http://host:port/prefix/
    "Connection",        # Client socket wrapper
    "ConnectionState",
    "Endpoint",          # One listening socket and its prefixes
    "ListenLoop",        # The accept thread
    "group_endpoints",
    "ConnectionWorker",  # Serves one request on its own thread
    "WorkerSet",         # Live workers, cancelled together on stop
    "WorkerState",
]
