"""
=============================================================================
LISTENING SOCKETS AND THE ACCEPT LOOP
=============================================================================

This module is the "ears" of the server: it owns the listening sockets and
the single thread that accepts connections on them.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create a socket file descriptor
    2. bind()      Associate it with host:port
    3. listen()    OS starts queueing incoming connections
    4. accept()    Take one queued connection → NEW socket for that client
    5. close()     Release the listening socket

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── one per host:port
                    └───────────┬───────────┘
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Worker 1  │         │ Worker 2  │         │ Worker 3  │
    │ (thread)  │         │ (thread)  │         │ (thread)  │
    └───────────┘         └───────────┘         └───────────┘

=============================================================================
WHY A SELECTOR?
=============================================================================

There may be several listening sockets (one per host:port), but only one
accept thread. A plain blocking accept() would also be impossible to
interrupt cleanly when the server stops.

So the listening sockets are non-blocking and the loop waits on all of them
with selectors.select(timeout=...):

    while running:
        ready = select(timeout=0.2)   ← returns early when a client connects
        for each ready socket:
            accept()                  ← never blocks, the socket is ready
            hand off to a worker
        (re-check running)

stop() clears the running flag; within one poll interval the loop notices
and exits, and only then are the sockets closed.

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR:
    Rebind immediately after a restart instead of waiting out TIME_WAIT.
    SO_REUSEPORT is NOT set: a second server on the same port fails to
    start instead of sharing it.

TCP_NODELAY:
    Disable Nagle's algorithm; small responses go out immediately.

=============================================================================
"""

import selectors
import socket
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from ..config import ServerConfig
from .addresses import BindingAddress
from .connection import Connection


logger = logging.getLogger(__name__)


@dataclass
class Endpoint:
    """
    One listening socket and the binding addresses it serves.

    Attributes:
        host: Host passed to bind().
        port: Port passed to bind() (0 = OS picks).
        addresses: Binding addresses sharing this host:port.
        sock: The listening socket once open() succeeded.
    """

    host: str
    port: int
    addresses: List[BindingAddress] = field(default_factory=list)
    sock: Optional[socket.socket] = field(default=None, repr=False)

    @property
    def scheme(self) -> str:
        return self.addresses[0].scheme if self.addresses else "http"

    @property
    def label(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def bound_address(self) -> Tuple[str, int]:
        """Actual (host, port) after binding, e.g. the OS-picked port."""
        if self.sock is None:
            return (self.host, self.port)
        name = self.sock.getsockname()
        return (name[0], name[1])

    def accepts(self, request_path: str) -> bool:
        """Check whether any binding address prefix covers the path."""
        return any(address.matches(request_path) for address in self.addresses)

    def open(self, backlog: int) -> None:
        """
        Create, configure, bind and listen.

        Raises:
            OSError: If the address cannot be bound (in use, permission...).
        """
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)

        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            sock.bind((self.host, self.port))
            sock.listen(backlog)
            sock.setblocking(False)
        except OSError:
            sock.close()
            raise

        self.sock = sock
        logger.info(f"Listening on {self.bound_address[0]}:{self.bound_address[1]}")

    def close(self) -> None:
        if self.sock is None:
            return
        try:
            self.sock.close()
        except OSError:
            pass  # Already closed
        self.sock = None


def group_endpoints(addresses: List[BindingAddress]) -> List[Endpoint]:
    """
    Group binding addresses by the host:port they bind to.

    Order follows the first appearance of each host:port.
    """
    endpoints: dict = {}
    for address in addresses:
        key = (address.bind_host, address.port)
        if key not in endpoints:
            endpoints[key] = Endpoint(host=address.bind_host, port=address.port)
        endpoints[key].addresses.append(address)
    return list(endpoints.values())


ConnectionHandler = Callable[[Connection, Endpoint], None]


class ListenLoop:
    """
    The accept thread.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ListenLoop Internals                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start()           register sockets, spawn "ListenLoop" thread    │
    │        │                                                             │
    │        └──► _run()                                                   │
    │                 │                                                    │
    │                 └──► while running:                                  │
    │                         select(timeout)                              │
    │                         _accept(endpoint)                            │
    │                             └── Connection(...)                      │
    │                             └── handler(conn, endpoint)              │
    │                                                                      │
    │    stop()            clear running flag, join the thread             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    The loop never closes the listening sockets; their owner does, after
    stop() returned.
    """

    def __init__(
        self,
        endpoints: List[Endpoint],
        connection_handler: ConnectionHandler,
        config: ServerConfig,
    ):
        self._endpoints = endpoints
        self._handler = connection_handler
        self._config = config

        self._running = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._selector: Optional[selectors.BaseSelector] = None

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        selector = selectors.DefaultSelector()
        for endpoint in self._endpoints:
            selector.register(endpoint.sock, selectors.EVENT_READ, data=endpoint)

        self._selector = selector
        self._running.set()

        self._thread = threading.Thread(target=self._run, name="ListenLoop", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> bool:
        """
        Ask the loop to exit and wait for it.

        Returns:
            True if the thread is gone, False if it outlived the timeout.
        """
        self._running.clear()

        thread = self._thread
        if thread is None:
            return True

        if thread is not threading.current_thread():
            thread.join(timeout)

        if thread.is_alive():
            logger.warning("Listen loop did not exit in time, abandoning it")
            return False

        self._thread = None
        return True

    def _run(self) -> None:
        selector = self._selector
        try:
            while self._running.is_set():
                try:
                    events = selector.select(timeout=self._config.accept_poll_interval)
                except OSError as e:
                    if self._running.is_set():
                        logger.error(f"Listener select failed: {e}")
                    break

                for key, _ in events:
                    if not self._running.is_set():
                        break
                    self._accept(key.data)
        finally:
            selector.close()
            logger.debug("Listen loop exited")

    def _accept(self, endpoint: Endpoint) -> None:
        try:
            client_socket, client_address = endpoint.sock.accept()
        except (BlockingIOError, InterruptedError):
            return  # Another wakeup consumed it, or a signal; select again
        except OSError as e:
            if self._running.is_set():
                logger.error(f"Accept error on {endpoint.label}: {e}")
            return

        logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

        conn = Connection(
            socket=client_socket,
            address=client_address,
            buffer_size=self._config.buffer_size,
            timeout=self._config.timeout,
            max_header_size=self._config.max_header_size,
        )

        try:
            self._handler(conn, endpoint)
        except Exception:
            logger.exception(f"[{conn.id}] Failed to hand off connection")
            conn.close()
