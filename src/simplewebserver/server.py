"""
=============================================================================
EMBEDDABLE WEB SERVER
=============================================================================

The object a host program creates, configures and starts:

    server = WebServer()
    server.add_binding_address("http://localhost:9999/")
    server.root_path = "./wwwroot"
    server.action_handler = on_action      # optional

    server.start()                         # returns immediately
    ...
    server.stop()

Everything runs on background threads. start() and stop() never block on
client traffic; the host keeps its own main loop.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌──────────────────────────────────────────────────────────────────────┐
    │                            WebServer                                 │
    │                                                                      │
    │   AddressRegistry ──(start)──► Endpoints (listening sockets)        │
    │                                      │                               │
    │                                      ▼                               │
    │                               ListenLoop thread                      │
    │                                      │ accept()                      │
    │                                      ▼                               │
    │                      ConnectionWorker threads ◄──► WorkerSet         │
    │                                      │                               │
    │                   ┌──────────────────┼──────────────────┐            │
    │                   ▼                  ▼                  ▼            │
    │             default document    static files     action handler     │
    │                                                                      │
    └──────────────────────────────────────────────────────────────────────┘

=============================================================================
LIFECYCLE
=============================================================================

    ┌─────────┐   start()   ┌─────────┐
    │ STOPPED │ ──────────► │ RUNNING │
    │         │ ◄────────── │         │
    └─────────┘   stop()    └─────────┘

    While RUNNING the binding addresses and the root path are frozen:
    changing them is silently ignored (a WARNING is logged).

    close() stops the server once and marks it disposed; it is also what
    the context manager calls on exit.

=============================================================================
"""

import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from .config import ServerConfig
from .core.addresses import AddressRegistry
from .core.connection import Connection
from .core.listener import Endpoint, ListenLoop, group_endpoints
from .core.worker import ConnectionWorker, WorkerSet
from .handlers import actions, writer
from .http.context import RequestContext
from .http.request import HTTPRequest
from .http.response import ResponseStream


logger = logging.getLogger(__name__)


class WebServerError(Exception):
    """Base class for errors raised by the web server."""


class ListenerBindError(WebServerError):
    """
    start() could not parse or bind one of the binding addresses.

    The server stays stopped and nothing remains bound.
    """


class ServerState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"


ActionHandler = Callable[["WebServer", RequestContext], None]


class WebServer:
    """
    Multi-threaded web server for embedding in a host program.

    =========================================================================
    REQUEST HANDLING
    =========================================================================

        GET /                   → <root>/index.html
        GET /css/site.css       → <root>/css/site.css (if the extension is
                                  in the MIME table)
        GET /report.action?x=1  → action_handler(server, context), or the
                                  default diagnostic page
        anything else           → "URL not found: <url>"

    =========================================================================
    THREAD SAFETY
    =========================================================================

    start(), stop() and close() may be called from any thread, including
    from inside an action handler. They serialize on one lifecycle lock.

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._registry = AddressRegistry()
        self._root_path: Optional[str] = None
        self._action_handler: Optional[ActionHandler] = None

        self._state = ServerState.STOPPED
        self._lifecycle_lock = threading.RLock()
        self._disposed = False

        self._endpoints: List[Endpoint] = []
        self._listen_loop: Optional[ListenLoop] = None
        self._workers = WorkerSet()

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == ServerState.RUNNING

    @property
    def root_path(self) -> Optional[str]:
        """Directory served for the default document and static files (None until set)."""
        return self._root_path

    @root_path.setter
    def root_path(self, value: Optional[Union[str, Path]]) -> None:
        if self.is_running:
            logger.warning(f"Ignoring root path change to {str(value)!r} while running")
            return
        self._root_path = None if value is None else str(value)

    @property
    def action_handler(self) -> Optional[ActionHandler]:
        return self._action_handler

    @action_handler.setter
    def action_handler(self, handler: Optional[ActionHandler]) -> None:
        self._action_handler = handler

    @property
    def binding_addresses(self) -> tuple:
        return self._registry.addresses

    @property
    def bound_addresses(self) -> List[Tuple[str, int]]:
        """
        Actual (host, port) of every listening socket while running.

        Useful with port 0, where the OS picks the port.
        """
        return [endpoint.bound_address for endpoint in self._endpoints if endpoint.sock is not None]

    @property
    def active_workers(self) -> int:
        return len(self._workers)

    # =========================================================================
    # BINDING ADDRESSES
    # =========================================================================
    # All four are silent no-ops while the server is running.

    def add_binding_address(self, address: str) -> None:
        self._registry.add(address)

    def remove_binding_address(self, address: str) -> None:
        self._registry.remove(address)

    def contains_binding_address(self, address: str) -> bool:
        return self._registry.contains(address)

    def clear_binding_addresses(self) -> None:
        self._registry.clear()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        """
        Start listening on every binding address.

        Does nothing if the server is already running or has no binding
        addresses.

        Raises:
            ListenerBindError: If an address is malformed or cannot be bound.
                               Nothing stays bound and the server stays
                               stopped.
        """
        with self._lifecycle_lock:
            if self.is_running:
                return

            if len(self._registry) == 0:
                logger.warning("No binding addresses registered, not starting")
                return

            endpoints = self._open_endpoints()

            self._registry.lock()
            self._endpoints = endpoints
            self._state = ServerState.RUNNING

            # Workers left over from an abandoned stop
            self._workers.cancel_all(self.config.stop_timeout)
            self._workers.open()

            self._listen_loop = ListenLoop(endpoints, self._on_connection, self.config)
            self._listen_loop.start()

            logger.info(f"Server started on {', '.join(self._registry.addresses)}")

    def stop(self) -> None:
        """
        Stop the server.

        Stops accepting, cancels in-flight workers (their responses may be
        cut off), closes the listening sockets and unlocks the binding
        addresses. Safe to call when already stopped.
        """
        with self._lifecycle_lock:
            if not self.is_running:
                return

            logger.info("Stopping server...")
            self._state = ServerState.STOPPED

            if self._listen_loop is not None:
                self._listen_loop.stop(self.config.stop_timeout)
                self._listen_loop = None

            self._workers.cancel_all(self.config.stop_timeout)

            for endpoint in self._endpoints:
                endpoint.close()
            self._endpoints = []

            self._registry.unlock()
            logger.info("Server stopped")

    def close(self) -> None:
        """Stop the server. Only the first call has an effect."""
        with self._lifecycle_lock:
            if self._disposed:
                return
            self._disposed = True
            self.stop()

    def __enter__(self) -> "WebServer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _open_endpoints(self) -> List[Endpoint]:
        try:
            endpoints = group_endpoints(self._registry.parse_all())
        except ValueError as e:
            raise ListenerBindError(str(e)) from e

        opened: List[Endpoint] = []
        for endpoint in endpoints:
            try:
                endpoint.open(self.config.backlog)
            except OSError as e:
                for bound in opened:
                    bound.close()
                logger.error(f"Failed to bind {endpoint.label}: {e}")
                raise ListenerBindError(f"Cannot bind {endpoint.label}: {e}") from e
            opened.append(endpoint)

        return opened

    def _on_connection(self, connection: Connection, endpoint: Endpoint) -> None:
        """Called on the listen loop thread for every accepted connection."""
        worker = ConnectionWorker(self, connection, endpoint, self._workers)

        if not self.is_running or not self._workers.add(worker):
            logger.debug(f"[{connection.id}] Server stopping, dropping connection")
            connection.abort()
            connection.close()
            return

        worker.start()

    # =========================================================================
    # HELPERS FOR ACTION HANDLERS
    # =========================================================================

    def write_file(self, response: ResponseStream, file_path: Union[str, Path]) -> None:
        writer.write_file(response, file_path, self.config.chunk_size)

    def write_text(self, response: ResponseStream, message: str, with_header: bool = False) -> None:
        writer.write_text(response, message, with_header)

    def write_default_action(self, context: RequestContext) -> None:
        actions.write_default_action(context)

    def get_post_data(self, request: HTTPRequest) -> Optional[str]:
        return actions.get_post_data(request)

    def get_query_string(self, request: HTTPRequest) -> Optional[str]:
        return actions.get_query_string(request)

    def __repr__(self) -> str:
        return f"WebServer(state={self._state.value}, addresses={list(self._registry.addresses)})"
