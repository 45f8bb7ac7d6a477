"""
=============================================================================
CONNECTION WORKERS
=============================================================================

Every accepted connection gets its own thread running a ConnectionWorker.
There is no pool and no queue: the listen loop never waits for a worker.

    ListenLoop thread                 Worker threads
    ─────────────────                 ──────────────
    accept() ──► Connection ──► ConnectionWorker("Worker-a1b2c3d4").start()
    accept() ──► Connection ──► ConnectionWorker("Worker-e5f6a7b8").start()
    ...

=============================================================================
WORKER LIFECYCLE
=============================================================================

    STARTED ──► CLASSIFYING ──┬──► SERVING      (default document, static file)
                              ├──► DISPATCHING  (.action requests)
                              └──► REJECTING    (unknown URLs, bad requests)
                                        │
                                        ▼
                                     CLOSING ──► TERMINATED

A worker runs once. Whatever happens inside, the finally block closes the
response and the connection, writes the access log line and removes the
worker from its WorkerSet.

=============================================================================
CANCELLATION
=============================================================================

Threads cannot be killed, so stop() cancels cooperatively:

    1. set the worker's cancel event
    2. connection.abort() → shutdown(SHUT_RDWR) wakes a blocked recv/send
    3. join with a deadline; daemon threads still alive are abandoned

A response in flight at that moment is simply cut off.

=============================================================================
"""

import logging
import threading
import time
import traceback
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Set

from ..handlers.actions import write_default_action
from ..handlers.static import default_document_path, resolve_static_path
from ..handlers.writer import write_file, write_text
from ..http.classifier import ClassifiedRequest, RequestKind, classify
from ..http.context import RequestContext
from ..http.request import HTTPParseError, HTTPRequest, parse_request
from ..http.response import ResponseStream
from ..http.status_codes import HTTPStatus
from ..logs import log_request
from .connection import Connection
from .listener import Endpoint

if TYPE_CHECKING:
    from ..server import WebServer


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    STARTED = "started"
    CLASSIFYING = "classifying"
    SERVING = "serving"            # Writing the default document or a static file
    DISPATCHING = "dispatching"    # Running the action handler
    REJECTING = "rejecting"        # Answering a bad or unknown request
    CLOSING = "closing"
    TERMINATED = "terminated"


# ═══════════════════════════════════════════════════════════════════════════
# WORKER SET
# ═══════════════════════════════════════════════════════════════════════════


class WorkerSet:
    """
    Thread-safe set of live workers.

    Workers add themselves before their thread starts and discard
    themselves when they finish. Once cancel_all() has run, the set is
    closed and add() refuses new workers until open() is called again by
    the next start().
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._workers: Set["ConnectionWorker"] = set()
        self._open = True

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self._open

    def open(self) -> None:
        with self._lock:
            self._open = True

    def add(self, worker: "ConnectionWorker") -> bool:
        """
        Register a worker.

        Returns:
            False if the set is closed (the server is stopping).
        """
        with self._lock:
            if not self._open:
                return False
            self._workers.add(worker)
            return True

    def discard(self, worker: "ConnectionWorker") -> None:
        """Remove a worker. Missing workers are ignored."""
        with self._lock:
            self._workers.discard(worker)

    def snapshot(self) -> List["ConnectionWorker"]:
        with self._lock:
            return list(self._workers)

    def cancel_all(self, timeout: Optional[float] = None) -> int:
        """
        Close the set, cancel every worker and wait for them.

        All workers share one deadline of ``timeout`` seconds. The calling
        thread is never joined, so an action handler may stop the server
        it runs on.

        Returns:
            Number of workers still alive at the deadline (abandoned).
        """
        with self._lock:
            self._open = False
            workers = list(self._workers)

        for worker in workers:
            worker.cancel()

        deadline = None if timeout is None else time.monotonic() + timeout
        current = threading.current_thread()
        stragglers = 0

        for worker in workers:
            if worker.thread is current:
                continue
            remaining = None if deadline is None else max(deadline - time.monotonic(), 0)
            worker.join(remaining)
            if worker.is_alive:
                stragglers += 1

        if stragglers:
            logger.warning(f"Abandoning {stragglers} worker(s) that did not exit in time")

        with self._lock:
            self._workers.clear()

        return stragglers

    def __len__(self) -> int:
        with self._lock:
            return len(self._workers)

    def __contains__(self, worker: "ConnectionWorker") -> bool:
        with self._lock:
            return worker in self._workers


# ═══════════════════════════════════════════════════════════════════════════
# CONNECTION WORKER
# ═══════════════════════════════════════════════════════════════════════════


class ConnectionWorker:
    """
    Serves exactly one request on one connection, on its own thread.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         run() Flow                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   read + parse request ── closed early ──────────────► finish       │
    │        │                └─ bad request ──► status reply ► finish    │
    │        ▼                                                             │
    │   path under a listener prefix? ── no ──► 404 ───────► finish       │
    │        │                                                             │
    │        ▼                                                             │
    │   classify ──► DEFAULT      write_file(<root>/index.html)           │
    │            ──► STATIC_FILE  write_file(...) or "File not found"     │
    │            ──► ACTION       handler(server, context) or default     │
    │            ──► UNKNOWN      "URL not found"                         │
    │        │                                                             │
    │        └── any exception ──► "<message>//<traceback>" as body       │
    │                                                                      │
    │   finish: close response, close connection, access log, discard    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(
        self,
        server: "WebServer",
        connection: Connection,
        endpoint: Endpoint,
        worker_set: WorkerSet,
    ):
        self.server = server
        self.connection = connection
        self.endpoint = endpoint
        self.worker_set = worker_set

        self.state = WorkerState.STARTED
        self.request: Optional[HTTPRequest] = None
        self.response: Optional[ResponseStream] = None
        self.classified: Optional[ClassifiedRequest] = None

        self._cancelled = threading.Event()
        self.thread = threading.Thread(
            target=self.run,
            name=f"Worker-{connection.id}",
            daemon=True,
        )

    @property
    def id(self) -> str:
        return self.connection.id

    @property
    def is_alive(self) -> bool:
        return self.thread.is_alive()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self) -> None:
        self.thread.start()

    def cancel(self) -> None:
        """Ask the worker to stop and unblock any socket call it is in."""
        self._cancelled.set()
        self.connection.abort()

    def join(self, timeout: Optional[float] = None) -> None:
        if self.thread.is_alive():
            self.thread.join(timeout)

    # =========================================================================
    # MAIN FLOW
    # =========================================================================

    def run(self) -> None:
        try:
            self._serve()
        finally:
            self._finish()

    def _serve(self) -> None:
        conn = self.connection
        config = self.server.config

        try:
            data = conn.read_request()
            if data is None:
                logger.debug(f"[{conn.id}] Client closed before sending a request")
                return
            request = parse_request(data, conn.address)
        except HTTPParseError as e:
            logger.debug(f"[{conn.id}] Bad request: {e}")
            self._reject(HTTPStatus(e.status_code), str(e))
            return
        except TimeoutError:
            logger.debug(f"[{conn.id}] Timed out waiting for the request")
            self._reject(HTTPStatus.REQUEST_TIMEOUT, "Request timed out")
            return

        if self.cancelled:
            return

        self.request = request
        self.response = ResponseStream(
            conn,
            server_name=config.server_name,
            head_only=request.method == "HEAD",
        )

        if not self.endpoint.accepts(request.path):
            self._reject(HTTPStatus.NOT_FOUND, f"URL not found: {request.target}")
            return

        context = RequestContext(
            request=request,
            response=self.response,
            connection=conn,
            scheme=self.endpoint.scheme,
            local_address=self.endpoint.bound_address,
        )

        self.state = WorkerState.CLASSIFYING
        self.classified = classify(request.method, request.path)

        try:
            self._dispatch(self.classified, context)
        except Exception as e:
            self._fail(e)

    def _dispatch(self, classified: ClassifiedRequest, context: RequestContext) -> None:
        server = self.server
        response = context.response

        if classified.kind is RequestKind.DEFAULT:
            self.state = WorkerState.SERVING
            path = default_document_path(server.root_path, server.config.index_file)
            write_file(response, path, server.config.chunk_size)

        elif classified.kind is RequestKind.STATIC_FILE:
            self.state = WorkerState.SERVING
            path = resolve_static_path(server.root_path, classified.path)
            if path is None:
                write_text(response, f"File not found: {context.url}", with_header=True)
            else:
                write_file(response, path, server.config.chunk_size)

        elif classified.kind is RequestKind.ACTION:
            self.state = WorkerState.DISPATCHING
            handler = server.action_handler
            if handler is None:
                write_default_action(context)
            else:
                handler(server, context)

        else:
            self.state = WorkerState.REJECTING
            write_text(response, f"URL not found: {context.url}", with_header=True)

    # =========================================================================
    # FAILURE PATHS
    # =========================================================================

    def _reject(self, status: HTTPStatus, message: str) -> None:
        """Answer a request that never reaches classification."""
        self.state = WorkerState.REJECTING

        if self.response is None:
            self.response = ResponseStream(self.connection, server_name=self.server.config.server_name)

        try:
            self.response.set_status(status)
            write_text(self.response, message, with_header=True)
        except OSError as e:
            logger.debug(f"[{self.id}] Could not send {int(status)} reply: {e}")

    def _fail(self, error: Exception) -> None:
        """
        Render an exception into the response body.

        The client sees the error message and full traceback. Headers are
        added only when they have not gone out yet; the status is left as is.
        """
        if self.cancelled:
            logger.debug(f"[{self.id}] Cancelled mid-response: {error}")
            return

        logger.exception(f"[{self.id}] Error while serving {self.request.target}")

        response = self.response
        if response is None or response.closed:
            return

        message = f"{error}//{traceback.format_exc()}"
        try:
            write_text(response, message, with_header=not response.headers_sent)
        except OSError as e:
            logger.debug(f"[{self.id}] Could not send error body: {e}")

    def _finish(self) -> None:
        self.state = WorkerState.CLOSING
        conn = self.connection
        response = self.response

        try:
            if response is not None and not self.cancelled:
                try:
                    response.close()
                except OSError as e:
                    logger.debug(f"[{conn.id}] Could not flush response: {e}")
            conn.close()
        finally:
            if response is not None:
                request = self.request
                log_request(
                    worker_id=conn.id,
                    client_ip=conn.client_ip,
                    method=request.method if request else None,
                    path=request.target if request else None,
                    kind=self.classified.kind.value if self.classified else None,
                    status_code=int(response.status),
                    content_length=response.bytes_written,
                    started_at=conn.created_at,
                    log_format=self.server.config.log_format,
                )
            self.worker_set.discard(self)
            self.state = WorkerState.TERMINATED
