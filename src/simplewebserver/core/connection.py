"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the small API a worker needs:
read exactly one request, write response bytes, close.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

TCP does not preserve message boundaries. A request may arrive in any number
of recv() chunks:

    First recv():  "GET /index.ht"         (incomplete!)
    Second recv(): "ml HTTP/1.1\\r\\nHost"
    Third recv():  ": localhost\\r\\n\\r\\n"

So we buffer until the header terminator (\\r\\n\\r\\n) shows up, then use
Content-Length to know how many body bytes follow.

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

This server answers a single request per connection and then closes it.
Responses are close-delimited: the client knows the body is complete when
the socket reaches EOF. That keeps the response stream trivially simple
(no Content-Length bookkeeping while streaming files of any size).

=============================================================================
ABORTING FROM ANOTHER THREAD
=============================================================================

Python cannot kill a thread. When the server stops, it instead calls
abort() on each worker's connection:

    Lifecycle thread                   Worker thread
    ─────────────────                  ─────────────
    conn.abort()                       blocked in recv()/sendall()
      └── shutdown(SHUT_RDWR) ───────►   └── returns b"" / raises OSError
                                         └── worker unwinds, closes

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid

from ..http.request import HTTPParseError


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """
    Connection lifecycle states.
    """
    NEW = "new"              # Just accepted, haven't read anything yet
    READING = "reading"      # Currently reading request data
    CLOSING = "closing"      # Shutdown sequence in progress
    CLOSED = "closed"        # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique identifier (for logging).
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
        aborted: True once abort() has been called.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    aborted: bool = False

    # Configuration (passed from ServerConfig)
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    max_header_size: int = 64 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        # Accepted sockets inherit non-blocking mode from the listener on
        # some platforms; workers want plain blocking I/O with a timeout.
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Connection age in seconds."""
        return time.time() - self.created_at

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request from the socket.

        ┌─────────────────────────────────────────────────────────────────┐
        │                    read_request() Flow                           │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   while no \\r\\n\\r\\n:      ← wait for complete headers          │
        │       recv() → buffer      (over max_header_size? → 431)        │
        │                                                                  │
        │   parse Content-Length                                           │
        │                                                                  │
        │   while body incomplete:                                         │
        │       recv() → buffer                                            │
        │                                                                  │
        │   return headers + body                                          │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘

        Returns:
            Complete request bytes, or None if the client closed the
            connection before sending a full header section.

        Raises:
            TimeoutError: If the client stalls longer than the timeout.
            HTTPParseError: If the header section exceeds max_header_size.
        """
        self.state = ConnectionState.READING

        try:
            while b"\r\n\r\n" not in self._buffer:
                if len(self._buffer) > self.max_header_size:
                    raise HTTPParseError(
                        f"Request header section too large: {len(self._buffer)} bytes",
                        status_code=431,
                    )

                chunk = self._recv()
                if not chunk:
                    return None  # Connection closed by client (or aborted)

                self._buffer += chunk

            header_end = self._buffer.find(b"\r\n\r\n")
            if header_end > self.max_header_size:
                raise HTTPParseError(
                    f"Request header section too large: {header_end} bytes",
                    status_code=431,
                )

            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break  # Connection closed mid-body, parser reports it

                self._buffer += chunk

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            return request_data

        except socket.timeout:
            raise TimeoutError("Request read timeout")

    def _recv(self) -> bytes:
        """
        Receive data from the socket.

        Returns:
            Received bytes, or empty bytes if the connection is gone.
        """
        try:
            return self.socket.recv(self.buffer_size)
        except socket.timeout:
            raise
        except OSError:
            # Reset by the client, or shut down by abort()
            return b""

    def _parse_content_length(self, headers: bytes) -> int:
        """
        Parse Content-Length from raw header bytes.

        A plain scan is enough here; full parsing happens later in
        RequestParser once the whole request is buffered.

        Returns:
            Content-Length value, or 0 if absent or invalid.
        """
        header_str = headers.decode("latin-1").lower()
        for line in header_str.split("\r\n"):
            if line.startswith("content-length:"):
                try:
                    return max(int(line.split(":", 1)[1].strip()), 0)
                except ValueError:
                    return 0
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> None:
        """
        Send bytes to the client.

        Uses sendall() so partial sends are retried until everything is out.

        Raises:
            ConnectionError: If the client went away or the connection
                             was aborted. Callers let this propagate so the
                             worker stops producing output.
        """
        try:
            self.socket.sendall(data)
        except OSError as e:
            raise ConnectionError(f"[{self.id}] send failed: {e}") from e

    # =========================================================================
    # CLOSING
    # =========================================================================

    def abort(self) -> None:
        """
        Forcefully interrupt the connection from another thread.

        shutdown(SHUT_RDWR) wakes any recv()/sendall() blocked on this
        socket in the worker thread. The worker still owns close().
        """
        self.aborted = True
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Already disconnected

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR): tell the client we're done sending (FIN).
           For close-delimited responses this is the end-of-body marker.
        2. Drain whatever the client still sends.
        3. close(): release the file descriptor.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected, that's fine

        if not self.aborted:
            try:
                self.socket.settimeout(0.5)
                while self.socket.recv(1024):
                    pass
            except OSError:
                pass  # Includes socket.timeout

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
