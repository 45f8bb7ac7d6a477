"""
=============================================================================
HTTP RESPONSE STREAM
=============================================================================

The response side of a request: a status, a header dictionary and a byte
sink that writes straight to the client socket.

=============================================================================
WHY A STREAM INSTEAD OF A RESPONSE OBJECT?
=============================================================================

Handlers in this server do not *return* a response, they *write* one:

    write_file(response, "<root>/index.html")   # 4 KB chunks, any file size
    write_text(response, "URL not found: ...")  # one small write

Host action handlers get the same object and may write as much as they
like. Nothing is buffered beyond the chunk being written.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    RESPONSE STREAM LIFECYCLE                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   created          status = 200, headers = {}                       │
    │      │             set_header() allowed                             │
    │      ▼                                                               │
    │   first write()    status line + headers go out                     │
    │      │             set_header() now raises HeadersSentError         │
    │      ▼                                                               │
    │   more write()s    body bytes go straight to the socket             │
    │      │                                                               │
    │      ▼                                                               │
    │   close()          flushes headers if nothing was written           │
    │                    further writes raise                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every response carries "Connection: close" and no Content-Length; the body
ends when the worker closes the socket.

=============================================================================
"""

from datetime import datetime, timezone
from typing import Dict, Optional, Union

from .status_codes import HTTPStatus


class HeadersSentError(RuntimeError):
    """Raised when headers are modified after they went out on the wire."""


class ResponseStream:
    """
    Streaming HTTP response bound to a live connection.

    The sink only needs a ``send(bytes)`` method; in the server it is a
    Connection, in tests it can be anything that collects bytes.

    Attributes:
        status: Status code sent with the headers (default 200).
        headers: Response headers; frozen once headers_sent is True.
        head_only: Suppress body bytes (HEAD requests).
        bytes_written: Body bytes handed to the sink so far.
    """

    def __init__(
        self,
        sink,
        server_name: str = "SimpleWebServer/1.0",
        head_only: bool = False,
    ):
        self._sink = sink
        self.server_name = server_name
        self.head_only = head_only

        self.status: HTTPStatus = HTTPStatus.OK
        self.headers: Dict[str, str] = {}
        self.version = "HTTP/1.1"

        self.headers_sent = False
        self.closed = False
        self.bytes_written = 0

    @property
    def status_line(self) -> str:
        """Example: "HTTP/1.1 200 OK"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("Content-Type")

    def set_header(self, name: str, value: str) -> "ResponseStream":
        """
        Set a response header.

        Raises:
            HeadersSentError: If the headers were already written.
        """
        if self.headers_sent:
            raise HeadersSentError(f"Cannot set {name}: headers already sent")
        self.headers[name] = value
        return self

    def set_content_type(self, content_type: str) -> "ResponseStream":
        return self.set_header("Content-Type", content_type)

    def set_status(self, status: Union[HTTPStatus, int]) -> "ResponseStream":
        if self.headers_sent:
            raise HeadersSentError("Cannot change status: headers already sent")
        self.status = HTTPStatus(status)
        return self

    def write(self, data: Union[str, bytes]) -> None:
        """
        Write body bytes, flushing the headers first if needed.

        Strings are encoded as UTF-8.
        """
        if self.closed:
            raise ValueError("write to closed response")

        if isinstance(data, str):
            data = data.encode("utf-8")

        if not self.headers_sent:
            self._send_headers()

        if not data or self.head_only:
            return

        self._sink.send(data)
        self.bytes_written += len(data)

    def close(self) -> None:
        """
        Finish the response.

        Safe to call more than once. Closing the underlying connection is
        the worker's job, not the stream's.
        """
        if self.closed:
            return
        try:
            if not self.headers_sent:
                self._send_headers()
        finally:
            self.closed = True

    def _send_headers(self) -> None:
        """
        Serialize and send the status line and headers.

            HTTP/1.1 200 OK\\r\\n
            Content-Type: text/html; charset=utf-8\\r\\n
            Date: Wed, 01 Jan 2026 ...\\r\\n
            Server: SimpleWebServer/1.0\\r\\n
            Connection: close\\r\\n
            \\r\\n
        """
        response_headers = dict(self.headers)
        response_headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        response_headers.setdefault("Server", self.server_name)
        response_headers["Connection"] = "close"

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("latin-1") + b"\r\n"

        # Headers count as sent even if the send below fails
        self.headers_sent = True
        self._sink.send(header_bytes)


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Example: "Wed, 15 Jan 2026 12:30:45 GMT"
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    dt = dt.astimezone(timezone.utc)
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )
