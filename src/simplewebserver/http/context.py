"""
Per-connection request context.

A RequestContext is what an action handler receives: the parsed request,
the response stream for writing the answer, and the connection it came in
on. It belongs to exactly one worker and dies with it.
"""

from dataclasses import dataclass, field
from typing import Any

from .request import HTTPRequest
from .response import ResponseStream


@dataclass
class RequestContext:
    """
    One accepted connection plus its request and response.

    Attributes:
        request: The parsed HTTP request.
        response: Streaming response bound to the connection.
        connection: The underlying Connection (owned by the worker).
        scheme: Scheme of the binding address the request arrived on.
        local_address: (host, port) of the listening socket.
    """

    request: HTTPRequest
    response: ResponseStream
    connection: Any = field(default=None, repr=False)
    scheme: str = "http"
    local_address: tuple = ("", 0)

    @property
    def raw_url(self) -> str:
        """Request target as sent: "/report.action?a=1"."""
        return self.request.target

    @property
    def url(self) -> str:
        """
        Absolute request URL.

        Built from the Host header, falling back to the listener address
        for HTTP/1.0 clients that omit it.
        """
        host = self.request.host
        if not host:
            host_part, port = self.local_address[0], self.local_address[1]
            if ":" in host_part:
                host_part = f"[{host_part}]"
            host = f"{host_part}:{port}"
        return f"{self.scheme}://{host}{self.request.target}"
