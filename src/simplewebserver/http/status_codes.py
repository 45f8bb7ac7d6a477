"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The handful of status codes this server can produce.

Almost every response is 200 OK: missing files and unknown URLs are reported
in the body, not in the status line. The remaining codes are produced by the
connection layer before a request is ever classified (bad request line,
unsupported version, path outside every registered prefix, ...).

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200

    BAD_REQUEST = 400                       # Malformed request syntax
    NOT_FOUND = 404                         # Path outside every listener prefix
    METHOD_NOT_ALLOWED = 405                # Unknown method token
    REQUEST_TIMEOUT = 408                   # Client connected but never finished
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431   # Header section over the limit

    INTERNAL_SERVER_ERROR = 500
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line ("HTTP/1.1 200 OK")."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_error(self) -> bool:
        """Check if this is an error status code (4xx or 5xx)."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE: "Request Header Fields Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
