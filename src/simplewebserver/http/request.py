"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the raw bytes read from a connection into an HTTPRequest object.

=============================================================================
WHAT THE WORKER NEEDS FROM A REQUEST
=============================================================================

    GET /report.action?a=1&b=2 HTTP/1.1\r\n
    Host: localhost:9999\r\n
    \r\n
        │        │                 │
        │        │                 └── version  → error replies only
        │        │
        │        ├── path    "/report.action"   → classification, file lookup
        │        ├── target  "/report.action?a=1&b=2"
        │        │                              → action name, diagnostics
        │        └── query   {"a": ["1"], "b": ["2"]}
        │                                       → query string rebuild
        └── method                              → diagnostics, HEAD handling

The parser keeps BOTH the decoded path and the raw request target. The path
is what the classifier sees; the raw target is what the default action
diagnostic reports (it is cut at the "?" to get the action name).

=============================================================================
SECURITY CONSIDERATIONS
=============================================================================

1. HEADER SIZE - The connection refuses header sections above a limit
   before they ever reach the parser (431).

2. PATH TRAVERSAL - Decoded paths with a ".." segment are rejected (400),
   so "/../../etc/passwd.html" never reaches the static file resolver.

3. REQUEST SMUGGLING - Only Content-Length decides the body size.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict
from urllib.parse import parse_qs, urlsplit, unquote
import re


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the HTTP status code the worker answers with:

        400 Bad Request                 - Malformed request syntax
        405 Method Not Allowed          - Unknown method token
        431 Header Fields Too Large     - Header section over the limit
        505 HTTP Version Not Supported  - Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    Represents a parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         The HTTP method (GET, POST, ...)

        path:           Decoded request path WITHOUT query string
                        "/report.action" not "/report.action?a=1"

        target:         Request target exactly as sent on the request line
                        "/report.action?a=1"

        version:        HTTP version string ("HTTP/1.1" or "HTTP/1.0")

        headers:        Dictionary of headers with LOWERCASE keys

        query_params:   Parsed query string as dict of lists, in the
                        order keys first appear
                        "?a=1&a=2&b=3" → {"a": ["1", "2"], "b": ["3"]}

        body:           Raw request body (exactly Content-Length bytes)

        client_address: (ip, port) of the peer

        raw:            The original unparsed request bytes

    =========================================================================
    """

    method: str
    path: str
    target: str = ""
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""

    client_address: tuple[str, int] = ("", 0)
    raw: bytes = field(default=b"", repr=False)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def content_type(self) -> Optional[str]:
        """
        Get the Content-Type header value without parameters.

        "application/json; charset=utf-8" → "application/json"
        """
        ct = self.headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    @property
    def charset(self) -> str:
        """
        Get the charset parameter of the Content-Type header.

        Falls back to utf-8 when the client did not declare one.
        """
        ct = self.headers.get("content-type", "")
        for param in ct.split(";")[1:]:
            name, _, value = param.partition("=")
            if name.strip().lower() == "charset" and value.strip():
                return value.strip().strip('"')
        return "utf-8"

    @property
    def content_length(self) -> int:
        """Content-Length as integer, 0 if missing or invalid."""
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def has_body(self) -> bool:
        """Check whether the request carries an entity body."""
        return len(self.body) > 0

    @property
    def host(self) -> str:
        """Get the Host header value."""
        return self.headers.get("host", "")

    @property
    def query_string(self) -> str:
        """The raw query string, without the leading "?" ("" if none)."""
        _, sep, query = self.target.partition("?")
        return query if sep else ""

    # =========================================================================
    # ACCESSOR METHODS
    # =========================================================================

    def get_header(self, name: str, default: str = "") -> str:
        """Get a header value (case-insensitive lookup)."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get the first value of a query parameter.

        Example:
            # URL: /users.action?page=1&page=2
            request.get_query("page")  # Returns "1"
        """
        values = self.query_params.get(name, [])
        return values[0] if values else default

    def get_query_list(self, name: str) -> list[str]:
        """Get all values of a query parameter (empty list if absent)."""
        return self.query_params.get(name, [])


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    ==========================================================================
    PARSER ARCHITECTURE
    ==========================================================================

        Raw Request Bytes
              │
              ▼
        ┌───────────────────────────────────────────────────────────────────┐
        │  1. Find Header/Body Separator (\\r\\n\\r\\n)                        │
        │     │  Not found? → HTTPParseError("Incomplete")                 │
        │     ▼                                                             │
        │  2. Parse Request Line                                            │
        │     │  METHOD SP TARGET SP VERSION                                │
        │     │  Invalid? → HTTPParseError(400/405/505)                    │
        │     ▼                                                             │
        │  3. Parse Headers                                                 │
        │     │  "Name: Value" pairs, names lowercased                     │
        │     ▼                                                             │
        │  4. Extract Body (Content-Length bytes)                           │
        │     ▼                                                             │
        │  5. Build HTTPRequest                                             │
        └───────────────────────────────────────────────────────────────────┘

    ==========================================================================
    """

    VALID_METHODS = {
        "GET",
        "POST",
        "PUT",
        "DELETE",
        "PATCH",
        "HEAD",
        "OPTIONS",
        "TRACE",
        "CONNECT",
    }

    # Compiled once at class load time
    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest object.

        Args:
            data: Raw HTTP request bytes from the connection.
            client_address: Client's (ip, port) tuple.

        Returns:
            Parsed HTTPRequest object.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        # =====================================================================
        # STEP 1: Split headers and body at the \r\n\r\n boundary
        # =====================================================================
        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        # Header bytes are ASCII in practice; latin-1 never fails to decode
        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")

        # =====================================================================
        # STEP 2: Request line
        # =====================================================================
        method, target, path, query_params, version = self._parse_request_line(lines[0])

        # =====================================================================
        # STEP 3: Headers
        # =====================================================================
        headers = self._parse_headers(lines[1:])

        # =====================================================================
        # STEP 4: Body
        # =====================================================================
        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")

        if content_length < 0:
            raise HTTPParseError("Invalid Content-Length header")

        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        body = body[:content_length]

        return HTTPRequest(
            method=method,
            path=path,
            target=target,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body,
            client_address=client_address,
            raw=data,
        )

    def _parse_request_line(
        self,
        line: str
    ) -> tuple[str, str, str, Dict[str, list[str]], str]:
        """
        Parse the HTTP request line.

            METHOD SP REQUEST-TARGET SP HTTP-VERSION

            Example: "GET /users.action?page=1 HTTP/1.1"

        Returns:
            Tuple of (method, target, path, query_params, version)

        Raises:
            HTTPParseError: If the line is malformed.
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, target, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505
            )

        # ---------------------------------------------------------------------
        # Split target into path and query
        # ---------------------------------------------------------------------
        # Target: "/users/list.action?page=1&sort=name"
        # Path:   "/users/list.action"
        # Query:  {"page": ["1"], "sort": ["name"]}
        #
        # Absolute-form targets ("http://host/path") are reduced to the
        # same origin-form target so the raw URL always starts at the path.
        # Origin-form targets are split by hand: urlsplit() would read
        # "//css/site.css" as a network location.
        if not target.startswith("/"):
            parsed = urlsplit(target)
            if parsed.scheme and parsed.netloc:
                target = parsed.path or "/"
                if parsed.query:
                    target += "?" + parsed.query

        raw_path, _, query = target.split("#", 1)[0].partition("?")

        path = unquote(raw_path)
        query_params = parse_qs(query, keep_blank_values=True)

        if ".." in path.replace("\\", "/").split("/"):
            raise HTTPParseError("Invalid path: contains a .. segment", status_code=400)

        return method, target, path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse HTTP headers into a dictionary.

        - Names are lowercased ("Content-Type" == "content-type").
        - Lines starting with whitespace continue the previous header.
        - Repeated headers are joined with ", ".
        - Malformed lines are skipped (lenient parsing).
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
) -> HTTPRequest:
    """Convenience wrapper: parse one request with a fresh RequestParser."""
    return RequestParser().parse(data, client_address)
