"""
=============================================================================
BINDING ADDRESSES
=============================================================================

Where the server listens. A binding address is a URL prefix:

    http://localhost:9999/
    ─┬──   ────┬──── ─┬── ┬
     │         │      │   └── path prefix (requests must start with it)
     │         │      └────── port
     │         └───────────── host ("+" or "*" = every interface)
     └─────────────────────── scheme (only "http")

The registry stores the strings exactly as given. Nothing is parsed until
the server starts: a bad address fails start(), not add().

=============================================================================
ENDPOINTS
=============================================================================

Several prefixes may share one host:port:

    http://localhost:9999/app/    ┐
    http://localhost:9999/api/    ┼──► one listening socket on :9999
                                  │    prefixes ["/app/", "/api/"]
    http://localhost:8080/        ┴──► another socket on :8080

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, List
from urllib.parse import urlsplit


logger = logging.getLogger(__name__)

WILDCARD_HOSTS = {"+", "*"}


@dataclass(frozen=True)
class BindingAddress:
    """
    A parsed binding address.

    Attributes:
        scheme: Always "http".
        host: Host as written ("localhost", "+", "127.0.0.1", "::1").
        port: TCP port (0 lets the OS pick one).
        path: Path prefix, always ending in "/".
    """

    scheme: str
    host: str
    port: int
    path: str = "/"

    @property
    def bind_host(self) -> str:
        """Host to pass to bind(): wildcards become "0.0.0.0"."""
        return "0.0.0.0" if self.host in WILDCARD_HOSTS else self.host

    @classmethod
    def parse(cls, address: str) -> "BindingAddress":
        """
        Parse "http://host:port/path/" into a BindingAddress.

        Raises:
            ValueError: On unsupported schemes or malformed addresses.
        """
        parts = urlsplit(address)

        if parts.scheme != "http":
            raise ValueError(f"Unsupported scheme in binding address: {address!r}")

        # netloc is "host:port" or "[v6addr]:port"
        netloc = parts.netloc
        if not netloc:
            raise ValueError(f"Missing host in binding address: {address!r}")

        if netloc.startswith("["):
            host, _, rest = netloc[1:].partition("]")
            port_text = rest[1:] if rest.startswith(":") else ""
        else:
            host, _, port_text = netloc.partition(":")

        if not host:
            raise ValueError(f"Missing host in binding address: {address!r}")

        try:
            port = int(port_text) if port_text else 80
        except ValueError:
            raise ValueError(f"Invalid port in binding address: {address!r}")

        if not 0 <= port < 65536:
            raise ValueError(f"Invalid port in binding address: {address!r}")

        path = parts.path or "/"
        if not path.endswith("/"):
            path += "/"

        return cls(scheme=parts.scheme, host=host, port=port, path=path)

    def matches(self, request_path: str) -> bool:
        """
        Check whether a request path falls under this prefix.

        "/app" matches the prefix "/app/" as well as "/app/x".
        """
        return request_path.startswith(self.path) or request_path + "/" == self.path


@dataclass
class AddressRegistry:
    """
    Ordered set of binding address strings.

    Mutations are silent no-ops while the registry is locked (the server is
    running). They are logged, never raised.
    """

    _addresses: List[str] = field(default_factory=list)
    _locked: bool = False

    @property
    def locked(self) -> bool:
        return self._locked

    @property
    def addresses(self) -> tuple:
        """Snapshot of the registered addresses, in insertion order."""
        return tuple(self._addresses)

    def lock(self) -> None:
        self._locked = True

    def unlock(self) -> None:
        self._locked = False

    def contains(self, address: str) -> bool:
        return address in self._addresses

    def add(self, address: str) -> None:
        """Add an address. Ignored if present or locked."""
        if self._ignored("add", address):
            return
        if address in self._addresses:
            return
        self._addresses.append(address)

    def remove(self, address: str) -> None:
        """Remove an address. Ignored if absent or locked."""
        if self._ignored("remove", address):
            return
        if address not in self._addresses:
            return
        self._addresses.remove(address)

    def clear(self) -> None:
        """Remove every address. Ignored if locked."""
        if self._ignored("clear", None):
            return
        self._addresses.clear()

    def parse_all(self) -> List[BindingAddress]:
        """
        Parse every registered address.

        Raises:
            ValueError: On the first malformed address.
        """
        return [BindingAddress.parse(address) for address in self._addresses]

    def _ignored(self, operation: str, address) -> bool:
        if self._locked:
            logger.warning(f"Ignoring {operation}({address!r}) on binding addresses while running")
            return True
        return False

    def __contains__(self, address: str) -> bool:
        return self.contains(address)

    def __iter__(self) -> Iterator[str]:
        return iter(self.addresses)

    def __len__(self) -> int:
        return len(self._addresses)
