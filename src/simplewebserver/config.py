"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Tuning knobs for the embeddable web server.

The server's real configuration surface is tiny: the host adds
binding addresses and sets a root path on the WebServer object itself. This
module only holds the *mechanical* settings (buffer sizes, timeouts, log
format) that a host rarely needs to touch.

=============================================================================
WHERE DO THE VALUES COME FROM?
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION SOURCES                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Code (the normal case for an embedded server)                  │
    │      └── WebServer(ServerConfig(stop_timeout=2.0))                  │
    │                                                                      │
    │   2. Environment variables (opt-in, host decides)                   │
    │      └── config = ServerConfig.from_env()                           │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The core never reads the environment on its own. A host that wants 12-factor
style configuration calls from_env() explicitly.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class ServerConfig:
    """
    Configuration for the web server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - backlog, buffer_size, timeout, max_header_size

    LIFECYCLE SETTINGS
    - accept_poll_interval, stop_timeout

    CONTENT SETTINGS
    - chunk_size, index_file, server_name

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    backlog: int = 128
    """
    Maximum number of queued connections per listening socket.
    """

    buffer_size: int = 8192
    """
    Size of a single recv() when reading the request (8 KB default).
    """

    timeout: Optional[float] = 30.0
    """
    Socket timeout for accepted connections, in seconds.
    None = blocking (a silent client would pin its worker forever).
    """

    max_header_size: int = 64 * 1024
    """
    Upper bound for the request line plus headers.
    Bodies are not limited.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LIFECYCLE SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    accept_poll_interval: float = 0.2
    """
    How long the listen loop waits in select() before re-checking
    whether the server is still running.
    """

    stop_timeout: float = 5.0
    """
    Grace period stop() grants cancelled workers to exit.
    Workers still alive afterwards are abandoned (they are daemon threads).
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    chunk_size: int = 4096
    """
    Chunk size used when streaming files to the client.
    """

    index_file: str = "index.html"
    """
    File served for the default request ("/").
    """

    server_name: str = "SimpleWebServer/1.0"
    """
    Value of the Server response header.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level used by configure_logging() (DEBUG, INFO, WARNING, ...).
    """

    log_format: str = "text"
    """
    Access log format: 'text' (Apache style) or 'json'.
    """

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        SWS_TIMEOUT       Connection timeout in seconds (default: 30)
        SWS_STOP_TIMEOUT  Worker grace period on stop (default: 5)
        SWS_CHUNK_SIZE    File streaming chunk size (default: 4096)
        SWS_INDEX_FILE    Default document (default: index.html)
        SWS_LOG_LEVEL     Logging level (default: INFO)
        SWS_LOG_FORMAT    Access log format (default: text)

        =====================================================================
        """
        return cls(
            timeout=float(os.getenv("SWS_TIMEOUT", "30")),
            stop_timeout=float(os.getenv("SWS_STOP_TIMEOUT", "5")),
            chunk_size=int(os.getenv("SWS_CHUNK_SIZE", "4096")),
            index_file=os.getenv("SWS_INDEX_FILE", "index.html"),
            log_level=os.getenv("SWS_LOG_LEVEL", "INFO"),
            log_format=os.getenv("SWS_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once by WebServer.__init__ so that a bad value fails at
        construction time rather than inside a worker thread.
        """
        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.accept_poll_interval <= 0:
            raise ValueError("accept_poll_interval must be > 0")

        if self.stop_timeout < 0:
            raise ValueError("stop_timeout must be >= 0")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"Invalid log_format: {self.log_format!r}. Use 'text' or 'json'.")
