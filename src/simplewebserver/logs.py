"""
=============================================================================
LOGGING
=============================================================================

Two kinds of log output:

    MODULE LOGGERS                        ACCESS LOG
    ──────────────                        ──────────
    logging.getLogger(__name__)           logging.getLogger("simplewebserver.access")
    lifecycle, bind errors, failures      one line per answered request

The library never installs handlers on its own: an embedded server must not
fight its host over logging. Hosts that have no logging setup of their own
can call configure_logging() once at startup (the demo host does).

=============================================================================
ACCESS LOG FORMATS
=============================================================================

    text (Apache style):
    127.0.0.1 - - [19/Oct/2026:14:03:12 +0000] "GET /index.html" 200 5120 1.42ms

    json:
    {"worker_id": "a1b2c3d4", "method": "GET", "path": "/index.html", ...}

Selected with ServerConfig.log_format.

=============================================================================
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Optional, Union


access_logger = logging.getLogger("simplewebserver.access")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: Union[str, int] = "INFO") -> None:
    """
    Configure the root logger for a standalone host.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or a logging constant.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT)
    logging.getLogger("simplewebserver").setLevel(level)


@dataclass
class RequestLog:
    """
    Structured access log entry.

    Fields:
        worker_id:      Connection id, shared with the worker's debug logs
        method:         HTTP method, "-" if the request never parsed
        path:           Request target as sent
        kind:           Request classification (default, static_file, ...)
        client_ip:      Client's IP address
        status_code:    Status sent with the headers
        content_length: Body bytes written
        duration_ms:    Time from accept to close
        timestamp:      When the request finished
    """

    worker_id: str
    method: str
    path: str
    kind: str
    client_ip: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "worker_id": self.worker_id,
            "method": self.method,
            "path": self.path,
            "kind": self.kind,
            "client_ip": self.client_ip,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


def log_request(
    worker_id: str,
    client_ip: str,
    method: Optional[str],
    path: Optional[str],
    kind: Optional[str],
    status_code: int,
    content_length: int,
    started_at: float,
    log_format: str = "text",
) -> RequestLog:
    """
    Emit one access log line and return the entry.

    started_at is a time.time() timestamp taken when the connection was
    accepted.
    """
    entry = RequestLog(
        worker_id=worker_id,
        method=method or "-",
        path=path or "-",
        kind=kind or "-",
        client_ip=client_ip,
        status_code=status_code,
        content_length=content_length,
        duration_ms=(time.time() - started_at) * 1000,
        timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
    )

    if log_format == "json":
        access_logger.info(json.dumps(entry.to_dict()))
    else:
        access_logger.info(entry.to_text())

    return entry
