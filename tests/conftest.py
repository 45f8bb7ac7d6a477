"""
pytest configuration and fixtures.
"""

import socket
import time
from pathlib import Path
from typing import Generator

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from simplewebserver import ServerConfig, WebServer


INDEX_HTML = b"<html><body><h1>Hello from the index</h1></body></html>"
SITE_CSS = b"body { color: #333; }"


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request for an action."""
    return (
        b"GET /report.action?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:9999\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/html\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a form body."""
    body = b"name=John&email=john%40example.com"
    return (
        b"POST /save.action?x=1 HTTP/1.1\r\n"
        b"Host: localhost:9999\r\n"
        b"Content-Type: application/x-www-form-urlencoded; charset=utf-8\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def web_root(tmp_path: Path) -> Path:
    """
    A small site:

        index.html
        css/site.css
        data.json
        photo.png
        notes.xyz        (extension not in the MIME table)
    """
    (tmp_path / "index.html").write_bytes(INDEX_HTML)
    (tmp_path / "css").mkdir()
    (tmp_path / "css" / "site.css").write_bytes(SITE_CSS)
    (tmp_path / "data.json").write_bytes(b'{"ok": true}')
    (tmp_path / "photo.png").write_bytes(bytes(range(256)) * 64)
    (tmp_path / "notes.xyz").write_bytes(b"not served")
    return tmp_path


@pytest.fixture
def test_config() -> ServerConfig:
    """Short timeouts so tests never hang."""
    return ServerConfig(
        timeout=5.0,
        stop_timeout=2.0,
        accept_poll_interval=0.05,
        log_level="WARNING",
    )


@pytest.fixture
def server(free_port: int, web_root: Path, test_config: ServerConfig) -> Generator[WebServer, None, None]:
    """A configured, NOT started server. Closed after the test."""
    srv = WebServer(test_config)
    srv.add_binding_address(f"http://127.0.0.1:{free_port}/")
    srv.root_path = web_root

    yield srv

    srv.close()


@pytest.fixture
def running_server(server: WebServer, free_port: int) -> Generator[WebServer, None, None]:
    """A started server, reachable on 127.0.0.1:free_port."""
    server.start()
    wait_for_port(free_port)
    yield server
    server.stop()


def wait_for_port(port: int, timeout: float = 5.0) -> None:
    deadline = time.time() + timeout
    while time.time() < deadline:
        try:
            with socket.create_connection(("127.0.0.1", port), timeout=0.5):
                return
        except OSError:
            time.sleep(0.05)
    raise RuntimeError(f"Server on port {port} did not come up")


def send_raw(port: int, data: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes and read the close-delimited response."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as s:
        s.sendall(data)
        chunks = []
        while True:
            chunk = s.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def split_response(raw: bytes):
    """Split a raw response into (status_code, headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    status = int(lines[0].split(" ")[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return status, headers, body


class FakeSink:
    """Stands in for a Connection: collects everything sent to it."""

    def __init__(self):
        self.sent = []

    def send(self, data: bytes) -> None:
        self.sent.append(data)

    @property
    def data(self) -> bytes:
        return b"".join(self.sent)

    @property
    def body(self) -> bytes:
        return self.data.partition(b"\r\n\r\n")[2]
