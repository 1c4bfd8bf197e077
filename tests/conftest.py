"""
pytest configuration and fixtures.
"""

import socket
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Generator

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from webworker import ServerConfig, WebServer, WebWorker
from webworker.core import Connection


FIXED_TIME = datetime(2026, 1, 15, 12, 30, 45, tzinfo=timezone.utc)
FIXED_DATE = "Thu, 15 Jan 2026 12:30:45 GMT"

# Not a real GIF; what matters is bytes that are not text, plus a marker
# that must NOT be substituted.
GIF_BYTES = (
    b"GIF89a\x01\x00\x01\x00\x80\x00\x00\xff\xff\xff\x00\x00\x00!"
    b"\xf9\x04\x01\x00\x00\x00\x00,\x00\x00\x00\x00\x01\x00\x01\x00\x00\x02\x02D\x01\x00;"
    b"\n<cs371server>\n\r\n\x00\xfe"
)

INDEX_HTML = (
    "<html>\n"
    "<body>\n"
    "<cs371server>\n"
    "<p>Served at</p>\n"
    "<cs371date>\n"
    "<cs371unknown>\n"
    "</body>\n"
    "</html>\n"
)


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Clock that always returns FIXED_TIME."""
    return lambda: FIXED_TIME


@pytest.fixture
def doc_root(tmp_path: Path) -> Path:
    """Document root with a handful of files."""
    (tmp_path / "index.html").write_text(INDEX_HTML)
    (tmp_path / "notes.txt").write_bytes(b"first line\r\nsecond line\r\n")
    (tmp_path / "logo.gif").write_bytes(GIF_BYTES)
    (tmp_path / "pages").mkdir()
    (tmp_path / "pages" / "about.HTM").write_text("<h1>About</h1>\n")
    return tmp_path


@pytest.fixture
def config(doc_root: Path) -> ServerConfig:
    """Test configuration serving doc_root."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        root_dir=str(doc_root),
        log_level="WARNING",
    )


class RecordingConnection:
    """Stands in for a Connection where only write()/flush() matter."""

    def __init__(self):
        self.data = bytearray()
        self.flushes = 0

    def write(self, data: bytes) -> None:
        self.data += data

    def flush(self) -> None:
        self.flushes += 1


@pytest.fixture
def sink() -> RecordingConnection:
    return RecordingConnection()


@pytest.fixture
def connection_pair() -> Generator[tuple[Connection, socket.socket], None, None]:
    """A server-side Connection and the client socket talking to it."""
    server_sock, client_sock = socket.socketpair()
    client_sock.settimeout(5.0)
    conn = Connection(socket=server_sock, address=("127.0.0.1", 0), timeout=5.0)

    yield conn, client_sock

    conn.close()
    client_sock.close()


def read_all(sock: socket.socket) -> bytes:
    """Read until the peer closes."""
    chunks = []
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


@pytest.fixture
def serve(connection_pair, config, fixed_clock) -> Callable[[bytes], bytes]:
    """
    Send raw request bytes through one WebWorker, return the raw response.

    Runs the worker on the test thread: the request is already sitting in
    the socket buffer (and the client has shut down its sending side), so
    nothing blocks.
    """
    conn, client = connection_pair

    def _serve(raw_request: bytes) -> bytes:
        if raw_request:
            client.sendall(raw_request)
        client.shutdown(socket.SHUT_WR)
        WebWorker(conn, config, clock=fixed_clock).run()
        return read_all(client)

    return _serve


def split_response(raw: bytes) -> tuple[list[str], bytes]:
    """Split a response into header lines and body at the first blank line."""
    head, sep, body = raw.partition(b"\n\n")
    assert sep, f"no blank line in response: {raw!r}"
    return head.decode("utf-8").split("\n"), body


class BackgroundServer:
    """Runs a WebServer on a background thread."""

    def __init__(self, server: WebServer):
        self.server = server
        self._thread = threading.Thread(target=server.run, daemon=True)

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        self._thread.join(timeout=10.0)

    def get(self, path: str, headers: bytes = b"Host: localhost\r\n") -> bytes:
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as s:
            s.sendall(f"GET {path} HTTP/1.1\r\n".encode() + headers + b"\r\n")
            return read_all(s)


@pytest.fixture
def live_server(config: ServerConfig) -> Generator[BackgroundServer, None, None]:
    """A WebServer on a free port serving doc_root."""
    server = BackgroundServer(WebServer(config))
    server.start()

    yield server

    server.stop()
