"""
pytest configuration and fixtures.
"""

import io
import socket
import threading
from typing import Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from piserve import PiServer, ServerConfig, RequestDispatcher


@pytest.fixture
def served_dir(tmp_path: Path) -> Path:
    """
    A small directory tree to serve:

        served/
        ├── .git/
        ├── .hidden
        ├── sub/
        │   └── nested.txt
        ├── a.txt        "alpha"
        ├── b.txt        "test"
        └── index.html   "<h1>hi</h1>"
    """
    root = tmp_path / "served"
    root.mkdir()
    (root / ".git").mkdir()
    (root / ".hidden").write_text("secret")
    (root / "sub").mkdir()
    (root / "sub" / "nested.txt").write_text("nested")
    (root / "b.txt").write_text("test")
    (root / "a.txt").write_text("alpha")
    (root / "index.html").write_text("<h1>hi</h1>")
    return root


@pytest.fixture
def dispatcher(served_dir: Path) -> RequestDispatcher:
    """Dispatcher over served_dir with indexing disabled."""
    return RequestDispatcher(str(served_dir))


@pytest.fixture
def index_dispatcher(served_dir: Path) -> RequestDispatcher:
    """Dispatcher over served_dir with indexing enabled."""
    return RequestDispatcher(str(served_dir), index=True)


class FakeStream:
    """
    In-memory stand-in for a Connection.

    Args:
        request: Bytes returned by read_request() (truncated to max_bytes).
        read_error: Raised by read_request() instead, if given.
        write_error: Raised by write() instead, if given.
    """

    def __init__(
        self,
        request: bytes = b"",
        read_error: Optional[OSError] = None,
        write_error: Optional[OSError] = None,
    ):
        self.request = request
        self.read_error = read_error
        self.write_error = write_error
        self.output = io.BytesIO()
        self.read_sizes = []

    def read_request(self, max_bytes: int) -> bytes:
        self.read_sizes.append(max_bytes)
        if self.read_error is not None:
            raise self.read_error
        return self.request[:max_bytes]

    def write(self, data: bytes) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.output.write(data)

    @property
    def written(self) -> bytes:
        return self.output.getvalue()


@pytest.fixture
def make_stream():
    """Factory fixture for FakeStream."""
    return FakeStream


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: PiServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes) -> bytes:
        """Send raw bytes and read the response until the server closes."""
        with socket.create_connection(('127.0.0.1', self.port), timeout=5.0) as s:
            s.sendall(raw)
            chunks = []
            while True:
                chunk = s.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)


@pytest.fixture
def test_server(served_dir: Path) -> Generator[TestServer, None, None]:
    """A running server over served_dir with indexing enabled."""
    server = PiServer(ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        root=str(served_dir),
        index=True,
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    ))

    helper = TestServer(server)
    helper.start()

    yield helper

    helper.stop()
