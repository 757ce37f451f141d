"""
=============================================================================
CONNECTION
=============================================================================

Wraps one accepted client socket for the lifetime of one request.

=============================================================================
ONE READ, ONE RESPONSE
=============================================================================

TCP is a byte stream: a single recv() may return only part of what the
client sent. A general-purpose server loops until it sees "\\r\\n\\r\\n".
piserve deliberately does not:

    ┌─────────────────────────────────────────────────────────────────┐
    │   recv(buffer_size)  ─►  whatever arrived in that one call      │
    │                                                                 │
    │   GET /index.html HTTP/1.1\\r\\n      ← the only line we need   │
    │   Host: ...\\r\\n                     ← read or not, ignored    │
    └─────────────────────────────────────────────────────────────────┘

The request line is at the front of the first segment in practice. A request
line longer than buffer_size is truncated and parses as whatever prefix was
received.

After the response is written the connection is closed. No keep-alive, no
pipelining.

=============================================================================
CONNECTION STATES
=============================================================================

    NEW ──► READING ──► WRITING ──► CLOSING ──► CLOSED
     │         │                       ▲
     └─────────┴───────────────────────┘  (errors go straight to close)

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    WRITING = "writing"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection.

    Implements the two calls the dispatcher makes, read_request() and
    write(), plus a graceful close().

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used in log lines.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
        bytes_sent: Bytes written to the client so far.
        raw_request: What read_request() received, kept for logging.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    bytes_sent: int = 0
    raw_request: bytes = field(default=b"", repr=False)

    timeout: Optional[float] = 30.0

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else "-"

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self, max_bytes: int) -> bytes:
        """
        Read at most ``max_bytes`` from the client in a single recv().

        Returns b"" if the client closed without sending anything.

        Raises:
            OSError: Including socket.timeout.
        """
        self.state = ConnectionState.READING
        self.raw_request = self.socket.recv(max_bytes)
        return self.raw_request

    # =========================================================================
    # WRITING
    # =========================================================================

    def write(self, data: bytes) -> None:
        """
        Send all of ``data``.

        Raises:
            OSError: The peer went away (ConnectionResetError,
                     BrokenPipeError) or the send timed out.
        """
        self.state = ConnectionState.WRITING
        self.socket.sendall(data)
        self.bytes_sent += len(data)

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR) sends FIN so the client sees end-of-response.
        2. Drain whatever the client still has in flight (unread headers),
           otherwise the kernel may answer with RST and cut the response.
        3. close() releases the descriptor.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
