"""
=============================================================================
REQUEST DISPATCHER
=============================================================================

One connection in, exactly one response out.

=============================================================================
STATE MACHINE
=============================================================================

    READ ──► CLASSIFY ──► RESOLVE ──┬──► LIST ─────┬──► WRITE ──► done
     │          │                   │              │
     │          │ not GET           └──► READ FILE ┘
     │          └──────────► 405 ──────────────────────► WRITE ──► done
     │
     └── OSError ──► ReadFromStreamError (no response is attempted)

    WRITE ── OSError ──► WriteToStreamError (connection abandoned)

1. READ      one recv() of at most buffer_size bytes. No loop: a longer
             request line is truncated (documented limitation).
2. CLASSIFY  first token must be exactly b"GET", else 405 + "Allow: GET".
3. RESOLVE   request target → path under the served root.
4. LIST      indexing on AND path ends with a separator → HTML listing.
             No extension hint: Content-Type comes from the body, so a
             listing is text/plain (octet-stream when empty).
             Any ListError → 500.
5. READ FILE otherwise → 200 / 403 / 404 / 500 (handlers.static).

Nothing is shared between calls except read-only configuration, so one
dispatcher instance serves every worker thread.

=============================================================================
"""

import logging
import os
from typing import Optional, Protocol

from .http.request import SUPPORTED_METHODS, parse_request_line, resolve_path
from .http.response import (
    SERVER_NAME,
    HTTPResponse,
    ResponseBuilder,
    HTTPStatus,
    WriteError,
)
from .handlers.listing import ListError, list_directory
from .handlers.static import serve_file


logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 1024


class RequestError(Exception):
    """
    A connection could not be served.

    Only raised for failures on the connection itself. Filesystem problems
    are answered with an error response instead.
    """

    @property
    def source(self) -> Optional[BaseException]:
        return self.__cause__


class ReadFromStreamError(RequestError):
    """Reading the request from the connection failed."""


class WriteToStreamError(RequestError):
    """Writing the response to the connection failed."""


class Stream(Protocol):
    """What the dispatcher needs from a connection."""

    def read_request(self, max_bytes: int) -> bytes: ...

    def write(self, data: bytes) -> None: ...


class RequestDispatcher:
    """
    Serves one request per connection from a directory on disk.

    Usage:
        dispatcher = RequestDispatcher("/srv/www", index=True)
        response = dispatcher.handle(conn)   # written to conn already

    Args:
        served_root: Directory to serve. Stored with a trailing separator.
        index: Render listings for paths ending in a separator.
        buffer_size: Maximum bytes read from the connection.
        server_name: Value of the Server header.
    """

    def __init__(
        self,
        served_root: str,
        index: bool = False,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        server_name: str = SERVER_NAME,
    ):
        self.served_root = os.path.join(os.path.abspath(served_root), "")
        self.index = index
        self.buffer_size = buffer_size
        self.server_name = server_name

    def handle(self, stream: Stream) -> HTTPResponse:
        """
        Read one request from ``stream`` and write its response.

        Returns:
            The response that was written, for access logging.

        Raises:
            ReadFromStreamError: The read failed; nothing was written.
            WriteToStreamError: The response could not be fully written.
        """
        try:
            buf = stream.read_request(self.buffer_size)
        except OSError as exc:
            raise ReadFromStreamError("failed to read request from stream") from exc

        response = self.respond(buf)

        try:
            response.write(stream)
        except WriteError as exc:
            raise WriteToStreamError(
                f"failed to write {response.status.status_line} response"
            ) from exc.source

        return response

    def respond(self, buf: bytes) -> HTTPResponse:
        """
        Build the response for a raw request buffer. No I/O on the
        connection; reads the filesystem only.
        """
        request_line = parse_request_line(buf)

        if not request_line.is_get:
            logger.debug(f"Rejecting method {request_line.method!r}")
            return (ResponseBuilder(server_name=self.server_name)
                .status(HTTPStatus.METHOD_NOT_ALLOWED)
                .allow(SUPPORTED_METHODS)
                .build())

        path = resolve_path(self.served_root, request_line.target)

        if self.index and path.endswith(os.sep):
            return self._listing(path)

        return serve_file(path, self.server_name)

    def _listing(self, path: str) -> HTTPResponse:
        builder = ResponseBuilder(server_name=self.server_name)

        try:
            html = list_directory(path)
        except ListError as exc:
            logger.error(f"Directory listing failed: {exc} ({exc.source})")
            return builder.status(HTTPStatus.INTERNAL_SERVICE_ERROR).build()

        return builder.status(HTTPStatus.OK).body(html).build()
