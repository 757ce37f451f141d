"""
=============================================================================
HTTP RESPONSE SERIALIZER
=============================================================================

Builds and writes piserve's HTTP/1.1 responses.

=============================================================================
WIRE FORMAT
=============================================================================

Every response has the same shape, in this exact header order:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │    HTTP/1.1 405 METHOD NOT ALLOWED\r\n      ← status line           │
    │    Server: piserve/1.0.0\r\n                ← always                │
    │    Allow: GET\r\n                           ← 405 only, if non-empty│
    │    Content-Type: application/octet-stream\r\n  ← always             │
    │    Content-Length: 0\r\n                    ← always == len(body)   │
    │    \r\n                                     ← end of headers        │
    │    <body bytes>                                                     │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

No Date, no Connection, no caching headers. The order never changes, so a
response can be compared byte for byte in tests.

Content-Type is present even for empty bodies. With an extension hint it
comes from the extension table; without one it is inferred from the body
(see mime_types.resolve_content_type).

=============================================================================
WRITING
=============================================================================

HTTPResponse.write() makes one sequential pass over the sink. If the sink
raises part way through, WriteError is raised immediately; whatever bytes
already left are not recalled.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import BinaryIO, Optional, Sequence, Tuple, Union

from .. import __version__
from .mime_types import resolve_content_type
from .status_codes import HTTPStatus


SERVER_NAME = f"piserve/{__version__}"

HTTP_VERSION = "HTTP/1.1"
CRLF = b"\r\n"


class WriteError(Exception):
    """
    Writing a response to its sink failed.

    The underlying OSError is chained as ``__cause__`` and exposed as
    ``source``.
    """

    def __init__(self, message: str = "failed to write data to writer"):
        super().__init__(message)

    @property
    def source(self) -> Optional[BaseException]:
        return self.__cause__


@dataclass
class HTTPResponse:
    """
    A single response, built fresh per request and discarded after writing.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        Dispatcher builds        write(sink)              Peer receives
        HTTPResponse    ─────►   header lines    ─────►   raw bytes
          status=200,            then body
          body=b"...",
          extension="html"

    =========================================================================

    Attributes:
        status: One of the five HTTPStatus values.
        body: Exact body bytes. Content-Length is derived from it.
        extension: Extension hint for Content-Type, without the dot.
        allow: Methods for the Allow header. Only emitted for 405.
        server_name: Value of the Server header.
    """

    status: HTTPStatus = HTTPStatus.OK
    body: bytes = b""
    extension: Optional[str] = None
    allow: Tuple[str, ...] = field(default_factory=tuple)
    server_name: str = SERVER_NAME

    @property
    def status_line(self) -> str:
        """e.g. ``"HTTP/1.1 404 NOT FOUND"``"""
        return f"{HTTP_VERSION} {self.status.status_line}"

    @property
    def content_type(self) -> str:
        return resolve_content_type(self.extension, self.body)

    @property
    def content_length(self) -> int:
        return len(self.body)

    def header_lines(self) -> list:
        """
        The header fields in wire order, as ``(name, value)`` pairs.
        """
        headers = [("Server", self.server_name)]

        if self.status == HTTPStatus.METHOD_NOT_ALLOWED and self.allow:
            headers.append(("Allow", ", ".join(self.allow)))

        headers.append(("Content-Type", self.content_type))
        headers.append(("Content-Length", str(self.content_length)))
        return headers

    def write(self, sink: BinaryIO) -> None:
        """
        Write the complete response to ``sink``.

        ``sink`` is anything with a ``write(bytes)`` method: a socket
        file, a Connection, an io.BytesIO in tests.

        Raises:
            WriteError: The sink failed. Chained to the original OSError.
        """
        try:
            sink.write(self.status_line.encode("ascii") + CRLF)

            for name, value in self.header_lines():
                sink.write(f"{name}: {value}".encode("latin-1") + CRLF)

            sink.write(CRLF)
            sink.write(self.body)
        except OSError as exc:
            raise WriteError() from exc

    def to_bytes(self) -> bytes:
        """
        Serialize the whole response into one bytes object.

        Produces exactly what write() would send.
        """
        lines = [self.status_line]
        for name, value in self.header_lines():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("latin-1") + CRLF
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .body(b"<h1>hi</h1>")
            .extension("html")
            .build())

    Each method returns ``self`` except build().
    """

    def __init__(self, server_name: str = SERVER_NAME):
        self._status = HTTPStatus.OK
        self._body = b""
        self._extension: Optional[str] = None
        self._allow: Tuple[str, ...] = ()
        self._server_name = server_name

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set the body. Strings are encoded as UTF-8."""
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = body
        return self

    def extension(self, extension: Optional[str]) -> "ResponseBuilder":
        """Set the Content-Type hint (an extension without the dot)."""
        self._extension = extension
        return self

    def allow(self, methods: Sequence[str]) -> "ResponseBuilder":
        """Set the methods advertised by a 405 response."""
        self._allow = tuple(methods)
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            body=self._body,
            extension=self._extension,
            allow=self._allow,
            server_name=self._server_name,
        )

