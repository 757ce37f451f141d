"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Reads one file from disk and turns the outcome into a response.

=============================================================================
FILESYSTEM OUTCOME → STATUS
=============================================================================

    ┌──────────────────────────────┬──────────────────────────────────────┐
    │ open()/read() result         │ Response                             │
    ├──────────────────────────────┼──────────────────────────────────────┤
    │ bytes                        │ 200, body = bytes, Content-Type from │
    │                              │ the file's extension                 │
    │ PermissionError              │ 403, empty body                      │
    │ IsADirectoryError            │ 403, empty body                      │
    │ FileNotFoundError            │ 404, empty body                      │
    │ any other OSError            │ 500, empty body                      │
    │ ValueError (NUL in the path) │ 500, empty body                      │
    └──────────────────────────────┴──────────────────────────────────────┘

A directory requested without indexing (or without the trailing slash)
is refused with 403 rather than reported as a server fault.

Error responses carry no extension hint, so their Content-Type is the
generic binary type of an empty body.

The whole file is read into memory. There are no range requests, no ETag
and no caching headers.

=============================================================================
"""

import logging

from ..http.mime_types import extension_of
from ..http.response import (
    HTTPResponse, ResponseBuilder, HTTPStatus,
)


logger = logging.getLogger(__name__)


def status_for_error(exc: Exception) -> HTTPStatus:
    """
    Map a failed file read to the status reported to the client.

        >>> status_for_error(FileNotFoundError())
        <HTTPStatus.NOT_FOUND: 404>
    """
    if isinstance(exc, (PermissionError, IsADirectoryError)):
        return HTTPStatus.FORBIDDEN
    if isinstance(exc, FileNotFoundError):
        return HTTPStatus.NOT_FOUND
    return HTTPStatus.INTERNAL_SERVICE_ERROR


def read_file(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def serve_file(path: str, server_name: str) -> HTTPResponse:
    """
    Build the response for a GET of a regular file.

    Args:
        path: Resolved filesystem path.
        server_name: Value for the Server header.

    Returns:
        200 with the file's bytes, or an empty-bodied 403/404/500.
    """
    builder = ResponseBuilder(server_name=server_name)

    try:
        content = read_file(path)
    except (OSError, ValueError) as exc:
        # ValueError: the path holds a NUL byte, which no filesystem accepts
        status = status_for_error(exc)
        if status == HTTPStatus.INTERNAL_SERVICE_ERROR:
            logger.error(f"Error reading file {path}: {exc}")
        else:
            logger.debug(f"{status.status_line} for {path}: {exc}")
        return builder.status(status).build()

    return (builder
        .status(HTTPStatus.OK)
        .body(content)
        .extension(extension_of(path))
        .build())
