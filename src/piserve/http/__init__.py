"""
HTTP protocol pieces: status codes, content types, request-line parsing and
response serialization.
"""

from .status_codes import HTTPStatus
from .mime_types import (
    MIME_TYPES,
    TEXT_MIME_TYPE,
    BINARY_MIME_TYPE,
    extension_of,
    lookup_extension,
    mime_from_content,
    resolve_content_type,
)
from .request import (
    RequestLine,
    SUPPORTED_METHODS,
    extract_target,
    parse_method,
    parse_request_line,
    resolve_path,
)
from .response import (
    SERVER_NAME,
    HTTPResponse,
    ResponseBuilder,
    WriteError,
)

__all__ = [
    "HTTPStatus",
    "MIME_TYPES",
    "TEXT_MIME_TYPE",
    "BINARY_MIME_TYPE",
    "extension_of",
    "lookup_extension",
    "mime_from_content",
    "resolve_content_type",
    "RequestLine",
    "SUPPORTED_METHODS",
    "extract_target",
    "parse_method",
    "parse_request_line",
    "resolve_path",
    "SERVER_NAME",
    "HTTPResponse",
    "ResponseBuilder",
    "WriteError",
]
