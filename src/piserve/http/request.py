"""
=============================================================================
REQUEST LINE PARSING & PATH RESOLUTION
=============================================================================

piserve only ever looks at the first line of a request:

    GET /docs/readme.md HTTP/1.1\r\n
    └┬┘ └──────┬──────┘ └──┬───┘
   method    target     version

Headers are never parsed. The body never exists (GET only).

=============================================================================
FROM TARGET TO FILESYSTEM PATH
=============================================================================

    served root = "/srv/www/"

    target "/"                → "/srv/www/"
    target "/docs/readme.md"  → "/srv/www/docs/readme.md"
    target "/docs/"           → "/srv/www/docs/"     (trailing / kept!)

The trailing separator is meaningful: with indexing enabled, a path that
ends in "/" is listed instead of read. That is why the resolved path is a
plain string and not a pathlib.Path, which would drop it.

=============================================================================
KNOWN LIMITATIONS
=============================================================================

- Only the bytes from a single bounded read are seen. A request line longer
  than the read buffer is cut and resolves to whatever prefix arrived.
- The target is decoded as UTF-8 (undecodable bytes become U+FFFD). No
  percent-decoding and no query-string splitting is done.
- ".." segments are NOT normalized or rejected. See resolve_path().

=============================================================================
"""

import os
from dataclasses import dataclass


SUPPORTED_METHODS = ("GET",)

PROTOCOL_MARKER = b" HTTP/1.1"


@dataclass(frozen=True)
class RequestLine:
    """
    The decomposed first line of a request.

    Attributes:
        method: First space-delimited token, raw bytes (e.g. b"GET").
        target: Request target with the protocol marker removed.
    """

    method: bytes
    target: bytes

    @property
    def is_get(self) -> bool:
        return self.method == b"GET"


def parse_method(buf: bytes) -> bytes:
    """
    Return the first space-delimited token of the buffer.

        >>> parse_method(b"GET /test.html\\r\\n")
        b'GET'
        >>> parse_method(b"POST / HTTP/1.1\\r\\n")
        b'POST'
        >>> parse_method(b"")
        b''
    """
    return buf.split(b" ", 1)[0]


def extract_target(buf: bytes) -> bytes:
    """
    Extract the request target from a raw request buffer.

    Takes everything after the method token up to the first carriage
    return, then strips the trailing " HTTP/1.1". If the line carries some
    other version string, the text after the last space is dropped instead.

        >>> extract_target(b"GET /index.html HTTP/1.1\\r\\nHost: x\\r\\n\\r\\n")
        b'/index.html'
        >>> extract_target(b"GET / HTTP/1.1\\r\\n")
        b'/'
    """
    _, _, rest = buf.partition(b" ")
    line = rest.split(b"\r", 1)[0]

    if line.endswith(PROTOCOL_MARKER):
        return line[: -len(PROTOCOL_MARKER)]

    target, sep, _ = line.rpartition(b" ")
    if not sep:
        # No version at all ("GET /path"): the whole remainder is the target
        return line
    return target


def parse_request_line(buf: bytes) -> RequestLine:
    """Split a raw request buffer into method and target."""
    return RequestLine(method=parse_method(buf), target=extract_target(buf))


def resolve_path(served_root: str, target: bytes) -> str:
    """
    Turn a request target into a filesystem path under ``served_root``.

    Args:
        served_root: Directory being served. Callers pass it with a trailing
                     separator so that "/" resolves to a listable path.
        target: Raw request target bytes, e.g. b"/docs/".

    Returns:
        The resolved path as a string, stripped of surrounding whitespace.

    NOTE: the target is joined as-is. "/../etc/passwd" resolves OUTSIDE the
    served root. piserve is meant for trusted local networks; put it behind
    something that canonicalizes paths before exposing it anywhere else.
    """
    if target == b"/":
        path = served_root
    else:
        relative = target.decode("utf-8", errors="replace").lstrip("/")
        path = os.path.join(served_root, relative)

    return path.strip()
