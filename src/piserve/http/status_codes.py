"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The complete set of statuses piserve can answer with.

=============================================================================
TERMINAL OUTCOMES ONLY
=============================================================================

Every request ends in exactly one of these five responses:

    ┌────────┬───────────────────────────────┬────────────────────────────┐
    │  Code  │ Status line (wire)            │ Produced when              │
    ├────────┼───────────────────────────────┼────────────────────────────┤
    │  200   │ 200 OK                        │ file read / dir listed     │
    │  403   │ 403 FORBIDDEN                 │ permission denied, or the  │
    │        │                               │ target is a directory      │
    │  404   │ 404 NOT FOUND                 │ nothing at that path       │
    │  405   │ 405 METHOD NOT ALLOWED        │ anything other than GET    │
    │  500   │ 500 INTERNAL SERVICE ERROR    │ any other filesystem error │
    └────────┴───────────────────────────────┴────────────────────────────┘

The reason phrases are NOT the RFC 7231 wording. They are upper-cased and
500 says "SERVICE" rather than "SERVER". Existing clients of this server
match on them, so they are reproduced byte for byte.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes with piserve's fixed reason phrases.

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'NOT FOUND'
        >>> HTTPStatus.NOT_FOUND.status_line
        '404 NOT FOUND'
    """

    OK = 200
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    INTERNAL_SERVICE_ERROR = 500

    @property
    def phrase(self) -> str:
        """Reason phrase used in the status line."""
        return _PHRASES[self]

    @property
    def status_line(self) -> str:
        """Code and phrase, e.g. ``"200 OK"`` (without the version)."""
        return f"{self.value} {self.phrase}"


_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.FORBIDDEN: "FORBIDDEN",
    HTTPStatus.NOT_FOUND: "NOT FOUND",
    HTTPStatus.METHOD_NOT_ALLOWED: "METHOD NOT ALLOWED",
    HTTPStatus.INTERNAL_SERVICE_ERROR: "INTERNAL SERVICE ERROR",
}
