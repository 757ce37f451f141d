"""
=============================================================================
ACCESS LOG
=============================================================================

One log record per served connection, on the "piserve.access" logger.

    text:  127.0.0.1 - - [2026-10-19T12:00:00+00:00] "GET /a.txt" 200 4 0.41ms
    json:  {"connection_id": "3f2a9c1d", "client_ip": "127.0.0.1", ...}

The logger is separate from the module loggers so it can be routed on its
own:

    logging.getLogger("piserve.access").addHandler(file_handler)

=============================================================================
"""

import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timezone

from .http.response import HTTPResponse


logger = logging.getLogger("piserve.access")


@dataclass
class RequestLog:
    """
    Structured log entry for one request.

    ``request_line`` is the first line of what the client sent, decoded
    leniently; it may be empty or truncated.
    """

    connection_id: str
    client_ip: str
    request_line: str
    status_code: int
    content_length: int
    content_type: str
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.request_line}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


def first_line(buf: bytes, limit: int = 200) -> str:
    line = buf.split(b"\r", 1)[0].split(b"\n", 1)[0]
    return line[:limit].decode("utf-8", errors="replace")


class AccessLogger:
    """
    Formats and emits RequestLog entries.

    Args:
        log_format: "text" or "json".
        log_level: Level the records are emitted at.
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        self.log_format = log_format
        self.log_level = log_level

    def build(
        self,
        connection_id: str,
        client_ip: str,
        request_line: str,
        response: HTTPResponse,
        duration_ms: float,
    ) -> RequestLog:
        return RequestLog(
            connection_id=connection_id,
            client_ip=client_ip,
            request_line=request_line,
            status_code=int(response.status),
            content_length=response.content_length,
            content_type=response.content_type,
            duration_ms=duration_ms,
            timestamp=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        )

    def format(self, entry: RequestLog) -> str:
        if self.log_format == "json":
            return json.dumps(entry.to_dict())
        return entry.to_text()

    def emit(self, entry: RequestLog) -> None:
        logger.log(self.log_level, self.format(entry))
