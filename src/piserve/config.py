"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Everything the server needs to know, in one dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    Priority (highest to lowest):

    1. Command-line flags        piserve --dir ./public --index
    2. Environment variables     PISERVE_DIR=./public PISERVE_INDEX=1 piserve
    3. Defaults below

The dispatcher itself only ever sees three of these values: the served
root, the indexing flag and the read buffer size. The rest configure the
socket, the worker pool and logging.

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from .http.response import SERVER_NAME


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class ServerConfig:
    """
    Configuration for piserve.

        Development:
            ServerConfig(root="./public", index=True, log_level="DEBUG")

        LAN file share:
            ServerConfig(host="0.0.0.0", port=8000, root="/srv/share", index=True)
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """IP address to bind to. 0.0.0.0 exposes the server to the network."""

    port: int = 5555
    """Port to listen on. 0 lets the OS pick a free one."""

    backlog: int = 128
    """Maximum queued connections before the OS starts refusing."""

    timeout: Optional[float] = 30.0
    """Per-connection socket timeout in seconds. None blocks forever."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVING
    # ─────────────────────────────────────────────────────────────────────

    root: str = field(default_factory=os.getcwd)
    """Directory to serve. Defaults to the current working directory."""

    index: bool = False
    """Render a directory listing for request paths ending in '/'."""

    buffer_size: int = 1024
    """
    Bytes read from each connection, in a single read.
    Request lines longer than this are truncated.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16
    queue_size: int = 100

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"
    """Access log format: 'text' (one line per request) or 'json'."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = SERVER_NAME
    """Value of the Server response header."""

    @property
    def served_root(self) -> str:
        """Absolute root path, always ending in a separator."""
        return os.path.join(os.path.abspath(self.root), "")

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

            PISERVE_HOST        Server host (default: 127.0.0.1)
            PISERVE_PORT        Server port (default: 5555)
            PISERVE_DIR         Directory to serve (default: cwd)
            PISERVE_INDEX       1/true/yes/on to enable listings
            PISERVE_WORKERS     Minimum worker threads (default: 4)
            PISERVE_TIMEOUT     Socket timeout in seconds (default: 30)
            PISERVE_LOG_LEVEL   Logging level (default: INFO)
            PISERVE_LOG_FORMAT  text or json (default: text)
        """
        workers = int(os.getenv("PISERVE_WORKERS", "4"))
        return cls(
            host=os.getenv("PISERVE_HOST", "127.0.0.1"),
            port=int(os.getenv("PISERVE_PORT", "5555")),
            root=os.getenv("PISERVE_DIR") or os.getcwd(),
            index=os.getenv("PISERVE_INDEX", "").strip().lower() in _TRUTHY,
            min_workers=workers,
            max_workers=max(workers * 2, workers),
            timeout=float(os.getenv("PISERVE_TIMEOUT", "30")),
            log_level=os.getenv("PISERVE_LOG_LEVEL", "INFO"),
            log_format=os.getenv("PISERVE_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Fail fast on bad configuration, before any socket is opened.

        Raises:
            ValueError: With a message naming the offending setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if not os.path.isdir(self.root):
            raise ValueError(f"Directory to serve does not exist: {self.root}")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 16:
            raise ValueError("buffer_size must be >= 16")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}")
