"""
=============================================================================
PISERVE SERVER
=============================================================================

Wires the pieces together and runs them.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   SocketServer ── accept ──► Connection ── submit ──► ThreadPool    │
    │                                                           │         │
    │                                                           ▼         │
    │                                 _process_connection(conn)           │
    │                                   ├─► RequestDispatcher.handle()    │
    │                                   ├─► AccessLogger.emit()           │
    │                                   └─► conn.close()                  │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

A failure on one connection (client hung up, timed out) is logged and that
connection is dropped. Nothing else is affected.

=============================================================================
"""

import logging
import time
from typing import Callable, Optional

from .access import AccessLogger, first_line
from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool
from .dispatcher import RequestDispatcher, RequestError


logger = logging.getLogger(__name__)


class PiServer:
    """
    Static file server.

    Usage:
        server = PiServer(ServerConfig(root="./public", index=True))
        server.run()   # Blocks until Ctrl+C / SIGTERM / shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._dispatcher = RequestDispatcher(
            self.config.served_root,
            index=self.config.index,
            buffer_size=self.config.buffer_size,
            server_name=self.config.server_name,
        )
        self._access_log = AccessLogger(log_format=self.config.log_format)

        self._running = False

    @property
    def dispatcher(self) -> RequestDispatcher:
        return self._dispatcher

    @property
    def address(self):
        """Bound (host, port); meaningful once the server is listening."""
        return self._socket_server.address

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        on_ready: Optional[Callable[[], None]] = None,
    ):
        """
        Start the server (blocking).

        Args:
            host: Override config host.
            port: Override config port.
            on_ready: Called once the socket is listening.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._running = True
        self._setup_logging()
        self._thread_pool.start()

        try:
            self._socket_server.start(self._handle_connection, on_ready=on_ready)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask a running server to stop. Returns immediately."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("piserve").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=10.0)
        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Called by SocketServer for every accepted client."""
        submitted = self._thread_pool.submit(self._process_connection, conn)

        if not submitted:
            # No response is owed for a connection we never read from
            logger.warning(f"[{conn.id}] Thread pool full, dropping connection")
            conn.close()

    def _process_connection(self, conn: Connection):
        """Serve one connection (runs in a worker thread)."""
        start = time.perf_counter()

        with conn:
            try:
                response = self._dispatcher.handle(conn)
            except RequestError as e:
                logger.warning(f"[{conn.id}] {e}: {e.source}")
                return

        duration_ms = (time.perf_counter() - start) * 1000
        entry = self._access_log.build(
            connection_id=conn.id,
            client_ip=conn.client_ip,
            request_line=first_line(conn.raw_request),
            response=response,
            duration_ms=duration_ms,
        )
        self._access_log.emit(entry)


def create_server(config: Optional[ServerConfig] = None) -> PiServer:
    """Factory for a configured, not yet running, server."""
    return PiServer(config)
