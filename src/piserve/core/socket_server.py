"""
=============================================================================
TCP LISTENER
=============================================================================

Owns the listening socket and the accept loop. Every accepted client is
wrapped in a Connection and handed to a callback; what happens next is the
dispatcher's business.

=============================================================================
SOCKET LIFECYCLE
=============================================================================

    family_for(host) ─► socket() ─► SO_REUSEADDR ─► bind() ─► listen(backlog)
                                                                  │
                          ┌───────────────────────────────────────┘
                          ▼
                 while running:
                     accept()          ← 1 s timeout so shutdown() is noticed
                     Connection(...)
                     on_connection(conn)

The bind host is an IP literal. "::1" or "::" gets an IPv6 socket, anything
else IPv4.

SIGINT / SIGTERM flip the running flag, the loop exits within a second and
the listening socket is closed. Signal handlers can only be installed from
the main thread; when the server runs in a background thread (tests,
embedding) that step is skipped and shutdown() must be called directly.

=============================================================================
"""

import socket
import signal
import logging
import threading
import time
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

ACCEPT_POLL_INTERVAL = 1.0

# Pause after a failed accept() so EMFILE and friends do not spin the loop
ACCEPT_ERROR_BACKOFF = 0.1

ConnectionCallback = Callable[[Connection], None]


def family_for(host: str) -> socket.AddressFamily:
    return socket.AF_INET6 if ":" in host else socket.AF_INET


class SocketServer:
    """
    Accepts TCP clients for piserve.

    Usage:
        listener = SocketServer(config)
        listener.start(lambda conn: pool.submit(serve, conn))  # Blocks
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._listener: Optional[socket.socket] = None
        self._running = False
        self._ready = threading.Event()
        self._previous_signal_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """The bound address. With port 0 this is the OS-assigned port."""
        if self._listener is not None:
            return self._listener.getsockname()[:2]
        return (self.config.host, self.config.port)

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening."""
        return self._ready.wait(timeout)

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _on_signal(self, signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, stopping")
        self.shutdown()

    def _install_signal_handlers(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread, leaving signal handlers alone")
            return

        for signum in (signal.SIGINT, signal.SIGTERM):
            self._previous_signal_handlers[signum] = signal.signal(signum, self._on_signal)

    def _restore_signal_handlers(self):
        while self._previous_signal_handlers:
            signum, handler = self._previous_signal_handlers.popitem()
            signal.signal(signum, handler)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def _bind(self) -> socket.socket:
        host, port = self.config.host, self.config.port
        sock = socket.socket(family_for(host), socket.SOCK_STREAM)

        # Restarting right after a stop would otherwise hit TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.settimeout(ACCEPT_POLL_INTERVAL)

        try:
            sock.bind((host, port))
            sock.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Cannot listen on {host}:{port}: {e}")
            sock.close()
            raise

        return sock

    def start(
        self,
        on_connection: ConnectionCallback,
        on_ready: Optional[Callable[[], None]] = None,
    ):
        """
        Bind, listen and run the accept loop. Blocks until shutdown().

        ``on_ready`` is called once, after listen() succeeded and before the
        first accept().

        Raises:
            OSError: bind() or listen() failed (address in use, privileged
                     port, malformed host).
        """
        self._listener = self._bind()
        self._running = True
        self._install_signal_handlers()

        host, port = self.address
        logger.info(f"Listening on {host}:{port}")
        self._ready.set()

        try:
            if on_ready is not None:
                on_ready()
            while self._running:
                self._accept_one(on_connection)
        finally:
            self._close()

    def _accept_one(self, on_connection: ConnectionCallback):
        try:
            client, peer = self._listener.accept()
        except socket.timeout:
            return
        except OSError as e:
            # One failed accept (ECONNABORTED, EMFILE...) must not stop the
            # listener; only shutdown() does that
            if self._running:
                logger.error(f"accept() failed: {e}")
                time.sleep(ACCEPT_ERROR_BACKOFF)
            return

        logger.debug(f"Client connected from {peer[0]}:{peer[1]}")

        try:
            conn = Connection(socket=client, address=peer, timeout=self.config.timeout)
        except OSError as e:
            logger.warning(f"Dropping client {peer[0]}: {e}")
            client.close()
            return

        on_connection(conn)

    def shutdown(self):
        """Stop the accept loop. Safe to call more than once."""
        if self._running:
            logger.info("Stopping listener...")
        self._running = False

    def _close(self):
        self._restore_signal_handlers()

        if self._listener is not None:
            try:
                self._listener.close()
            except OSError:
                pass
            self._listener = None

        self._running = False
        self._ready.clear()
        logger.info("Listener closed")
