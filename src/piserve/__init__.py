"""
=============================================================================
PISERVE - A Tiny Static File Server
=============================================================================

Serves a directory over HTTP/1.1 from raw sockets. GET only, one request
per connection, optional directory listings.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    piserve/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m piserve)
    ├── server.py            # PiServer: wires everything together
    ├── dispatcher.py        # One connection → one response
    ├── config.py            # ServerConfig dataclass
    ├── access.py            # Access log records
    ├── core/
    │   ├── socket_server.py # Listening socket + accept loop
    │   ├── connection.py    # Client socket wrapper
    │   └── thread_pool.py   # Worker threads
    ├── http/
    │   ├── status_codes.py  # The five statuses and their phrases
    │   ├── mime_types.py    # Extension table + text/binary fallback
    │   ├── request.py       # Request line + path resolution
    │   └── response.py      # Wire-exact response serializer
    └── handlers/
        ├── static.py        # File reads → 200/403/404/500
        └── listing.py       # Directory listing fragment

=============================================================================
QUICK START
=============================================================================

    $ piserve --dir ./public --index --port 8000

    from piserve import PiServer, ServerConfig

    PiServer(ServerConfig(root="./public", index=True)).run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .dispatcher import RequestDispatcher
from .server import PiServer, create_server

__all__ = ["PiServer", "ServerConfig", "RequestDispatcher", "create_server", "__version__"]
