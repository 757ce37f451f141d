"""
=============================================================================
PISERVE CLI ENTRY POINT
=============================================================================

    # Serve the current directory on 127.0.0.1:5555
    piserve

    # Serve ./public with directory listings, on all interfaces
    piserve --dir ./public --index --host 0.0.0.0

    # Same thing as a module
    python -m piserve --dir ./public --index

Flags override PISERVE_* environment variables (see ServerConfig.from_env),
which override the defaults.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ServerConfig, LOG_LEVELS, LOG_FORMATS
from .server import PiServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="piserve",
        description="Serve a directory over HTTP/1.1",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  piserve                               # Serve the current directory
  piserve --dir ./public --index        # With directory listings
  piserve --host 0.0.0.0 --port 8000    # Reachable from the network
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # SERVING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--dir", "-d",
        dest="root",
        default=None,
        help="Path of the directory to serve (default: current directory)"
    )

    parser.add_argument(
        "--index", "-i",
        action="store_true",
        default=None,
        help="Enable indexing for browser directory viewing"
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="IP address of the host to bind to (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to bind to (default: 5555)"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Number of worker threads (default: 4, max will be 2x this)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / META
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"piserve {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment first, then every flag that was actually given."""
    config = ServerConfig.from_env()

    if args.root is not None:
        config.root = args.root
    if args.index:
        config.index = True
    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.min_workers = args.workers
        config.max_workers = args.workers * 2
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format

    return config


def print_banner(config: ServerConfig, address) -> None:
    host, port = address
    print(f"= Listening on {host}:{port}")
    print(f"= Serving {config.served_root}")
    if config.index:
        print("= Indexing directories for browser file listing")
    sys.stdout.flush()


def main(argv=None):
    args = build_parser().parse_args(argv)

    # Malformed PISERVE_* numbers surface here as ValueError too
    try:
        config = config_from_args(args)
        server = PiServer(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    try:
        server.run(on_ready=lambda: print_banner(config, server.address))
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
