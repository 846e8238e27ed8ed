"""
=============================================================================
CLI ENTRY POINT
=============================================================================

    python -m helloserver                    # 0.0.0.0:8080, the usual
    python -m helloserver --port 3000        # somewhere else
    python -m helloserver --log-level DEBUG  # chatty

Startup is:

    1. print the banner (stdout)
    2. bind 0.0.0.0:8080 and serve until Ctrl+C

If step 2 can't bind, the error is printed to stdout and the process exits
with status 1. There is no retry and no fallback port.

=============================================================================
"""

import argparse
import sys
from typing import Optional, Sequence

from . import __version__
from .app import create_app, print_banner
from .config import ServerConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="helloserver",
        description="A tiny HTTP server with a home page, a greeter and an about page",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m helloserver                  # http://localhost:8080
  python -m helloserver --port 3000      # Custom port
  python -m helloserver --host 127.0.0.1 # Loopback only
        """
    )

    defaults = ServerConfig()

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=defaults.min_workers,
        help=f"Number of worker threads (default: {defaults.min_workers}, max will be 4x this)"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level,
        help=f"Logging level (default: {defaults.log_level})"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"helloserver {__version__}"
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    try:
        config = ServerConfig(
            host=args.host,
            port=args.port,
            min_workers=args.workers,
            max_workers=args.workers * 4,
            log_level=args.log_level,
        )
        server = create_app(config)
    except ValueError as e:
        print(f"❌ Invalid configuration: {e}")
        sys.exit(2)

    print_banner(config)

    try:
        server.run()
    except OSError as e:
        print("❌ Error starting server:", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
