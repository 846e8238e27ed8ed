"""
=============================================================================
APPLICATION ASSEMBLY
=============================================================================

Builds the route table and the server around it. This is the one place
that knows which URL goes to which handler.

    ┌─────────────────┬─────────┬───────────────┬──────────────────────┐
    │ Pattern         │ Method  │ Match         │ Handler              │
    ├─────────────────┼─────────┼───────────────┼──────────────────────┤
    │ /               │ any     │ exact         │ HomeHandler(clock)   │
    │ /greet/*name    │ any     │ prefix        │ greet                │
    │ /about          │ any     │ exact         │ about                │
    └─────────────────┴─────────┴───────────────┴──────────────────────┘

Everything else is the router's business: /greet redirects to /greet/,
any other path is a 404.

=============================================================================
"""

import sys
from typing import Optional, TextIO

from .clock import Clock, SystemClock
from .config import ServerConfig
from .handlers import HomeHandler, greet, about
from .http import Router
from .middleware import LoggingMiddleware
from .server import HTTPServer


def build_router(clock: Optional[Clock] = None) -> Router:
    """Construct the route table. Called once per server."""
    router = Router()
    router.add_route("/", HomeHandler(clock or SystemClock()).handle, name="home")
    router.add_route("/greet/*name", greet, name="greet")
    router.add_route("/about", about, name="about")
    return router


def create_app(
    config: Optional[ServerConfig] = None,
    clock: Optional[Clock] = None,
    access_log: bool = True,
) -> HTTPServer:
    """
    Build a ready-to-run server.

    Args:
        config: Server settings; defaults to 0.0.0.0:8080.
        clock: Time source for the home page; defaults to the system clock.
        access_log: Log one line per request to "helloserver.access".
    """
    server = HTTPServer(config, router=build_router(clock))
    if access_log:
        server.use(LoggingMiddleware())
    return server


def print_banner(config: ServerConfig, file: Optional[TextIO] = None) -> None:
    """Print the startup text shown before the server starts listening."""
    out = file or sys.stdout
    url = config.public_url

    print("Hello, World! This is my first Go program!", file=out)
    print("I'm learning Go programming! 🚀", file=out)
    print(file=out)
    print(f"🚀 Server starting on {url}", file=out)
    print("📍 Try these endpoints:", file=out)
    print(f"   - {url}", file=out)
    print(f"   - {url}/greet/YourName", file=out)
    print(f"   - {url}/about", file=out)
    print("\nPress Ctrl+C to stop the server", file=out)
    out.flush()
