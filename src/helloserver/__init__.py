"""
=============================================================================
HELLOSERVER
=============================================================================

A small HTTP/1.1 server, built on raw sockets, that serves three pages:

    GET /                →  Welcome to my Go server! 🚀
                            Current time: 2026-10-19 09:30:00
    GET /greet/<name>    →  Hello, <name>! 👋
    GET /about           →  This is a simple Go web server
                            Built by a beginner learning Go!

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    helloserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m helloserver)
    ├── app.py               # Route table + server assembly + banner
    ├── server.py            # HTTPServer: ties everything together
    ├── config.py            # ServerConfig dataclass
    ├── clock.py             # Injectable time source
    ├── core/                # Sockets and threads
    │   ├── socket_server.py
    │   ├── connection.py
    │   └── thread_pool.py
    ├── http/                # The protocol
    │   ├── request.py
    │   ├── response.py
    │   ├── router.py
    │   └── status_codes.py
    ├── middleware/          # Around-every-request code
    │   ├── base.py
    │   └── logging.py
    └── handlers/            # The three pages
        └── pages.py

=============================================================================
QUICK START
=============================================================================

    from helloserver import create_app, ServerConfig

    server = create_app(ServerConfig(port=8080))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import HTTPServer
from .app import create_app, build_router

__all__ = ["HTTPServer", "ServerConfig", "create_app", "build_router", "__version__"]
