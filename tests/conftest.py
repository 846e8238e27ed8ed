"""
pytest configuration and fixtures.
"""

import socket
import threading
from datetime import datetime
from typing import Callable, Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from helloserver import HTTPServer, ServerConfig, create_app
from helloserver.clock import FixedClock


FIXED_MOMENT = datetime(2026, 10, 19, 9, 30, 0)


@pytest.fixture
def sample_greet_request() -> bytes:
    """Sample HTTP GET request for the greeter."""
    return (
        b"GET /greet/Ada HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_about_request() -> bytes:
    """Sample HTTP POST to /about with a body and a query string."""
    body = b"ignored=yes"
    return (
        b"POST /about?lang=en&x= HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/x-www-form-urlencoded\r\n"
        b"Content-Length: %d\r\n" % len(body) +
        b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def fixed_clock() -> FixedClock:
    """A clock stuck at 2026-10-19 09:30:00."""
    return FixedClock(FIXED_MOMENT)


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class LiveServer:
    """Runs an HTTPServer in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.stop()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def serve() -> Generator[Callable[[HTTPServer], LiveServer], None, None]:
    """Start any HTTPServer in the background; stopped after the test."""
    started = []

    def _serve(server: HTTPServer) -> LiveServer:
        srv = LiveServer(server)
        srv.start()
        started.append(srv)
        return srv

    yield _serve

    for srv in started:
        srv.stop()


@pytest.fixture
def live_server(free_port: int, fixed_clock: FixedClock,
                serve: Callable[[HTTPServer], LiveServer]) -> LiveServer:
    """The real application, listening on a free loopback port."""
    server = create_app(
        ServerConfig(
            host="127.0.0.1",
            port=free_port,
            min_workers=2,
            max_workers=4,
            timeout=5.0,
            keep_alive_timeout=1.0,
            log_level="WARNING",
        ),
        clock=fixed_clock,
    )
    return serve(server)
