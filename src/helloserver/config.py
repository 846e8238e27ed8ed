"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable of the server lives in one dataclass. The defaults ARE the
product: running with a bare ServerConfig() gives you the classic behaviour
of listening on every interface, port 8080, plain HTTP.

=============================================================================
WHERE VALUES COME FROM
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION SOURCES                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Command-line arguments (optional overrides)                    │
    │      └── python -m helloserver --port 3000                          │
    │                                                                      │
    │   2. Default values (in this dataclass)                             │
    │      └── 0.0.0.0:8080, 4-16 workers, INFO logging                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

There are no config files and no environment variables. The CLI only
overrides what you pass it; everything else is the default below.

=============================================================================
FAIL FAST
=============================================================================

validate() runs when the HTTPServer is constructed, long before bind().
A typo like port=80800 blows up immediately with a clear ValueError
instead of a confusing socket error later.

=============================================================================
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    Development:
        ServerConfig(host="127.0.0.1", log_level="DEBUG")

    Tests:
        ServerConfig(host="127.0.0.1", port=free_port, log_level="WARNING")
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    # "0.0.0.0" = every interface, same as listening on ":8080"
    host: str = "0.0.0.0"
    port: int = 8080

    # Pending connections the kernel queues before refusing new ones
    backlog: int = 128

    # Bytes per recv() call
    buffer_size: int = 8192

    # Seconds to wait for the first request on a new connection
    timeout: Optional[float] = 30.0

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0

    # Nothing we serve takes a body, so 1 MB is generous
    max_request_size: int = 1024 * 1024

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16

    # Connections waiting for a worker before we answer 503
    queue_size: int = 100

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING & IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    server_name: str = "helloserver/1.0"

    @property
    def public_url(self) -> str:
        """Base URL shown to humans in the startup banner."""
        host = "localhost" if self.host in ("", "0.0.0.0", "127.0.0.1") else self.host
        return f"http://{host}:{self.port}"

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: If any value is out of range.
        """
        # Port 0 is allowed: the OS picks a free port (handy in tests)
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be > 0")

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {self.log_level}")
