"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One line per request, in (roughly) Common Log Format:

    127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "GET /greet/Ada" 200 17 0.42ms
    ─────┬───       ──────────┬───────────────  ──────┬──────  ─┬─ ─┬─ ──┬───
      client               timestamp              request   status │ duration
                                                                  bytes

The path is written percent-encoded again, the way it travels on the wire,
so "/greet/%0Afake" stays on one line instead of forging a second one.

Lines go to the "helloserver.access" logger, so they can be silenced or
redirected independently of the server's own logs:

    logging.getLogger("helloserver.access").setLevel(logging.WARNING)

=============================================================================
"""

import time
import logging
from typing import Optional
from dataclasses import dataclass
from urllib.parse import quote

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse

logger = logging.getLogger("helloserver.access")

# Left as-is when a path is percent-encoded back for the log line
_PATH_SAFE = "/:@!$&'()*+,;=~"


@dataclass
class RequestLog:
    """Everything that goes into one access log line."""

    method: str
    path: str
    client_ip: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_text(self) -> str:
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{self.method} {quote(self.path, safe=_PATH_SAFE)}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Logs every request with its status and timing.

    Args:
        log_level: Level for successful requests.
        skip_paths: Exact paths that are never logged.
    """

    def __init__(
        self,
        log_level: int = logging.INFO,
        skip_paths: Optional[list[str]] = None,
    ):
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        start_time = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {quote(request.path, safe=_PATH_SAFE)} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        if request.path in self.skip_paths:
            return response

        entry = RequestLog(
            method=request.method,
            path=request.path,
            client_ip=request.client_address[0],
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=(time.perf_counter() - start_time) * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )
        logger.log(self.log_level, entry.to_text())

        return response
