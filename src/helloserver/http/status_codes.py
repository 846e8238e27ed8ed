"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can actually emit, with their reason phrases.

    HTTP/1.1 404 Not Found
             ─── ─────────
              │      │
              │      └── Reason phrase (from _STATUS_PHRASES)
              └───────── Status code (the enum value)

=============================================================================
STATUS CODE CLASSES
=============================================================================

    2xx  Success       - the three pages
    3xx  Redirection   - /greet → /greet/
    4xx  Client error  - unknown path, bad request line, slow client
    5xx  Server error  - handler crashed, pool overloaded, bad version

HTTPStatus is an IntEnum, so it compares equal to plain ints:

    HTTPStatus.NOT_FOUND == 404   # True
    f"{HTTPStatus.OK}"           # "200"

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """HTTP response status codes used by the server."""

    # 2xx SUCCESS
    OK = 200

    # 3xx REDIRECTION
    MOVED_PERMANENTLY = 301     # Prefix route requested without its slash
    FOUND = 302

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400                   # Malformed request line or path
    NOT_FOUND = 404                     # No route matches
    METHOD_NOT_ALLOWED = 405            # Path exists, method doesn't
    REQUEST_TIMEOUT = 408               # Client connected but never sent
    PAYLOAD_TOO_LARGE = 413             # Over max_request_size

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500         # Handler raised
    SERVICE_UNAVAILABLE = 503           # Thread pool queue is full
    HTTP_VERSION_NOT_SUPPORTED = 505    # Anything but HTTP/1.0 and 1.1

    def __str__(self) -> str:
        return str(int(self))

    @property
    def phrase(self) -> str:
        """Standard reason phrase, e.g. 'Not Found'."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_redirect(self) -> bool:
        return 300 <= self < 400

    @property
    def is_error(self) -> bool:
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.FOUND: "Found",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
