"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them to bytes.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                            ← status line     │
    │    Content-Type: text/plain; charset=utf-8\r\n    ← headers         │
    │    Content-Length: 33\r\n                                            │
    │    Date: Mon, 19 Oct 2026 10:00:00 GMT\r\n                           │
    │    Server: helloserver/1.0\r\n                                       │
    │    \r\n                                           ← end of headers  │
    │    This is a simple Go web server\n               ← body            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Content-Length, Date and Server are filled in by to_bytes() if the handler
didn't set them. Content-Length is counted in BYTES of the UTF-8 body,
not characters: "🚀" is one character but four bytes.

=============================================================================
HEAD REQUESTS
=============================================================================

A HEAD response is the GET response minus the body. The handler builds
the full response as usual; the server serializes it with
include_body=False, so Content-Length still advertises what a GET would
have returned.

=============================================================================
ERROR RESPONSES
=============================================================================

Errors are plain text, one line, newline-terminated:

    404 page not found\n
    405 method not allowed\n
    400 Bad Request\n

They also carry "X-Content-Type-Options: nosniff" so browsers don't try
to guess that the text is something more exciting.

=============================================================================
"""

import html
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Union

from .status_codes import HTTPStatus


TEXT_PLAIN = "text/plain; charset=utf-8"
TEXT_HTML = "text/html; charset=utf-8"


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be sent.

    Usually created through ResponseBuilder or one of the helpers at the
    bottom of this module rather than directly.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 404 Not Found" """
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def text(self) -> str:
        """Body decoded as UTF-8 (convenient in tests and logs)."""
        return self.body.decode("utf-8", errors="replace")

    def to_bytes(
        self,
        server_name: str = "helloserver/1.0",
        include_body: bool = True,
    ) -> bytes:
        """
        Serialize to wire format.

        Args:
            server_name: Value for the Server header if not already set.
            include_body: False for HEAD requests. Headers (including
                Content-Length) are unchanged, only the body is dropped.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))

        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"

        if not include_body:
            return header_bytes
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .text("Hello, Ada! 👋\\n")
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._body = body
        return self

    def text(self, text: str, content_type: str = TEXT_PLAIN) -> "ResponseBuilder":
        """Set a UTF-8 text body and its Content-Type."""
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def redirect(self, location: str, permanent: bool = False) -> "ResponseBuilder":
        """
        Point the client somewhere else.

        The body is a tiny HTML link, for clients that don't follow
        redirects automatically. The location is HTML-escaped there (it
        carries the client's query string) and sent as-is in the header.
        """
        self._status = HTTPStatus.MOVED_PERMANENTLY if permanent else HTTPStatus.FOUND
        self._headers["Location"] = location
        return self.text(
            f'<a href="{html.escape(location)}">{self._status.phrase}</a>.\n\n',
            content_type=TEXT_HTML,
        )

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_http_date(dt: datetime) -> str:
    """
    Format a UTC datetime as an HTTP date (RFC 7231 IMF-fixdate).

    Spelled out by hand because strftime("%a") follows the locale.

        >>> format_http_date(datetime(2026, 10, 19, 9, 30, 0))
        'Mon, 19 Oct 2026 09:30:00 GMT'
    """
    return (
        f"{_DAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
#     return ok("This is a simple Go web server\n")
#     return not_found()
#     return redirect("/greet/", permanent=True)
#
# =============================================================================

def ok(body: Union[str, bytes] = "", content_type: Optional[str] = None) -> HTTPResponse:
    """200 OK. Strings are sent as text/plain unless told otherwise."""
    builder = ResponseBuilder().status(HTTPStatus.OK)
    if isinstance(body, str):
        builder.text(body, content_type or TEXT_PLAIN)
    else:
        builder.body(body)
        if content_type:
            builder.content_type(content_type)
    return builder.build()


def redirect(location: str, permanent: bool = False) -> HTTPResponse:
    return ResponseBuilder().redirect(location, permanent).build()


def error_response(status: HTTPStatus, message: Optional[str] = None) -> HTTPResponse:
    """
    Plain-text error response.

    Without a message the body is "<code> <phrase>", e.g. "400 Bad Request".
    """
    if message is None:
        message = f"{int(status)} {status.phrase}"
    return (ResponseBuilder()
        .status(status)
        .text(message + "\n")
        .header("X-Content-Type-Options", "nosniff")
        .build())


def not_found(message: str = "404 page not found") -> HTTPResponse:
    return error_response(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    response = error_response(HTTPStatus.METHOD_NOT_ALLOWED, "405 method not allowed")
    response.headers["Allow"] = ", ".join(allowed_methods)
    return response


def internal_error() -> HTTPResponse:
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)
