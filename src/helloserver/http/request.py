"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes of one HTTP/1.x request into an HTTPRequest.

=============================================================================
WHAT WE PULL OUT OF A REQUEST
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    GET /greet/Ada%20Lovelace?x=1 HTTP/1.1\r\n     ← request line    │
    │    ─┬─ ──────────┬────────── ─┬─ ────┬───                           │
    │     │            │            │      │                               │
    │   Method       Path        Query   Version                           │
    │               (decoded:                                              │
    │           /greet/Ada Lovelace)                                       │
    │                                                                      │
    │    Host: localhost:8080\r\n                        ← headers         │
    │    User-Agent: curl/8.4.0\r\n                                        │
    │    \r\n                                            ← end of headers  │
    │                                                                      │
    │    (no body for any of our routes, but we read it if it's there)    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The PATH is the only thing the handlers ever look at. It is percent-decoded
here, once, so "/greet/Ada%20Lovelace" reaches the greet handler as the
name "Ada Lovelace". Nothing else is done to it: no case folding, no
trailing-slash stripping, no dot-segment removal, no escaping. Nothing
behind a path touches the filesystem, so "/greet/.." is just a name.

=============================================================================
WHAT WE REJECT
=============================================================================

    ┌──────────────────────────────────────┬────────┐
    │ Problem                              │ Status │
    ├──────────────────────────────────────┼────────┤
    │ Garbled request line                 │  400   │
    │ Method that isn't an HTTP token      │  400   │
    │ Bigger than max_request_size         │  413   │
    │ HTTP/2.0, HTTP/0.9, ...              │  505   │
    └──────────────────────────────────────┴────────┘

Each of these raises HTTPParseError; the server turns it into a plain-text
error response and closes the connection. Handlers never see them.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict
from urllib.parse import parse_qs, urlsplit, unquote
import re


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    Carries the HTTP status code the client should get back.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Header names are stored lowercase; HTTP says they are case-insensitive
    and normalizing once at parse time keeps lookups simple.

    path_params is filled in by the router after a match:

        Route "/greet/*name" + path "/greet/Ada" → {"name": "Ada"}
    """

    method: str
    path: str                                   # Decoded, without query string
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query_string: str = ""                      # Raw, as sent
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""
    path_params: Dict[str, str] = field(default_factory=dict)
    client_address: tuple[str, int] = ("", 0)

    @property
    def is_keep_alive(self) -> bool:
        """
        Should the connection stay open after this request?

        HTTP/1.1: yes, unless the client says "Connection: close".
        HTTP/1.0: no, unless the client says "Connection: keep-alive".
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"


class RequestParser:
    """
    Parses raw bytes into HTTPRequest objects.

    Stateless apart from the size limit, so a single instance is shared
    by every worker thread.

        parser = RequestParser(max_request_size=1024 * 1024)
        request = parser.parse(raw_bytes, client_address=("127.0.0.1", 51234))
    """

    # METHOD SP REQUEST-TARGET SP HTTP-VERSION
    # Any RFC 7230 token is a method; routes decide what to do with it
    REQUEST_LINE_PATTERN = re.compile(r"^([!#$%&'*+\-.^_`|~0-9A-Za-z]+) ([^ ]+) (HTTP/\d\.\d)$")

    # Name: value
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request bytes.

        Args:
            data: Complete request (headers plus body) as read from the socket.
            client_address: (ip, port) of the peer, kept for access logs.

        Returns:
            The parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        # Request targets are ASCII on the wire, but browsers and curl will
        # happily send raw UTF-8 in the path, so decode as UTF-8
        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        if not lines[0]:
            raise HTTPParseError("Empty request line")

        method, path, query_string, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        # Transfer-Encoding overrides Content-Length (RFC 7230 3.3.3); the
        # connection hands such requests over without their body
        if "transfer-encoding" in headers:
            content_length = 0
        else:
            try:
                content_length = int(headers.get("content-length", 0))
            except ValueError:
                raise HTTPParseError("Invalid Content-Length header")

        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_string=query_string,
            query_params=parse_qs(query_string, keep_blank_values=True),
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str, str]:
        """
        Split "GET /greet/Ada?x=1 HTTP/1.1" into its parts.

        Returns:
            (method, decoded path, raw query string, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505
            )

        # urlsplit, not urlparse: urlparse would chop ";params" off the last
        # segment and "/greet/a;b" must greet "a;b"
        parts = urlsplit(target)
        path = unquote(parts.path) or "/"

        if not path.startswith("/"):
            raise HTTPParseError(f"Invalid path: {path!r}")

        return method, path, parts.query, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict with lowercase names.

        Repeated headers are joined with ", ". Obsolete folded lines
        (starting with whitespace) are appended to the previous header.
        Malformed lines are skipped.
        """
        headers: Dict[str, str] = {}
        current_name: Optional[str] = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 1024 * 1024
) -> HTTPRequest:
    """Parse a request with a throwaway RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
