"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with what HTTP needs on top of TCP:
buffered reads that stop at request boundaries, timeouts, and a clean close.

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

TCP does not preserve message boundaries. One request can arrive in
several recv() chunks, and two pipelined requests can arrive in one:

    recv() → b"GET /greet/A"
    recv() → b"da HTTP/1.1\\r\\nHost: x\\r\\n\\r\\nGET /about HTTP/1.1\\r\\n..."
                                              └──── start of request #2

So we keep a buffer, read until the blank line (\\r\\n\\r\\n) that ends the
headers, read Content-Length more bytes of body, hand that slice out and
KEEP whatever follows for the next call.

=============================================================================
CONNECTION STATES
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► KEEP_ALIVE ──┐
             ▲                                                   │
             └───────────────────────────────────────────────────┘
     any state ──► CLOSING ──► CLOSED

First request: `timeout` seconds to arrive, and silence is an error (408).
Later requests on a kept-alive connection: `keep_alive_timeout`, and
silence just means the client is done. `idle_timeout` says which applies.
While a connection waits it sits in the socket server's selector, not in
a worker thread.

A request with Transfer-Encoding is read up to its headers only. Its body
is never framed, so the connection is marked `must_close` and closed
after the response.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Where a connection is in its lifecycle (for logs and debugging)."""
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


class RequestTooLarge(ValueError):
    """The client sent more than max_request_size bytes for one request."""


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client (ip, port).
        id: Short random id used to tag log lines.
        state: Current ConnectionState.
        requests_handled: Requests read so far on this connection.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0

    # Set when the request framing can't be followed (Transfer-Encoding)
    must_close: bool = False

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def has_buffered_data(self) -> bool:
        """Bytes of a pipelined request already read but not yet served."""
        return bool(self._buffer)

    @property
    def idle_timeout(self) -> Optional[float]:
        """How long to wait for the next request before giving up."""
        return self.keep_alive_timeout if self.requests_handled else self.timeout

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read exactly one complete HTTP request.

        Returns:
            The request bytes (headers + body), or None if the client
            closed the connection or went quiet on a kept-alive connection.

        Raises:
            TimeoutError: The FIRST request didn't arrive in time.
            RequestTooLarge: The request exceeded max_request_size.
        """
        self.state = ConnectionState.READING
        self.last_activity = time.time()

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            # ─────────────────────────────────────────────────────────────
            # STEP 1: Headers (until the blank line)
            # ─────────────────────────────────────────────────────────────
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._buffer += chunk
                self._check_size()

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4

            # ─────────────────────────────────────────────────────────────
            # STEP 2: Body (Content-Length bytes, usually zero)
            # ─────────────────────────────────────────────────────────────
            headers = self._buffer[:header_end]

            if self._header_value(headers, "transfer-encoding"):
                # No chunked decoding: hand over the headers alone, answer
                # this one request and close. The rest of the stream is dropped.
                self.must_close = True
                self._buffer = b""
                self.requests_handled += 1
                self.last_activity = time.time()
                return headers + b"\r\n\r\n"

            content_length = self._parse_content_length(headers)

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break  # Short body: the parser reports it
                self._buffer += chunk
                self._check_size()

            # ─────────────────────────────────────────────────────────────
            # STEP 3: Cut one request off the front, keep the rest
            # ─────────────────────────────────────────────────────────────
            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            self.last_activity = time.time()
            return request_data

        except socket.timeout:
            if self.requests_handled > 0:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            self.socket.settimeout(self.timeout)

    def _recv(self) -> bytes:
        """recv() that reports a reset connection as a clean EOF."""
        try:
            data = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""
        self.last_activity = time.time()
        return data

    def _check_size(self):
        if len(self._buffer) > self.max_request_size:
            raise RequestTooLarge(f"Request too large: {len(self._buffer)} bytes")

    @staticmethod
    def _header_value(headers: bytes, name: str) -> str:
        """First value of a header in raw header bytes, "" if absent."""
        prefix = name + ":"
        for line in headers.decode("latin-1").split("\r\n")[1:]:
            if line.lower().startswith(prefix):
                return line[len(prefix):].strip()
        return ""

    def _parse_content_length(self, headers: bytes) -> int:
        """
        Find Content-Length in raw header bytes.

        Needed before full parsing, to know how much body to read.
        Missing or garbage values count as 0.
        """
        try:
            return max(0, int(self._header_value(headers, "content-length") or 0))
        except ValueError:
            return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send a serialized response.

        Returns:
            True if everything was sent, False if the client went away.
        """
        self.state = ConnectionState.WRITING
        try:
            # sendall() loops until every byte is written
            self.socket.sendall(data)
        except OSError as e:
            logger.debug(f"[{self.id}] Send failed: {e}")
            return False
        self.last_activity = time.time()
        return True

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self, drain: bool = True):
        """
        Close the connection. Safe to call more than once.

        SHUT_WR first so the client sees EOF after our last response,
        then a short drain so unread request bytes don't turn the close
        into a RST that could destroy that response in flight.

        drain=False skips the drain, for sockets known to have nothing
        unread (an idle connection that timed out).
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        if drain:
            try:
                self.socket.settimeout(0.5)
                while self.socket.recv(1024):
                    pass
            except OSError:
                pass  # Includes socket.timeout

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Closed after {self.requests_handled} requests")
