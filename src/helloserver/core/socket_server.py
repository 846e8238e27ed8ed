"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Owns the listening socket: create, bind, listen, accept, close. Every
accepted client is wrapped in a Connection and handed to a callback; what
happens next (thread pool, HTTP) is not this module's business.

=============================================================================
SOCKET LIFECYCLE
=============================================================================

    socket()   → a TCP endpoint, not yet attached to any address
    bind()     → claim 0.0.0.0:8080        ← "address already in use" lives here
    listen()   → kernel starts queueing incoming connections (backlog)
    accept()   → one NEW socket per client; the listener keeps listening
    close()    → release the port

                    ┌───────────────────────┐
                    │   Listening Socket    │  bound once, never sends data
                    └───────────┬───────────┘
                                │ accept()
            ┌───────────────────┼───────────────────┐
            ▼                   ▼                   ▼
       Client socket 1     Client socket 2     Client socket 3

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR: restart immediately even while old connections sit in
TIME_WAIT. It does NOT let two live servers share the port, so a second
instance still fails to bind, which is what we want to report.

TCP_NODELAY: send small responses right away instead of waiting for
Nagle's algorithm to batch them.

=============================================================================
WAITING FOR REQUESTS
=============================================================================

A worker thread is only handed a connection once it has something to
read. Until then the connection waits in a selector on this thread,
together with the listening socket:

    ┌──────────────────────── selector (this thread) ───────────────────────┐
    │  listening socket   → accept(), start watching the new client         │
    │  idle client        → readable? stop watching, connection_handler()   │
    │  wakeup socketpair  → workers gave keep-alive connections back        │
    └───────────────────────────────────────────────────────────────────────┘

        worker: read + answer ──► keep-alive? ──► resume(conn) ──► selector
                                        └── no ──► close

So a hundred silent clients cost a hundred file descriptors, not a
hundred threads.

Each waiting connection has a deadline. The first request gets `timeout`
seconds and an expired one is passed to on_idle_timeout (the HTTP layer
answers 408). A kept-alive connection gets `keep_alive_timeout` seconds
and is simply closed.

=============================================================================
STOPPING
=============================================================================

select() never sleeps longer than a second. The loop wakes up at least
once a second, checks _running, and exits after shutdown() is called from
any thread. Ctrl+C raises KeyboardInterrupt in the main thread, which
unwinds out of the loop the same way.

=============================================================================
"""

import socket
import logging
import selectors
import threading
import time
from collections import deque
from typing import Optional, Callable, Deque, Dict, Tuple

from ..config import ServerConfig
from .connection import Connection

logger = logging.getLogger(__name__)

ConnectionHandler = Callable[[Connection], None]

# selector key.data markers for the two non-client sockets
_LISTENER = "listener"
_WAKEUP = "wakeup"

POLL_INTERVAL = 1.0


class SocketServer:
    """
    Low-level TCP socket server.

        def handle_connection(conn: Connection):
            ...                       # read, answer, then either
            server.resume(conn)       # wait for the next request, or
            conn.close()              # be done with it

        server = SocketServer(config)
        server.start(handle_connection)   # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once listen() succeeds; lets other threads wait for readiness
        self._listening = threading.Event()

        # Owned by the accept thread
        self._selector: Optional[selectors.BaseSelector] = None
        self._idle: Dict[str, Tuple[Connection, Optional[float]]] = {}

        # Handed over by workers, picked up by the accept thread
        self._returned: Deque[Connection] = deque()
        self._returned_lock = threading.Lock()
        self._wakeup_r: Optional[socket.socket] = None
        self._wakeup_w: Optional[socket.socket] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The address actually bound.

        Differs from the config when port=0 asked the OS for a free port.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    @property
    def idle_connections(self) -> int:
        """Connections currently waiting for their next request."""
        return len(self._idle)

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Block until the server accepts connections. False on timeout."""
        return self._listening.wait(timeout)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() only runs once select() reports a pending client
        sock.setblocking(False)
        return sock

    def bind(self) -> None:
        """
        Create the listening socket, bind and listen.

        Split out of start() so a failure surfaces before anything else
        happens.

        Raises:
            OSError: Port in use, permission denied, bad host, ...
        """
        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise

        self._socket = sock
        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")

    def start(
        self,
        connection_handler: ConnectionHandler,
        on_idle_timeout: Optional[ConnectionHandler] = None,
    ):
        """
        Accept connections until shutdown().

        Binds first if bind() hasn't been called yet. Blocks.

        Args:
            connection_handler: Called with a Connection that has data to
                read. Runs on this thread, so it should hand off quickly.
            on_idle_timeout: Called with a connection whose first request
                never arrived. Defaults to closing it.
        """
        if self._socket is None:
            self.bind()

        self._selector = selectors.DefaultSelector()
        self._wakeup_r, self._wakeup_w = socket.socketpair()
        self._wakeup_r.setblocking(False)
        self._wakeup_w.setblocking(False)
        self._selector.register(self._socket, selectors.EVENT_READ, _LISTENER)
        self._selector.register(self._wakeup_r, selectors.EVENT_READ, _WAKEUP)

        self._running = True
        self._listening.set()

        try:
            self._serve_loop(connection_handler, on_idle_timeout or self._drop)
        finally:
            self._cleanup()

    def _serve_loop(self, connection_handler: ConnectionHandler, on_idle_timeout: ConnectionHandler):
        while self._running:
            for key, _ in self._selector.select(timeout=self._next_wakeup()):
                if key.data is _LISTENER:
                    if not self._accept():
                        return
                elif key.data is _WAKEUP:
                    self._drain_wakeup()
                else:
                    conn = key.data
                    self._unwatch(conn)
                    connection_handler(conn)

            self._watch_returned()
            self._expire_idle(on_idle_timeout)

    def _accept(self) -> bool:
        """Accept one client. False if the listening socket is broken."""
        try:
            client_socket, client_address = self._socket.accept()
        except (BlockingIOError, InterruptedError):
            return True  # Another wakeup raced us to it
        except OSError as e:
            if self._running:
                logger.error(f"Accept error: {e}")
            return False

        logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

        conn = Connection(
            socket=client_socket,
            address=client_address,
            buffer_size=self.config.buffer_size,
            timeout=self.config.timeout,
            keep_alive_timeout=self.config.keep_alive_timeout,
            max_request_size=self.config.max_request_size,
        )
        self._watch(conn)
        return True

    # =========================================================================
    # IDLE CONNECTIONS
    # =========================================================================

    def resume(self, conn: Connection):
        """
        Give a kept-alive connection back to wait for its next request.

        Called from worker threads. After shutdown() the connection is
        closed instead.
        """
        with self._returned_lock:
            wakeup = self._wakeup_w if self._running else None
            if wakeup is not None:
                self._returned.append(conn)

        if wakeup is None:
            conn.close(drain=False)
            return

        try:
            wakeup.send(b"\0")
        except OSError:
            pass  # Buffer full: a wakeup is already pending

    def _watch(self, conn: Connection):
        wait = conn.idle_timeout
        deadline = time.monotonic() + wait if wait is not None else None
        try:
            self._selector.register(conn.socket, selectors.EVENT_READ, conn)
        except (ValueError, OSError) as e:
            logger.debug(f"[{conn.id}] Can't watch connection: {e}")
            conn.close(drain=False)
            return
        self._idle[conn.id] = (conn, deadline)

    def _unwatch(self, conn: Connection):
        self._idle.pop(conn.id, None)
        try:
            self._selector.unregister(conn.socket)
        except (KeyError, ValueError):
            pass

    def _watch_returned(self):
        with self._returned_lock:
            returned = list(self._returned)
            self._returned.clear()

        for conn in returned:
            self._watch(conn)

    def _drain_wakeup(self):
        try:
            while self._wakeup_r.recv(1024):
                pass
        except BlockingIOError:
            pass

    def _next_wakeup(self) -> float:
        deadlines = [d for _, d in self._idle.values() if d is not None]
        if not deadlines:
            return POLL_INTERVAL
        return max(0.0, min(POLL_INTERVAL, min(deadlines) - time.monotonic()))

    def _expire_idle(self, on_idle_timeout: ConnectionHandler):
        now = time.monotonic()
        expired = [
            conn for conn, deadline in self._idle.values()
            if deadline is not None and deadline <= now
        ]

        for conn in expired:
            self._unwatch(conn)
            if conn.requests_handled:
                logger.debug(f"[{conn.id}] Keep-alive timeout")
                conn.close(drain=False)
            else:
                logger.debug(f"[{conn.id}] No request within {conn.timeout}s")
                on_idle_timeout(conn)

    @staticmethod
    def _drop(conn: Connection):
        conn.close(drain=False)

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def shutdown(self):
        """Ask the accept loop to stop. Idempotent, callable from any thread."""
        if self._running:
            logger.info("Shutting down socket server...")
        with self._returned_lock:
            self._running = False

    def _cleanup(self):
        with self._returned_lock:
            self._running = False
            leftovers = list(self._returned)
            self._returned.clear()

        self._listening.clear()

        leftovers.extend(conn for conn, _ in self._idle.values())
        self._idle.clear()
        for conn in leftovers:
            conn.close(drain=False)

        if self._selector is not None:
            self._selector.close()
            self._selector = None

        for sock in (self._socket, self._wakeup_r, self._wakeup_w):
            if sock is None:
                continue
            try:
                sock.close()
            except OSError:
                pass
        self._socket = self._wakeup_r = self._wakeup_w = None

        logger.info("Socket server stopped")
