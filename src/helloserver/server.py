"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together: socket server, thread pool, parser, middleware
and the route table it is given.

=============================================================================
ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        └────────┬────────┘                          │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │ SocketServer │    │  ThreadPool  │    │    Router    │        │
    │    │  (accept)    │    │  (workers)   │    │ (passed in)  │        │
    │    └──────────────┘    └──────────────┘    └──────────────┘        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The Router is NOT created here. It is built once at startup (see app.py)
and handed in, so the route table is an ordinary object you can construct
in a test, not hidden global state.

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. SocketServer accepts a connection and      (main thread)
       waits until it has bytes to read
    2. Connection is queued in the ThreadPool     (main thread)
    3. Worker reads one request's bytes           (worker thread)
    4. RequestParser → HTTPRequest
    5. Middleware → Router → handler → HTTPResponse
    6. Response serialized (no body for HEAD) and sent
    7. Keep-alive? back to 1 to wait for the next request in the
       SocketServer, off the worker. Otherwise close.

A request with Transfer-Encoding gets its response and then
"Connection: close"; its body is never read.

Parse errors, timeouts and handler crashes are all answered here with a
plain-text error response; handlers never see transport problems.

=============================================================================
"""

import logging
from typing import Optional, Callable, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, ThreadPool, RequestTooLarge
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus, Router,
    error_response, internal_error,
)
from .middleware import MiddlewarePipeline, Middleware

logger = logging.getLogger(__name__)


class HTTPServer:
    """
    A threaded HTTP/1.1 server around a Router.

        router = Router()
        router.add_route("/about", about)

        server = HTTPServer(ServerConfig(port=8080), router=router)
        server.use(LoggingMiddleware())
        server.run()          # blocks until stop() or Ctrl+C
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        self._router = router if router is not None else Router()
        self._middleware = MiddlewarePipeline()

        # middleware.wrap(router.handle), built when run() starts
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._running = False

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware. Must be called before run()."""
        self._middleware.add(middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once listening with port=0."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Bind, listen and serve until stop() or Ctrl+C.

        Raises:
            OSError: If the listening socket can't be bound. Nothing is
                retried; the caller decides what to tell the user.
        """
        if host is not None:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()

        # A busy port raises here, before any worker thread exists
        self._socket_server.bind()

        self._handler = self._middleware.wrap(self._router.handle)
        self._thread_pool.start()
        self._running = True

        for route in self._router.routes():
            logger.debug(f"Route: {route.method or 'ANY':7} {route.path}")

        try:
            self._socket_server.start(self._handle_connection, self._request_timeout)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def stop(self):
        """Stop accepting connections. run() returns within about a second."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is accepting connections."""
        return self._socket_server.wait_until_listening(timeout)

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        # No-op if the application already configured logging
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("helloserver").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=False)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Accept-loop callback: hand the connection to a worker."""
        if self._thread_pool.submit(self._process_connection, args=(conn,)):
            return

        logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
        self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE)
        conn.close()

    def _process_connection(self, conn: Connection):
        """
        Serve what the client has sent (runs on a worker).

        Afterwards the connection either goes back to the socket server to
        wait for its next request or is closed; it never idles on a worker.
        """
        keep_open = False
        try:
            keep_open = self._serve_requests(conn)
        finally:
            if keep_open:
                self._socket_server.resume(conn)
            else:
                conn.close()

    def _serve_requests(self, conn: Connection) -> bool:
        """
        Answer requests until nothing more is buffered.

        Returns:
            True if the connection should stay open for another request.
        """
        while self._running:
            try:
                raw_request = conn.read_request()
            except TimeoutError:
                self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT)
                return False
            except RequestTooLarge:
                self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE)
                return False

            if raw_request is None:
                return False  # Client closed, or idle keep-alive

            try:
                request = self._parser.parse(raw_request, conn.address)
            except HTTPParseError as e:
                logger.debug(f"[{conn.id}] Bad request: {e}")
                self._send_error(conn, HTTPStatus(e.status_code))
                return False

            conn.state = ConnectionState.PROCESSING
            response = self._dispatch(conn, request)

            keep_alive = (
                request.is_keep_alive
                and self.config.keep_alive
                and not conn.must_close
            )
            if keep_alive:
                response.headers.setdefault("Connection", "keep-alive")
                response.headers.setdefault(
                    "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
                )
            else:
                response.headers["Connection"] = "close"

            data = response.to_bytes(
                self.config.server_name,
                include_body=request.method != "HEAD",
            )
            if not conn.send_response(data) or not keep_alive:
                return False

            conn.set_keep_alive()

            # Pipelined bytes are already off the socket; select() won't see them
            if not conn.has_buffered_data:
                return True

        return False

    def _request_timeout(self, conn: Connection):
        """Socket-server callback: the first request never arrived."""
        self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT)
        conn.close(drain=False)

    def _dispatch(self, conn: Connection, request: HTTPRequest) -> HTTPResponse:
        try:
            return self._handler(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error: {e}")
            return internal_error()

    def _send_error(self, conn: Connection, status: HTTPStatus):
        response = error_response(status)
        response.headers["Connection"] = "close"
        conn.send_response(response.to_bytes(self.config.server_name))
