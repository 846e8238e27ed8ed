"""
=============================================================================
MIDDLEWARE BASE
=============================================================================

Middleware wraps the router so cross-cutting work (today: access logging)
happens around every request without touching any handler.

    ┌──────────────────────────────────────────────────────────────┐
    │   request ──► LoggingMiddleware ──► router.handle ──► handler │
    │   response ◄──────── (timed, logged) ◄─────────────────────── │
    └──────────────────────────────────────────────────────────────┘

Each middleware gets the request and a `next` callable. It can look at the
request, call next(request) to continue, and look at (or replace) the
response on the way back. pipeline.wrap(handler) nests them so the first
added is the outermost:

    pipeline.add(A).add(B)
    pipeline.wrap(h)   →   A(B(h))

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse

logger = logging.getLogger(__name__)


# The rest of the chain, as seen from one middleware
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """Base class for middleware."""

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        ...

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """An ordered list of middleware that can wrap a final handler."""

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the full chain around handler.

        Wrapped in reverse so the first middleware added runs first.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._bind(middleware, current)
        return current

    @staticmethod
    def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        # A separate function so each closure captures its own pair
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)
