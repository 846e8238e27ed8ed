"""
Middleware: code that runs around every request.

Chain of Responsibility: each middleware decides whether and how to call
the next one, and may inspect the response on the way back out.
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "LoggingMiddleware",
    "RequestLog",
]
