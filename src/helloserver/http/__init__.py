"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that knows what HTTP looks like, and nothing that knows about
sockets or threads:

    request.py       bytes        → HTTPRequest
    router.py        HTTPRequest  → handler
    response.py      HTTPResponse → bytes
    status_codes.py  HTTPStatus enum + reason phrases

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    TEXT_PLAIN,
    ok,                  # 200 OK
    redirect,            # 301/302
    error_response,      # any status, plain text
    not_found,           # 404
    method_not_allowed,  # 405
    internal_error,      # 500
)
from .router import Router, Route, RouteMatch, RouteType, Handler
from .status_codes import HTTPStatus

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "TEXT_PLAIN",
    "ok",
    "redirect",
    "error_response",
    "not_found",
    "method_not_allowed",
    "internal_error",

    # Routing
    "Router",
    "Route",
    "RouteMatch",
    "RouteType",
    "Handler",

    # Status codes
    "HTTPStatus",
]
