"""
=============================================================================
URL ROUTER
=============================================================================

Maps request paths to handlers. Supports:
- Exact paths:       /about
- Parameters:        /users/:id
- Prefix wildcards:  /greet/*name
- Optional per-route method filters

=============================================================================
ROUTING FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Incoming Request                                                   │
    │   GET /greet/Ada                                                     │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  ROUTER  (first match wins, in registration order)          │   │
    │   │                                                              │   │
    │   │   ANY  /             → home                                  │   │
    │   │   ANY  /greet/*name  → greet        ← MATCH!                 │   │
    │   │   ANY  /about        → about                                 │   │
    │   │                                                              │   │
    │   │   Extracted: path_params = {"name": "Ada"}                   │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   greet(request)                                                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PATTERN MATCHING
=============================================================================

Patterns compile to anchored regexes:

    /               →  ^/$
    /about          →  ^/about$
    /users/:id      →  ^/users/(?P<id>[^/]+)$
    /greet/*name    →  ^/greet/(?P<name>.*)$

A wildcard matches the EMPTY string too, and slashes:

    /greet/         →  {"name": ""}
    /greet/a/b      →  {"name": "a/b"}

Paths are matched exactly as received. "/about/" is NOT "/about", and
nothing is lowercased.

=============================================================================
WHEN NOTHING MATCHES
=============================================================================

    1. Path + "/" would hit an empty wildcard?  → 301 to path + "/"
       (/greet → /greet/)
    2. Path matches, but only for other methods? → 405 + Allow header
    3. Otherwise                                 → 404 page not found

In none of these cases does any handler run.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, List
from enum import Enum
from urllib.parse import quote
import logging
import re

from .request import HTTPRequest
from .response import HTTPResponse, not_found, method_not_allowed, redirect

logger = logging.getLogger(__name__)


# A handler takes a request and returns a response. Every route target
# (plain function or bound method) follows this signature.
Handler = Callable[[HTTPRequest], HTTPResponse]

ALL_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


class RouteType(Enum):
    """How a route's pattern behaves."""
    STATIC = "static"       # Only literal segments: exact match
    PARAM = "param"         # Has :param segments
    WILDCARD = "wildcard"   # Ends in *param: prefix match


@dataclass
class Route:
    """
    A registered route.

        Route(
            path="/greet/*name",
            method=None,            # any method
            handler=greet,
            name="greet",
            kind=RouteType.WILDCARD,
        )
    """

    path: str
    method: Optional[str]
    handler: Handler
    name: Optional[str] = None
    kind: RouteType = RouteType.STATIC

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)

    def matches_method(self, method: str) -> bool:
        return self.method is None or self.method == method


@dataclass
class RouteMatch:
    """A matched route plus the parameters pulled out of the path."""
    route: Route
    params: Dict[str, str]


class Router:
    """
    An ordered route table.

    Build it once at startup and hand it to the server:

        router = Router()
        router.add_route("/", home.handle, name="home")
        router.add_route("/greet/*name", greet, name="greet")
        router.add_route("/about", about, name="about")

        server = HTTPServer(config, router=router)
    """

    def __init__(self):
        self._routes: List[Route] = []

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Route:
        """
        Register a route.

        Args:
            path: Pattern, e.g. "/about", "/users/:id", "/greet/*name".
            handler: Callable taking a request, returning a response.
            method: HTTP method filter, or None for any method.
            name: Optional name, used in logs.

        Returns:
            The registered Route.
        """
        if not path.startswith("/"):
            raise ValueError(f"Route path must start with '/': {path!r}")

        pattern, param_names, kind = self._compile_pattern(path)

        route = Route(
            path=path,
            method=method.upper() if method else None,
            handler=handler,
            name=name,
            kind=kind,
            _pattern=pattern,
            _param_names=param_names,
        )
        self._routes.append(route)

        logger.debug(f"Registered route {route.method or 'ANY'} {path}")
        return route

    def _compile_pattern(self, path: str) -> tuple[re.Pattern, List[str], RouteType]:
        """
        Compile a path pattern into an anchored regex.

        Input:  "/greet/*name"

        Split:  ["", "greet", "*name"]
                 ""       → skipped
                 "greet"  → /greet
                 "*name"  → /(?P<name>.*)    (and stop)

        Output: ^/greet/(?P<name>.*)$

        A pattern ending in "/" keeps its trailing slash as a literal, so
        "/about/" only matches "/about/".
        """
        param_names: List[str] = []
        regex_parts = ["^"]
        kind = RouteType.STATIC

        segments = path.split("/")
        for segment in segments[1:]:
            regex_parts.append("/")

            if segment.startswith(":"):
                name = segment[1:]
                param_names.append(name)
                regex_parts.append(f"(?P<{name}>[^/]+)")
                kind = RouteType.PARAM

            elif segment.startswith("*"):
                name = segment[1:] or "wildcard"
                param_names.append(name)
                regex_parts.append(f"(?P<{name}>.*)")
                kind = RouteType.WILDCARD
                break  # Wildcard swallows the rest

            else:
                # Empty segment here means a trailing (or doubled) slash
                regex_parts.append(re.escape(segment))

        regex_parts.append("$")
        return re.compile("".join(regex_parts)), param_names, kind

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        Find the first route matching method and path.

        Returns:
            RouteMatch, or None if nothing matches.
        """
        for route in self._routes:
            if not route.matches_method(method):
                continue

            match = route._pattern.match(path)
            if match:
                return RouteMatch(route=route, params=match.groupdict())

        return None

    def get_allowed_methods(self, path: str) -> List[str]:
        """Methods that some route would accept for this path (for Allow)."""
        methods = set()

        for route in self._routes:
            if route._pattern.match(path):
                if route.method is None:
                    return list(ALL_METHODS)
                methods.add(route.method)

        return sorted(methods)

    def _subtree_redirect(self, method: str, path: str) -> Optional[str]:
        """
        "/greet" → "/greet/" when "/greet/*name" is registered.

        Only fires when appending the slash produces an EMPTY wildcard,
        i.e. the request named exactly the root of a prefix route.
        """
        if path.endswith("/"):
            return None

        candidate = self.match(method, path + "/")
        if candidate is None or candidate.route.kind is not RouteType.WILDCARD:
            return None

        wildcard = candidate.route._param_names[-1]
        if candidate.params.get(wildcard):
            return None

        return quote(path + "/")

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a request to its handler.

        Returns the handler's response, or a 301/405/404 if no route
        takes the request.
        """
        match = self.match(request.method, request.path)

        if match:
            request.path_params = match.params
            return match.route.handler(request)

        location = self._subtree_redirect(request.method, request.path)
        if location:
            if request.query_string:
                location += "?" + request.query_string
            return redirect(location, permanent=True)

        allowed = self.get_allowed_methods(request.path)
        if allowed:
            return method_not_allowed(allowed)

        return not_found()

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def routes(self) -> List[Route]:
        """All registered routes, in match order."""
        return list(self._routes)

    def __len__(self) -> int:
        return len(self._routes)
