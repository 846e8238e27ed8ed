"""
=============================================================================
PAGE HANDLERS
=============================================================================

The three pages the server exists to serve. Each one is a single string
format; all the HTTP work happens elsewhere.

    ┌──────────────────┬──────────────────────────────────────────────────┐
    │ Route            │ Body (text/plain, UTF-8)                         │
    ├──────────────────┼──────────────────────────────────────────────────┤
    │ /                │ Welcome to my Go server! 🚀                      │
    │                  │ Current time: 2026-10-19 09:30:00                │
    ├──────────────────┼──────────────────────────────────────────────────┤
    │ /greet/<name>    │ Hello, <name>! 👋    (or "stranger" if empty)    │
    ├──────────────────┼──────────────────────────────────────────────────┤
    │ /about           │ This is a simple Go web server                   │
    │                  │ Built by a beginner learning Go!                 │
    └──────────────────┴──────────────────────────────────────────────────┘

None of them look at the method, headers, query string or body.

=============================================================================
A NOTE ON THE GREETING
=============================================================================

The name is echoed back byte for byte: no escaping, no length limit, no
character filtering. "/greet/<b>hi</b>" really does answer
"Hello, <b>hi</b>! 👋". That is harmless while the response is
text/plain, and an injection hole the day it becomes HTML. Escape it at
that point, not before.

=============================================================================
"""

from typing import Optional

from ..clock import Clock, SystemClock
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok


WELCOME_LINE = "Welcome to my Go server! 🚀\n"
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

GREETING_TEMPLATE = "Hello, {name}! 👋\n"
STRANGER_GREETING = "Hello, stranger! 👋\n"

ABOUT_TEXT = (
    "This is a simple Go web server\n"
    "Built by a beginner learning Go!\n"
)


class HomeHandler:
    """
    The landing page: a welcome line plus the current time.

    The time comes from the injected clock, never from datetime directly:

        home = HomeHandler(FixedClock(datetime(2026, 10, 19, 9, 30)))
        home.handle(request).text
        # 'Welcome to my Go server! 🚀\\nCurrent time: 2026-10-19 09:30:00\\n'
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or SystemClock()

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        now = self.clock.now()
        return ok(WELCOME_LINE + f"Current time: {now.strftime(TIME_FORMAT)}\n")

    __call__ = handle


def greeting_for(name: str) -> str:
    """The greeting text for a name ("" means we don't know who it is)."""
    if not name:
        return STRANGER_GREETING
    return GREETING_TEMPLATE.format(name=name)


def greet(request: HTTPRequest) -> HTTPResponse:
    """Greet whoever is named after /greet/ in the path."""
    return ok(greeting_for(request.path_params.get("name", "")))


def about(request: HTTPRequest) -> HTTPResponse:
    return ok(ABOUT_TEXT)
