"""
=============================================================================
REQUEST HANDLERS
=============================================================================

A handler is anything callable as handler(request) -> HTTPResponse.

    from helloserver.handlers import HomeHandler, greet, about

    router.add_route("/", HomeHandler(clock).handle)
    router.add_route("/greet/*name", greet)
    router.add_route("/about", about)

Handlers that need collaborators (HomeHandler needs a clock) are small
classes; the rest are plain functions.

=============================================================================
"""

from .pages import (
    HomeHandler,
    greet,
    about,
    greeting_for,
    WELCOME_LINE,
    STRANGER_GREETING,
    ABOUT_TEXT,
    TIME_FORMAT,
)

__all__ = [
    "HomeHandler",
    "greet",
    "about",
    "greeting_for",
    "WELCOME_LINE",
    "STRANGER_GREETING",
    "ABOUT_TEXT",
    "TIME_FORMAT",
]
