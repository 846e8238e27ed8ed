"""
Unit tests for URL router.
"""

import pytest

from helloserver.http.router import Router, RouteType
from helloserver.http.request import HTTPRequest
from helloserver.http.response import HTTPResponse, ok
from helloserver.http.status_codes import HTTPStatus


def make_request(method: str, path: str, query_string: str = "") -> HTTPRequest:
    """Helper to create a request for testing."""
    return HTTPRequest(method=method, path=path, query_string=query_string)


def dummy_handler(request: HTTPRequest) -> HTTPResponse:
    """Dummy handler for testing."""
    return ok(f"path={request.path}\n")


class TestRouteRegistration:
    """Tests for adding routes."""

    def test_add_route(self):
        router = Router()
        route = router.add_route("/about", dummy_handler, method="get", name="about")

        assert len(router) == 1
        assert route.path == "/about"
        assert route.method == "GET"
        assert route.name == "about"
        assert route.kind == RouteType.STATIC

    def test_route_kinds(self):
        router = Router()
        assert router.add_route("/users/:id", dummy_handler).kind == RouteType.PARAM
        assert router.add_route("/greet/*name", dummy_handler).kind == RouteType.WILDCARD

    def test_path_must_start_with_slash(self):
        with pytest.raises(ValueError):
            Router().add_route("about", dummy_handler)


class TestRouteMatching:
    """Tests for Router.match()."""

    def test_root_is_exact(self):
        router = Router()
        router.add_route("/", dummy_handler)

        assert router.match("GET", "/") is not None
        assert router.match("GET", "/anything") is None
        assert router.match("GET", "") is None

    def test_static_is_exact(self):
        router = Router()
        router.add_route("/about", dummy_handler)

        assert router.match("GET", "/about") is not None
        assert router.match("GET", "/about/") is None
        assert router.match("GET", "/about/me") is None
        assert router.match("GET", "/About") is None

    def test_trailing_slash_pattern_is_literal(self):
        router = Router()
        router.add_route("/about/", dummy_handler)

        assert router.match("GET", "/about/") is not None
        assert router.match("GET", "/about") is None

    def test_dynamic_params(self):
        router = Router()
        router.add_route("/users/:user_id/posts/:post_id", dummy_handler)

        match = router.match("GET", "/users/456/posts/789")
        assert match.params == {"user_id": "456", "post_id": "789"}
        assert router.match("GET", "/users/456/posts/") is None

    def test_wildcard_takes_rest_of_path(self):
        router = Router()
        router.add_route("/greet/*name", dummy_handler)

        assert router.match("GET", "/greet/Ada").params == {"name": "Ada"}
        assert router.match("GET", "/greet/a/b/c").params == {"name": "a/b/c"}
        assert router.match("GET", "/greet/").params == {"name": ""}
        assert router.match("GET", "/greet") is None
        assert router.match("GET", "/greeting") is None

    def test_unnamed_wildcard(self):
        router = Router()
        router.add_route("/files/*", dummy_handler)
        assert router.match("GET", "/files/x/y").params == {"wildcard": "x/y"}

    def test_method_filter(self):
        router = Router()
        router.add_route("/about", dummy_handler, method="GET")
        router.add_route("/about", dummy_handler, method="POST")

        assert router.match("GET", "/about").route.method == "GET"
        assert router.match("POST", "/about").route.method == "POST"
        assert router.match("PUT", "/about") is None

    def test_method_is_case_sensitive(self):
        """Methods are tokens compared as sent; 'get' is not GET."""
        router = Router()
        router.add_route("/about", dummy_handler, method="GET")

        assert router.match("get", "/about") is None

    def test_any_method_includes_extension_tokens(self):
        router = Router()
        router.add_route("/about", dummy_handler)

        assert router.match("PURGE", "/about") is not None
        assert router.match("BREW", "/about") is not None

    def test_any_method(self):
        router = Router()
        router.add_route("/about", dummy_handler)

        for method in ("GET", "POST", "DELETE", "HEAD", "OPTIONS"):
            assert router.match(method, "/about") is not None

    def test_first_registered_wins(self):
        router = Router()
        router.add_route("/greet/*name", dummy_handler, name="first")
        router.add_route("/greet/Ada", dummy_handler, name="second")

        assert router.match("GET", "/greet/Ada").route.name == "first"

    def test_allowed_methods(self):
        router = Router()
        router.add_route("/about", dummy_handler, method="GET")
        router.add_route("/about", dummy_handler, method="POST")

        assert router.get_allowed_methods("/about") == ["GET", "POST"]
        assert router.get_allowed_methods("/nope") == []


class TestRouterHandle:
    """Tests for Router.handle(), i.e. full dispatch."""

    def test_dispatch_sets_path_params(self):
        seen = {}

        def handler(request):
            seen.update(request.path_params)
            return ok("hi")

        router = Router()
        router.add_route("/greet/*name", handler)
        response = router.handle(make_request("GET", "/greet/Ada"))

        assert response.status == HTTPStatus.OK
        assert seen == {"name": "Ada"}

    def test_subtree_redirect(self):
        router = Router()
        router.add_route("/greet/*name", dummy_handler)

        response = router.handle(make_request("GET", "/greet"))

        assert response.status == HTTPStatus.MOVED_PERMANENTLY
        assert response.headers["Location"] == "/greet/"

    def test_subtree_redirect_keeps_query(self):
        router = Router()
        router.add_route("/greet/*name", dummy_handler)

        response = router.handle(make_request("GET", "/greet", "x=1"))
        assert response.headers["Location"] == "/greet/?x=1"

    def test_subtree_redirect_body_escapes_query(self):
        router = Router()
        router.add_route("/greet/*name", dummy_handler)

        response = router.handle(make_request("GET", "/greet", '"><img src=x>'))

        assert response.headers["Location"] == '/greet/?"><img src=x>'
        assert "<img" not in response.text
        assert "&quot;&gt;&lt;img src=x&gt;" in response.text

    def test_no_redirect_for_static_routes(self):
        router = Router()
        router.add_route("/about/", dummy_handler)

        response = router.handle(make_request("GET", "/about"))
        assert response.status == HTTPStatus.NOT_FOUND

    def test_not_found(self):
        called = []

        def handler(request):
            called.append(request.path)
            return ok("should not happen")

        router = Router()
        router.add_route("/", handler)
        router.add_route("/about", handler)

        response = router.handle(make_request("GET", "/nope"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.text == "404 page not found\n"
        assert called == []

    def test_method_not_allowed(self):
        router = Router()
        router.add_route("/about", dummy_handler, method="GET")

        response = router.handle(make_request("DELETE", "/about"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET"

    def test_handler_errors_propagate(self):
        """Turning exceptions into 500s is the server's job, not the router's."""
        def broken(request):
            raise RuntimeError("boom")

        router = Router()
        router.add_route("/", broken)

        with pytest.raises(RuntimeError):
            router.handle(make_request("GET", "/"))
