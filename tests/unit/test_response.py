"""
Unit tests for HTTP response building.
"""

from datetime import datetime

from helloserver.http.response import (
    HTTPResponse, ResponseBuilder, TEXT_PLAIN, TEXT_HTML,
    ok, redirect, error_response, not_found,
    method_not_allowed, internal_error, format_http_date,
)
from helloserver.http.status_codes import HTTPStatus


def split_wire(data: bytes):
    """Split serialized bytes into (status line, headers dict, body)."""
    head, _, body = data.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")
    headers = dict(line.split(": ", 1) for line in lines[1:])
    return lines[0], headers, body


class TestHTTPStatus:
    """Tests for HTTPStatus enum."""

    def test_phrases(self):
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.NOT_FOUND.phrase == "Not Found"
        assert HTTPStatus.MOVED_PERMANENTLY.phrase == "Moved Permanently"

    def test_str_is_code(self):
        assert str(HTTPStatus.NOT_FOUND) == "404"

    def test_categories(self):
        assert HTTPStatus.OK.is_success
        assert HTTPStatus.MOVED_PERMANENTLY.is_redirect
        assert HTTPStatus.NOT_FOUND.is_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_error
        assert not HTTPStatus.OK.is_error


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_build_default(self):
        """Test default response."""
        response = ResponseBuilder().build()

        assert response.status == HTTPStatus.OK
        assert response.body == b""

    def test_text_sets_content_type(self):
        response = ResponseBuilder().text("Hello, Ada! 👋\n").build()

        assert response.headers["Content-Type"] == TEXT_PLAIN
        assert response.body == "Hello, Ada! 👋\n".encode("utf-8")

    def test_body_bytes(self):
        response = ResponseBuilder().body(b"\x00\x01").build()
        assert response.body == b"\x00\x01"

    def test_custom_header(self):
        response = ResponseBuilder().header("X-Custom", "value").build()
        assert response.headers["X-Custom"] == "value"

    def test_permanent_redirect(self):
        response = ResponseBuilder().redirect("/greet/", permanent=True).build()

        assert response.status == HTTPStatus.MOVED_PERMANENTLY
        assert response.headers["Location"] == "/greet/"
        assert response.headers["Content-Type"] == TEXT_HTML
        assert response.text == '<a href="/greet/">Moved Permanently</a>.\n\n'

    def test_redirect_body_escapes_location(self):
        """Test that a location can't break out of the href attribute."""
        location = '/greet/?"><script>alert(1)</script>'
        response = ResponseBuilder().redirect(location, permanent=True).build()

        assert response.headers["Location"] == location
        assert "<script>" not in response.text
        assert response.text == (
            '<a href="/greet/?&quot;&gt;&lt;script&gt;alert(1)&lt;/script&gt;">'
            "Moved Permanently</a>.\n\n"
        )

    def test_temporary_redirect(self):
        response = ResponseBuilder().redirect("/about").build()
        assert response.status == HTTPStatus.FOUND

    def test_builder_has_no_connection_helpers(self):
        """Connection headers belong to the server, not to handlers."""
        assert not hasattr(ResponseBuilder, "close_connection")
        assert not hasattr(HTTPResponse, "set_header")


class TestHTTPResponse:
    """Tests for HTTPResponse serialization."""

    def test_status_line(self):
        assert HTTPResponse(status=HTTPStatus.NOT_FOUND).status_line == "HTTP/1.1 404 Not Found"

    def test_to_bytes(self):
        """Test serializing a response."""
        status_line, headers, body = split_wire(ok("This is a simple Go web server\n").to_bytes())

        assert status_line == "HTTP/1.1 200 OK"
        assert headers["Content-Type"] == TEXT_PLAIN
        assert headers["Content-Length"] == "31"
        assert headers["Server"] == "helloserver/1.0"
        assert headers["Date"].endswith(" GMT")
        assert body == b"This is a simple Go web server\n"

    def test_content_length_counts_bytes(self):
        """Emoji are one character but four bytes."""
        response = ok("🚀\n")
        _, headers, body = split_wire(response.to_bytes())

        assert headers["Content-Length"] == "5"
        assert len(body) == 5

    def test_head_keeps_content_length_drops_body(self):
        _, headers, body = split_wire(ok("Hello, Ada! 👋\n").to_bytes(include_body=False))

        assert headers["Content-Length"] == str(len("Hello, Ada! 👋\n".encode("utf-8")))
        assert body == b""

    def test_explicit_server_header_kept(self):
        response = ok("x")
        response.headers["Server"] = "custom"
        _, headers, _ = split_wire(response.to_bytes("ignored/1.0"))
        assert headers["Server"] == "custom"

    def test_server_name_argument(self):
        _, headers, _ = split_wire(ok("x").to_bytes("other/2.0"))
        assert headers["Server"] == "other/2.0"


class TestConvenienceFunctions:
    """Tests for the module-level helpers."""

    def test_ok_bytes_without_type(self):
        response = ok(b"raw")
        assert "Content-Type" not in response.headers

    def test_ok_custom_type(self):
        response = ok("<p>hi</p>", content_type=TEXT_HTML)
        assert response.headers["Content-Type"] == TEXT_HTML

    def test_redirect(self):
        response = redirect("/greet/", permanent=True)
        assert response.status == HTTPStatus.MOVED_PERMANENTLY

    def test_not_found(self):
        response = not_found()

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.text == "404 page not found\n"
        assert response.headers["Content-Type"] == TEXT_PLAIN
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_error_response_default_message(self):
        response = error_response(HTTPStatus.REQUEST_TIMEOUT)
        assert response.text == "408 Request Timeout\n"

    def test_method_not_allowed(self):
        response = method_not_allowed(["GET", "HEAD"])

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET, HEAD"

    def test_internal_error(self):
        response = internal_error()
        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.text == "500 Internal Server Error\n"


def test_format_http_date():
    assert format_http_date(datetime(2026, 10, 19, 9, 30, 0)) == "Mon, 19 Oct 2026 09:30:00 GMT"
