"""
Unit tests for Connection, using a socketpair as the "network".
"""

import socket

import pytest

from helloserver.core.connection import Connection, ConnectionState, RequestTooLarge


@pytest.fixture
def pair():
    server_sock, client_sock = socket.socketpair()
    yield server_sock, client_sock
    client_sock.close()
    server_sock.close()


def make_conn(sock: socket.socket, **kwargs) -> Connection:
    kwargs.setdefault("timeout", 2.0)
    kwargs.setdefault("keep_alive_timeout", 0.2)
    return Connection(socket=sock, address=("127.0.0.1", 5555), **kwargs)


class TestConnectionRead:
    """Tests for Connection.read_request()."""

    def test_reads_one_request(self, pair):
        server_sock, client_sock = pair
        client_sock.sendall(b"GET /about HTTP/1.1\r\nHost: x\r\n\r\n")

        conn = make_conn(server_sock)
        assert conn.read_request() == b"GET /about HTTP/1.1\r\nHost: x\r\n\r\n"
        assert conn.requests_handled == 1

    def test_reads_body_by_content_length(self, pair):
        server_sock, client_sock = pair
        raw = b"POST /about HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello"
        client_sock.sendall(raw)

        assert make_conn(server_sock).read_request() == raw

    def test_pipelined_requests_are_split(self, pair):
        server_sock, client_sock = pair
        first = b"GET /greet/Ada HTTP/1.1\r\n\r\n"
        second = b"GET /about HTTP/1.1\r\n\r\n"
        client_sock.sendall(first + second)

        conn = make_conn(server_sock)
        assert conn.read_request() == first
        assert conn.has_buffered_data
        assert conn.read_request() == second
        assert not conn.has_buffered_data

    def test_eof_returns_none(self, pair):
        server_sock, client_sock = pair
        client_sock.shutdown(socket.SHUT_WR)

        assert make_conn(server_sock).read_request() is None

    def test_first_request_timeout_raises(self, pair):
        server_sock, _ = pair
        conn = make_conn(server_sock, timeout=0.1)

        with pytest.raises(TimeoutError):
            conn.read_request()

    def test_idle_keep_alive_returns_none(self, pair):
        server_sock, client_sock = pair
        client_sock.sendall(b"GET / HTTP/1.1\r\n\r\n")

        conn = make_conn(server_sock)
        assert conn.read_request() is not None
        assert conn.read_request() is None

    def test_transfer_encoding_hands_over_headers_only(self, pair):
        server_sock, client_sock = pair
        head = b"POST /about HTTP/1.1\r\nTransfer-Encoding: chunked\r\nContent-Length: 3\r\n\r\n"
        client_sock.sendall(head + b"5\r\nhello\r\n0\r\n\r\nGET /smuggled HTTP/1.1\r\n\r\n")

        conn = make_conn(server_sock)

        assert conn.read_request() == head
        assert conn.must_close
        assert not conn.has_buffered_data

    def test_transfer_encoding_header_name_is_case_insensitive(self, pair):
        server_sock, client_sock = pair
        client_sock.sendall(b"POST /about HTTP/1.1\r\ntransfer-encoding: gzip, chunked\r\n\r\n")

        conn = make_conn(server_sock)
        conn.read_request()

        assert conn.must_close

    def test_plain_request_keeps_connection_reusable(self, pair):
        server_sock, client_sock = pair
        client_sock.sendall(b"GET /about HTTP/1.1\r\nX-Transfer-Encoding: chunked\r\n\r\n")

        conn = make_conn(server_sock)
        conn.read_request()

        assert not conn.must_close

    def test_idle_timeout_switches_after_first_request(self, pair):
        server_sock, client_sock = pair
        conn = make_conn(server_sock)
        assert conn.idle_timeout == 2.0

        client_sock.sendall(b"GET / HTTP/1.1\r\n\r\n")
        conn.read_request()

        assert conn.idle_timeout == 0.2

    def test_too_large(self, pair):
        server_sock, client_sock = pair
        client_sock.sendall(b"GET /greet/" + b"a" * 4096)

        conn = make_conn(server_sock, max_request_size=1024, buffer_size=1024)
        with pytest.raises(RequestTooLarge):
            conn.read_request()


class TestConnectionWrite:
    """Tests for sending and closing."""

    def test_send_response(self, pair):
        server_sock, client_sock = pair
        conn = make_conn(server_sock)

        assert conn.send_response(b"HTTP/1.1 200 OK\r\n\r\n")
        assert client_sock.recv(1024) == b"HTTP/1.1 200 OK\r\n\r\n"
        assert conn.state == ConnectionState.WRITING

    def test_close_is_idempotent(self, pair):
        server_sock, client_sock = pair
        client_sock.close()

        conn = make_conn(server_sock)
        conn.close()
        conn.close()
        assert conn.state == ConnectionState.CLOSED

    def test_close_without_drain(self, pair):
        server_sock, client_sock = pair
        conn = make_conn(server_sock)

        conn.close(drain=False)

        assert conn.state == ConnectionState.CLOSED
        assert client_sock.recv(1024) == b""
