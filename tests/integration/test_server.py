"""
End-to-end tests over real sockets.
"""

import socket
import threading

from piserve.core.connection import Connection, ConnectionState


class TestServing:
    """Tests against a running server."""

    def test_get_file(self, test_server):
        raw = test_server.request(b"GET /b.txt HTTP/1.1\r\nHost: localhost\r\n\r\n")

        assert raw == (
            b"HTTP/1.1 200 OK\r\n"
            b"Server: piserve/1.0.0\r\n"
            b"Content-Type: text/plain\r\n"
            b"Content-Length: 4\r\n"
            b"\r\n"
            b"test"
        )

    def test_not_found(self, test_server):
        raw = test_server.request(b"GET /missing HTTP/1.1\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 404 NOT FOUND\r\n")
        assert raw.endswith(b"Content-Length: 0\r\n\r\n")

    def test_method_not_allowed(self, test_server):
        raw = test_server.request(b"POST /a.txt HTTP/1.1\r\nContent-Length: 0\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 405 METHOD NOT ALLOWED\r\n")
        assert b"Allow: GET\r\n" in raw

    def test_listing(self, test_server):
        raw = test_server.request(b"GET / HTTP/1.1\r\n\r\n")
        head, _, body = raw.partition(b"\r\n\r\n")

        assert head.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Content-Type: text/plain" in head
        assert body.startswith(b"<h2>directories</h2><a href='./sub'>sub</a><br />")

    def test_nul_byte_in_target(self, test_server):
        """Test that a target the filesystem rejects still gets a response."""
        raw = test_server.request(b"GET /a\x00b HTTP/1.1\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 500 INTERNAL SERVICE ERROR\r\n")
        assert raw.endswith(b"Content-Length: 0\r\n\r\n")

    def test_directory_without_slash(self, test_server):
        raw = test_server.request(b"GET /sub HTTP/1.1\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 403 FORBIDDEN\r\n")

    def test_one_response_per_connection(self, test_server):
        """Test that the server closes after the first response."""
        raw = test_server.request(
            b"GET /a.txt HTTP/1.1\r\n\r\n"
            b"GET /b.txt HTTP/1.1\r\n\r\n"
        )

        assert raw.count(b"HTTP/1.1 ") == 1

    def test_concurrent_clients(self, test_server):
        results = []
        lock = threading.Lock()

        def client(name):
            raw = test_server.request(f"GET /{name} HTTP/1.1\r\n\r\n".encode())
            with lock:
                results.append(raw.rpartition(b"\r\n\r\n")[2])

        threads = [
            threading.Thread(target=client, args=(name,))
            for name in ["a.txt", "b.txt", "index.html"] * 4
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10.0)

        assert sorted(results) == sorted([b"alpha", b"test", b"<h1>hi</h1>"] * 4)

    def test_client_that_disconnects(self, test_server):
        """Test that a silent client does not break later requests."""
        with socket.create_connection(('127.0.0.1', test_server.port), timeout=5.0):
            pass

        raw = test_server.request(b"GET /a.txt HTTP/1.1\r\n\r\n")

        assert raw.endswith(b"alpha")


class TestConnection:
    """Tests for Connection over a socket pair."""

    def test_read_write_close(self):
        server_side, client_side = socket.socketpair()
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=5.0)

        client_side.sendall(b"GET / HTTP/1.1\r\n\r\n")
        assert conn.read_request(1024) == b"GET / HTTP/1.1\r\n\r\n"
        assert conn.raw_request == b"GET / HTTP/1.1\r\n\r\n"

        conn.write(b"hello")
        assert conn.bytes_sent == 5

        client_side.close()
        conn.close()

        assert conn.state == ConnectionState.CLOSED

    def test_single_read_is_bounded(self):
        server_side, client_side = socket.socketpair()

        with Connection(socket=server_side, address=("127.0.0.1", 1), timeout=5.0) as conn:
            client_side.sendall(b"x" * 100)
            assert len(conn.read_request(16)) <= 16
            client_side.close()

        assert conn.state == ConnectionState.CLOSED
