"""
Unit tests for the request dispatcher.
"""

import errno

import pytest

from piserve import dispatcher as dispatcher_module
from piserve.dispatcher import (
    RequestDispatcher,
    ReadFromStreamError,
    WriteToStreamError,
)
from piserve.handlers import static
from piserve.handlers.listing import ReadingDirectoryError
from piserve.http import HTTPStatus


def get(path: str) -> bytes:
    return f"GET {path} HTTP/1.1\r\nHost: localhost\r\n\r\n".encode("utf-8")


EMPTY_404 = (
    b"HTTP/1.1 404 NOT FOUND\r\n"
    b"Server: piserve/1.0.0\r\n"
    b"Content-Type: application/octet-stream\r\n"
    b"Content-Length: 0\r\n"
    b"\r\n"
)


class TestFiles:
    """Tests for serving regular files."""

    def test_ok(self, dispatcher, make_stream):
        stream = make_stream(get("/b.txt"))

        response = dispatcher.handle(stream)

        assert response.status == HTTPStatus.OK
        assert stream.written == (
            b"HTTP/1.1 200 OK\r\n"
            b"Server: piserve/1.0.0\r\n"
            b"Content-Type: text/plain\r\n"
            b"Content-Length: 4\r\n"
            b"\r\n"
            b"test"
        )

    def test_content_type_from_extension(self, dispatcher):
        response = dispatcher.respond(get("/index.html"))

        assert response.content_type == "text/html"
        assert response.body == b"<h1>hi</h1>"

    def test_nested_file(self, dispatcher):
        response = dispatcher.respond(get("/sub/nested.txt"))

        assert response.status == HTTPStatus.OK
        assert response.body == b"nested"

    def test_binary_file_without_extension(self, dispatcher, served_dir):
        (served_dir / "blob").write_bytes(b"\x00\xff\x10")

        response = dispatcher.respond(get("/blob"))

        assert response.status == HTTPStatus.OK
        assert response.content_type == "application/octet-stream"

    def test_not_found(self, dispatcher, make_stream):
        stream = make_stream(get("/missing.txt"))

        response = dispatcher.handle(stream)

        assert response.status == HTTPStatus.NOT_FOUND
        assert stream.written == EMPTY_404

    def test_permission_denied(self, dispatcher, monkeypatch):
        def denied(path):
            raise PermissionError(errno.EACCES, "Permission denied", path)

        monkeypatch.setattr(static, "read_file", denied)

        response = dispatcher.respond(get("/a.txt"))

        assert response.status == HTTPStatus.FORBIDDEN
        assert response.body == b""

    def test_other_io_error(self, dispatcher, monkeypatch):
        def broken(path):
            raise OSError(errno.EIO, "Input/output error", path)

        monkeypatch.setattr(static, "read_file", broken)

        response = dispatcher.respond(get("/a.txt"))

        assert response.status == HTTPStatus.INTERNAL_SERVICE_ERROR
        assert response.to_bytes().startswith(b"HTTP/1.1 500 INTERNAL SERVICE ERROR\r\n")

    def test_nul_byte_in_target(self, dispatcher, make_stream):
        """Test that a path open() rejects outright is still answered."""
        stream = make_stream(b"GET /a\x00b HTTP/1.1\r\n\r\n")

        response = dispatcher.handle(stream)

        assert response.status == HTTPStatus.INTERNAL_SERVICE_ERROR
        assert stream.written.startswith(b"HTTP/1.1 500 INTERNAL SERVICE ERROR\r\n")
        assert stream.written.endswith(b"Content-Length: 0\r\n\r\n")


class TestDirectories:
    """Tests for directory targets with and without indexing."""

    @pytest.mark.parametrize("target", ["/", "/sub", "/sub/"])
    def test_directory_without_index_is_forbidden(self, dispatcher, target):
        response = dispatcher.respond(get(target))

        assert response.status == HTTPStatus.FORBIDDEN

    def test_root_listing(self, index_dispatcher):
        response = index_dispatcher.respond(get("/"))

        assert response.status == HTTPStatus.OK
        assert response.content_type == "text/plain"
        assert response.body.decode("utf-8") == (
            "<h2>directories</h2><a href='./sub'>sub</a><br />"
            "<h2>files</h2>"
            "<a href='./a.txt'>a.txt</a><br />"
            "<a href='./b.txt'>b.txt</a><br />"
            "<a href='./index.html'>index.html</a><br />"
        )

    def test_subdirectory_listing(self, index_dispatcher):
        response = index_dispatcher.respond(get("/sub/"))

        assert response.body == b"<h2>files</h2><a href='./nested.txt'>nested.txt</a><br />"

    def test_empty_directory_listing(self, index_dispatcher, served_dir):
        (served_dir / "empty").mkdir()

        response = index_dispatcher.respond(get("/empty/"))

        assert response.status == HTTPStatus.OK
        assert response.content_length == 0
        assert response.content_type == "application/octet-stream"

    def test_directory_without_slash_is_forbidden(self, index_dispatcher):
        """Test that indexing only applies to targets ending in '/'."""
        response = index_dispatcher.respond(get("/sub"))

        assert response.status == HTTPStatus.FORBIDDEN

    def test_file_still_served_with_index(self, index_dispatcher):
        response = index_dispatcher.respond(get("/a.txt"))

        assert response.body == b"alpha"

    def test_listing_failure(self, index_dispatcher, monkeypatch):
        def failing(path):
            raise ReadingDirectoryError(path) from PermissionError(errno.EACCES, "denied")

        monkeypatch.setattr(dispatcher_module, "list_directory", failing)

        response = index_dispatcher.respond(get("/sub/"))

        assert response.status == HTTPStatus.INTERNAL_SERVICE_ERROR
        assert response.body == b""

    def test_missing_directory_listing(self, index_dispatcher):
        response = index_dispatcher.respond(get("/nope/"))

        assert response.status == HTTPStatus.INTERNAL_SERVICE_ERROR

    def test_nul_byte_in_listing_target(self, index_dispatcher, make_stream):
        stream = make_stream(b"GET /a\x00b/ HTTP/1.1\r\n\r\n")

        response = index_dispatcher.handle(stream)

        assert response.status == HTTPStatus.INTERNAL_SERVICE_ERROR
        assert stream.written.startswith(b"HTTP/1.1 500 INTERNAL SERVICE ERROR\r\n")

    def test_listing_has_no_extension_hint(self, index_dispatcher):
        """Test that the listing Content-Type is inferred from its body."""
        response = index_dispatcher.respond(get("/sub/"))

        assert response.extension is None
        assert response.content_type == "text/plain"


class TestMethods:
    """Tests for method classification."""

    @pytest.mark.parametrize("method", [b"POST", b"PUT", b"DELETE", b"HEAD", b"get"])
    def test_method_not_allowed(self, dispatcher, make_stream, method):
        stream = make_stream(method + b" /a.txt HTTP/1.1\r\n\r\n")

        response = dispatcher.handle(stream)

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert stream.written == (
            b"HTTP/1.1 405 METHOD NOT ALLOWED\r\n"
            b"Server: piserve/1.0.0\r\n"
            b"Allow: GET\r\n"
            b"Content-Type: application/octet-stream\r\n"
            b"Content-Length: 0\r\n"
            b"\r\n"
        )

    def test_empty_request(self, dispatcher, make_stream):
        """Test that a client sending nothing still gets one response."""
        stream = make_stream(b"")

        response = dispatcher.handle(stream)

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED


class TestStream:
    """Tests for connection-level behavior."""

    def test_single_bounded_read(self, dispatcher, make_stream):
        stream = make_stream(get("/a.txt"))

        dispatcher.handle(stream)

        assert stream.read_sizes == [1024]

    def test_custom_buffer_size(self, served_dir, make_stream):
        dispatcher = RequestDispatcher(str(served_dir), buffer_size=16)
        stream = make_stream(b"GET /a.txt HTTP/1.1\r\n")

        response = dispatcher.handle(stream)

        assert stream.read_sizes == [16]
        assert response.body == b"alpha"

    def test_read_error(self, dispatcher, make_stream):
        stream = make_stream(read_error=ConnectionResetError("reset"))

        with pytest.raises(ReadFromStreamError) as exc_info:
            dispatcher.handle(stream)

        assert isinstance(exc_info.value.source, ConnectionResetError)
        assert stream.written == b""

    def test_write_error(self, dispatcher, make_stream):
        stream = make_stream(get("/a.txt"), write_error=BrokenPipeError("gone"))

        with pytest.raises(WriteToStreamError) as exc_info:
            dispatcher.handle(stream)

        assert isinstance(exc_info.value.source, BrokenPipeError)

    def test_served_root_normalized(self, served_dir):
        dispatcher = RequestDispatcher(str(served_dir))

        assert dispatcher.served_root == str(served_dir) + "/"

    def test_custom_server_name(self, served_dir):
        dispatcher = RequestDispatcher(str(served_dir), server_name="test/9")

        assert b"Server: test/9\r\n" in dispatcher.respond(get("/a.txt")).to_bytes()
