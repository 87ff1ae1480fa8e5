"""
Pytest configuration for c_http_client tests.

This file contains shared fixtures and configuration
for all tests in the project, including a local HTTP server
used by the integration tests.
"""

import gzip
import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import List

import pytest

from c_http_client.http_primitives import Request
from c_http_client.streams import BytesStream
from c_http_client.transport.mock import MockTransport


class RecordingHeaderFunction:
    """Header callback that records every line it is given."""

    def __init__(self) -> None:
        self.lines: List[bytes] = []

    def __call__(self, line: bytes) -> int:
        self.lines.append(line)
        return len(line)


class _TestHandler(BaseHTTPRequestHandler):
    """Small HTTP/1.1 application for integration tests."""

    protocol_version = "HTTP/1.1"

    def log_message(self, format, *args) -> None:  # noqa: A002
        pass

    def _read_body(self) -> bytes:
        length = int(self.headers.get("Content-Length") or 0)
        return self.rfile.read(length) if length else b""

    def _reply(self, status: int, body: bytes, headers=()) -> None:
        self.send_response(status)
        for name, value in headers:
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)

    def _dispatch(self) -> None:
        body = self._read_body()

        if self.path == "/hello":
            self._reply(
                200,
                b"Hello, World!",
                [("Content-Type", "text/plain"), ("X-Foo", "a"), ("X-Foo", "b")],
            )
        elif self.path == "/echo":
            self._reply(
                200,
                body,
                [
                    ("X-Method", self.command),
                    ("X-Custom", self.headers.get("X-Custom", "")),
                ],
            )
        elif self.path == "/redirect":
            self._reply(302, b"", [("Location", "/hello")])
        elif self.path == "/gzip":
            if "gzip" in self.headers.get("Accept-Encoding", ""):
                self._reply(
                    200,
                    gzip.compress(b"compressed payload"),
                    [("Content-Encoding", "gzip")],
                )
            else:
                self._reply(200, b"compressed payload")
        else:
            self._reply(404, b"Not Found", [("Content-Type", "text/plain")])

    do_GET = _dispatch
    do_POST = _dispatch
    do_PUT = _dispatch
    do_DELETE = _dispatch
    do_PATCH = _dispatch
    do_HEAD = _dispatch


@pytest.fixture(scope="session")
def http_server():
    """Base URL of a local HTTP server running in a background thread."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _TestHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def unused_port():
    """A local port nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def header_recorder():
    """Create a header callback that records the lines it receives."""
    return RecordingHeaderFunction()


@pytest.fixture
def sample_headers():
    """Sample request headers for testing."""
    return {
        "Content-Type": ["application/json"],
        "Accept": ["text/html", "application/json"],
        "Authorization": ["Bearer token123"],
    }


@pytest.fixture
def sample_request(sample_headers):
    """Sample POST request with a JSON body."""
    return Request.create(
        "POST",
        "https://api.example.com:8443/v1/data?page=2",
        headers=sample_headers,
        body=BytesStream(b'{"message": "Hello"}'),
    )


@pytest.fixture
def ok_header_lines():
    """Raw header lines of a simple 200 response."""
    return [
        b"HTTP/1.1 200 OK\r\n",
        b"Content-Type: text/plain\r\n",
        b"X-Foo: a\r\n",
        b"X-Foo: b\r\n",
        b"\r\n",
    ]


@pytest.fixture
def mock_transport(ok_header_lines):
    """Mock transport answering every request with a 200 response."""
    return MockTransport(header_lines=ok_header_lines, content=b"Hello, World!")
