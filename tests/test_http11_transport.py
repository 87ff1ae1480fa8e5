"""
Tests for the h11-based HTTP/1.1 transport.

The exchanges run against MockNetworkBackend, so every byte sent and
received is scripted by the test.
"""

import gzip
import socket
import ssl
import zlib

import pytest

from c_http_client.client import Client
from c_http_client.exceptions import NetworkError
from c_http_client.http_primitives import Request
from c_http_client.network.mock import MockNetworkBackend
from c_http_client.options import HTTPVersion, Option, OptionTranslator
from c_http_client.transport.base import ErrorCode, TransportFailure
from c_http_client.transport.http11 import (
    ExchangeSettings,
    HTTP11Transport,
    decode_content,
)


OK_RESPONSE = (
    b"HTTP/1.1 200 OK\r\n"
    b"Content-Type: text/plain\r\n"
    b"Content-Length: 5\r\n"
    b"\r\n"
    b"hello"
)


@pytest.fixture
def backend():
    return MockNetworkBackend()


@pytest.fixture
def transport(backend):
    return HTTP11Transport(backend=backend)


def build_options(method="GET", url="http://example.com/", body=None, headers=None,
                  header_function=None, **overrides):
    request = Request.create(method, url, headers=headers, body=body)
    return OptionTranslator().translate(request, overrides, header_function=header_function)


def perform(transport, options):
    with transport.open() as handle:
        return handle.perform(options)


class TestExchangeSettings:
    """Test option parsing."""

    def test_defaults(self) -> None:
        settings = ExchangeSettings.from_options({}, max_redirects=30)
        assert settings.method == "GET"
        assert settings.url == ""
        assert settings.max_redirects == 30
        assert settings.verify_peer
        assert settings.encoding is None

    def test_translated_options(self) -> None:
        options = build_options("POST", "http://example.com/x", body=b"data", TIMEOUT=2.5)
        settings = ExchangeSettings.from_options(options, max_redirects=30)

        assert settings.method == "POST"
        assert settings.url == "http://example.com/x"
        assert settings.body == b"data"
        assert settings.return_transfer
        assert settings.encoding == ""
        assert settings.timeout == 2.5

    def test_unsupported_options_are_ignored(self) -> None:
        settings = ExchangeSettings.from_options(
            {"PROXY": "http://proxy:3128", 10002: "raw", Option.URL: "http://a/"},
            max_redirects=30,
        )
        assert settings.url == "http://a/"

    def test_string_postfields_are_encoded(self) -> None:
        settings = ExchangeSettings.from_options({Option.POSTFIELDS: "a=1"}, max_redirects=30)
        assert settings.body == b"a=1"


class TestSimpleExchange:
    """Test a plain request/response exchange."""

    def test_get(self, backend, transport, header_recorder) -> None:
        backend.queue_response("example.com", 80, OK_RESPONSE)

        result = perform(transport, build_options(
            url="http://example.com/path?q=1",
            headers={"X-Custom": "yes"},
            header_function=header_recorder,
        ))

        assert result.ok
        assert result.content == b"hello"
        assert header_recorder.lines == [
            b"HTTP/1.1 200 OK\r\n",
            b"Content-Type: text/plain\r\n",
            b"Content-Length: 5\r\n",
            b"\r\n",
        ]

        sent = backend.last_connection.written_data
        assert sent.startswith(b"GET /path?q=1 HTTP/1.1\r\n")
        assert b"Host: example.com\r\n" in sent
        assert b"X-Custom: yes\r\n" in sent
        assert b"Accept: */*\r\n" in sent
        assert b"Accept-Encoding: gzip, deflate\r\n" in sent
        assert b"Connection: close\r\n" in sent
        assert b"Content-Length" not in sent
        assert backend.last_connection.is_closed

    def test_non_default_port_in_host_header(self, backend, transport) -> None:
        backend.queue_response("example.com", 8080, OK_RESPONSE)
        perform(transport, build_options(url="http://example.com:8080/"))
        assert b"Host: example.com:8080\r\n" in backend.last_connection.written_data

    def test_caller_headers_replace_defaults(self, backend, transport) -> None:
        backend.queue_response("example.com", 80, OK_RESPONSE)
        perform(transport, build_options(headers={"Accept": "application/json"}))

        sent = backend.last_connection.written_data
        assert b"Accept: application/json\r\n" in sent
        assert b"Accept: */*" not in sent

    def test_user_agent(self, backend, transport) -> None:
        backend.queue_response("example.com", 80, OK_RESPONSE)
        perform(transport, build_options(USERAGENT="c_http_client-tests"))
        assert b"User-Agent: c_http_client-tests\r\n" in backend.last_connection.written_data

    def test_post_body(self, backend, transport) -> None:
        backend.queue_response("example.com", 80, OK_RESPONSE)
        perform(transport, build_options("POST", body=b'{"a": 1}'))

        sent = backend.last_connection.written_data
        assert sent.startswith(b"POST / HTTP/1.1\r\n")
        assert b"Content-Length: 8\r\n" in sent
        assert sent.endswith(b'\r\n\r\n{"a": 1}')

    def test_empty_post_sends_zero_length(self, backend, transport) -> None:
        backend.queue_response("example.com", 80, OK_RESPONSE)
        perform(transport, build_options("POST"))
        assert b"Content-Length: 0\r\n" in backend.last_connection.written_data

    def test_http2_is_sent_as_http11(self, backend, transport) -> None:
        backend.queue_response("example.com", 80, OK_RESPONSE)
        result = perform(transport, build_options(HTTP_VERSION=HTTPVersion.HTTP_2_0))

        assert result.ok
        assert backend.last_connection.written_data.startswith(b"GET / HTTP/1.1\r\n")

    def test_body_until_close(self, backend, transport) -> None:
        backend.queue_response(
            "example.com", 80, b"HTTP/1.1 200 OK\r\nConnection: close\r\n\r\nstreamed body"
        )
        assert perform(transport, build_options()).content == b"streamed body"

    def test_chunked_body(self, backend, transport) -> None:
        backend.queue_response(
            "example.com", 80,
            b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n"
            b"5\r\nhello\r\n6\r\n world\r\n0\r\n\r\n",
        )
        assert perform(transport, build_options()).content == b"hello world"

    def test_informational_response_is_reported(self, backend, transport, header_recorder) -> None:
        backend.queue_response(
            "example.com", 80, b"HTTP/1.1 100 Continue\r\n\r\n" + OK_RESPONSE
        )
        result = perform(transport, build_options("POST", body=b"x",
                                                  header_function=header_recorder))

        assert result.content == b"hello"
        assert header_recorder.lines[0] == b"HTTP/1.1 100 Continue\r\n"
        assert header_recorder.lines[1] == b"\r\n"
        assert header_recorder.lines[2] == b"HTTP/1.1 200 OK\r\n"

    def test_head_request(self, backend, transport) -> None:
        backend.queue_response(
            "example.com", 80, b"HTTP/1.1 200 OK\r\nContent-Length: 42\r\n\r\n"
        )
        result = perform(transport, build_options("HEAD"))

        assert result.ok
        assert result.content == b""

    def test_nobody_on_get(self, backend, transport) -> None:
        backend.queue_response("example.com", 80, OK_RESPONSE)
        result = perform(transport, build_options(NOBODY=True))
        assert result.content == b""

    def test_without_return_transfer(self, backend, transport) -> None:
        backend.queue_response("example.com", 80, OK_RESPONSE)
        result = perform(transport, build_options(RETURNTRANSFER=False))
        assert result.ok
        assert result.content == b""

    def test_write_function_receives_body(self, backend, transport) -> None:
        received = []
        backend.queue_response("example.com", 80, OK_RESPONSE)

        result = perform(transport, build_options(WRITEFUNCTION=received.append))

        assert result.content == b""
        assert received == [b"hello"]

    def test_timeout_is_applied_to_stream(self, backend, transport) -> None:
        backend.queue_response("example.com", 80, OK_RESPONSE)
        perform(transport, build_options(TIMEOUT=5, CONNECTTIMEOUT=2))

        assert backend.connect_timeouts == [2]
        assert 0 < backend.last_connection.timeout <= 5

    def test_default_connect_timeout(self, backend, transport) -> None:
        backend.queue_response("example.com", 80, OK_RESPONSE)
        perform(transport, build_options())
        assert backend.connect_timeouts == [HTTP11Transport.DEFAULT_CONNECT_TIMEOUT]

    def test_metrics(self, backend, transport) -> None:
        backend.queue_response("example.com", 80, OK_RESPONSE)
        handle = transport.open()
        handle.perform(build_options())
        handle.close()

        metrics = handle.metrics
        assert metrics["bytes_sent"] == len(backend.last_connection.written_data)
        assert metrics["bytes_received"] == len(OK_RESPONSE)
        assert metrics["redirect_count"] == 0

    def test_closed_handle_rejects_perform(self, transport) -> None:
        handle = transport.open()
        handle.close()
        assert handle.is_closed

        with pytest.raises(RuntimeError):
            handle.perform(build_options())


class TestRedirects:
    """Test redirect handling."""

    def test_redirect_not_followed_by_default(self, backend, transport) -> None:
        backend.queue_response(
            "example.com", 80, b"HTTP/1.1 302 Found\r\nLocation: /next\r\nContent-Length: 0\r\n\r\n"
        )
        result = perform(transport, build_options())

        assert result.ok
        assert len(backend.connections) == 1

    def test_follow_location(self, backend, transport, header_recorder) -> None:
        backend.queue_response(
            "example.com", 80, b"HTTP/1.1 302 Found\r\nLocation: /next\r\nContent-Length: 0\r\n\r\n"
        )
        backend.queue_response("example.com", 80, OK_RESPONSE)

        handle = transport.open()
        with handle:
            result = handle.perform(build_options(
                header_function=header_recorder, FOLLOWLOCATION=True
            ))

        assert result.content == b"hello"
        assert len(backend.connections) == 2
        assert backend.connections[1].written_data.startswith(b"GET /next HTTP/1.1\r\n")
        assert header_recorder.lines[0] == b"HTTP/1.1 302 Found\r\n"
        assert b"HTTP/1.1 200 OK\r\n" in header_recorder.lines
        assert handle.metrics["redirect_count"] == 1

    def test_redirect_to_other_host(self, backend, transport) -> None:
        backend.queue_response(
            "example.com", 80,
            b"HTTP/1.1 301 Moved Permanently\r\nLocation: http://other.org/x\r\n"
            b"Content-Length: 0\r\n\r\n",
        )
        backend.queue_response("other.org", 80, OK_RESPONSE)

        result = perform(transport, build_options(FOLLOWLOCATION=True))

        assert result.content == b"hello"
        assert b"Host: other.org\r\n" in backend.last_connection.written_data

    def test_see_other_switches_to_get(self, backend, transport) -> None:
        backend.queue_response(
            "example.com", 80, b"HTTP/1.1 303 See Other\r\nLocation: /result\r\nContent-Length: 0\r\n\r\n"
        )
        backend.queue_response("example.com", 80, OK_RESPONSE)

        perform(transport, build_options("PUT", body=b"payload", FOLLOWLOCATION=True))

        sent = backend.last_connection.written_data
        assert sent.startswith(b"GET /result HTTP/1.1\r\n")
        assert b"payload" not in sent

    def test_temporary_redirect_keeps_method(self, backend, transport) -> None:
        backend.queue_response(
            "example.com", 80,
            b"HTTP/1.1 307 Temporary Redirect\r\nLocation: /again\r\nContent-Length: 0\r\n\r\n",
        )
        backend.queue_response("example.com", 80, OK_RESPONSE)

        perform(transport, build_options("POST", body=b"payload", FOLLOWLOCATION=True))

        sent = backend.last_connection.written_data
        assert sent.startswith(b"POST /again HTTP/1.1\r\n")
        assert sent.endswith(b"payload")

    def test_too_many_redirects(self, backend, transport) -> None:
        loop = b"HTTP/1.1 302 Found\r\nLocation: /loop\r\nContent-Length: 0\r\n\r\n"
        for _ in range(3):
            backend.queue_response("example.com", 80, loop)

        result = perform(transport, build_options(FOLLOWLOCATION=True, MAXREDIRS=1))

        assert result.error_code == ErrorCode.TOO_MANY_REDIRECTS
        assert result.error_message == "Maximum (1) redirects followed"
        assert len(backend.connections) == 2

    def test_transport_redirect_limit(self, backend) -> None:
        transport = HTTP11Transport(backend=backend, max_redirects=0)
        backend.queue_response(
            "example.com", 80, b"HTTP/1.1 302 Found\r\nLocation: /x\r\nContent-Length: 0\r\n\r\n"
        )

        result = perform(transport, build_options(FOLLOWLOCATION=True))
        assert result.error_code == ErrorCode.TOO_MANY_REDIRECTS


class TestContentEncoding:
    """Test response decompression."""

    def test_gzip_is_decoded(self, backend, transport) -> None:
        payload = gzip.compress(b"compressed payload")
        backend.queue_response(
            "example.com", 80,
            b"HTTP/1.1 200 OK\r\nContent-Encoding: gzip\r\nContent-Length: %d\r\n\r\n"
            % len(payload) + payload,
        )

        assert perform(transport, build_options()).content == b"compressed payload"

    def test_without_encoding_option_body_is_raw(self, backend, transport) -> None:
        payload = gzip.compress(b"compressed payload")
        backend.queue_response(
            "example.com", 80,
            b"HTTP/1.1 200 OK\r\nContent-Encoding: gzip\r\nContent-Length: %d\r\n\r\n"
            % len(payload) + payload,
        )
        options = build_options()
        del options[Option.ENCODING]

        assert perform(transport, options).content == payload
        assert b"Accept-Encoding" not in backend.last_connection.written_data

    def test_bad_gzip(self, backend, transport) -> None:
        backend.queue_response(
            "example.com", 80,
            b"HTTP/1.1 200 OK\r\nContent-Encoding: gzip\r\nContent-Length: 9\r\n\r\nnot gzip!",
        )
        result = perform(transport, build_options())
        assert result.error_code == ErrorCode.BAD_CONTENT_ENCODING

    def test_decode_content_variants(self) -> None:
        assert decode_content(zlib.compress(b"zlib"), "deflate") == b"zlib"
        raw = zlib.compressobj(wbits=-zlib.MAX_WBITS)
        raw_deflate = raw.compress(b"raw") + raw.flush()
        assert decode_content(raw_deflate, "Deflate") == b"raw"
        assert decode_content(b"plain", "br") == b"plain"
        assert decode_content(b"", "gzip") == b""

    def test_decode_content_failure(self) -> None:
        with pytest.raises(TransportFailure) as exc_info:
            decode_content(b"garbage", "deflate")
        assert exc_info.value.code == ErrorCode.BAD_CONTENT_ENCODING


class TestFailures:
    """Test how failures map onto transport error codes."""

    def test_unsupported_protocol(self, transport) -> None:
        result = perform(transport, build_options(url="ftp://example.com/file"))
        assert result.error_code == ErrorCode.UNSUPPORTED_PROTOCOL
        assert result.error_message == 'Protocol "ftp" not supported'

    def test_malformed_url(self, transport) -> None:
        result = perform(transport, {Option.URL: "http:///nohost"})
        assert result.error_code == ErrorCode.URL_MALFORMAT

    def test_dns_failure(self, backend, transport) -> None:
        backend.fail_connect("nowhere.invalid", 80, socket.gaierror(-2, "Name or service not known"))
        result = perform(transport, build_options(url="http://nowhere.invalid/"))

        assert result.error_code == ErrorCode.COULDNT_RESOLVE_HOST
        assert result.error_message == "Could not resolve host: nowhere.invalid"

    def test_connection_refused(self, backend, transport) -> None:
        backend.fail_connect("example.com", 80, ConnectionRefusedError(111, "Connection refused"))
        result = perform(transport, build_options())

        assert result.error_code == ErrorCode.COULDNT_CONNECT
        assert result.error_message == "Failed to connect to example.com port 80: Connection refused"

    def test_connect_timeout(self, backend, transport) -> None:
        backend.fail_connect("example.com", 80, socket.timeout("timed out"))
        result = perform(transport, build_options(CONNECTTIMEOUT=1.5))

        assert result.error_code == ErrorCode.OPERATION_TIMEDOUT
        assert result.error_message == "Connection timed out after 1500 milliseconds"

    def test_empty_reply(self, backend, transport) -> None:
        result = perform(transport, build_options())
        assert result.error_code == ErrorCode.GOT_NOTHING
        assert result.error_message == "Empty reply from server"

    def test_garbage_reply(self, backend, transport) -> None:
        backend.queue_response("example.com", 80, b"this is not http\r\n\r\n")
        result = perform(transport, build_options())
        assert result.error_code == ErrorCode.WEIRD_SERVER_REPLY

    def test_truncated_body(self, backend, transport) -> None:
        backend.queue_response(
            "example.com", 80, b"HTTP/1.1 200 OK\r\nContent-Length: 100\r\n\r\nshort"
        )
        result = perform(transport, build_options())
        assert result.error_code == ErrorCode.WEIRD_SERVER_REPLY

    def test_read_error(self, backend, transport) -> None:
        backend.queue_response(
            "example.com", 80,
            b"HTTP/1.1 200 OK\r\nContent-Length: 100\r\n\r\npartial",
            read_error=ConnectionResetError(104, "Connection reset by peer"),
        )
        result = perform(transport, build_options())

        assert result.error_code == ErrorCode.RECV_ERROR
        assert backend.last_connection.is_closed

    def test_read_timeout(self, backend, transport) -> None:
        backend.queue_response(
            "example.com", 80, b"HTTP/1.1 200 OK\r\n", read_error=socket.timeout("timed out")
        )
        result = perform(transport, build_options(TIMEOUT=3))

        assert result.error_code == ErrorCode.OPERATION_TIMEDOUT
        assert result.error_message == "Operation timed out after 3000 milliseconds"

    def test_header_callback_abort(self, backend, transport) -> None:
        backend.queue_response("example.com", 80, OK_RESPONSE)
        result = perform(transport, build_options(header_function=lambda line: 0))

        assert result.error_code == ErrorCode.WRITE_ERROR
        assert result.error_message == "Failed writing header"
        assert backend.last_connection.is_closed

    def test_header_callback_exception_is_write_error(self, backend, transport) -> None:
        def explode(line):
            raise ValueError("callback failed")

        backend.queue_response("example.com", 80, OK_RESPONSE)
        handle = transport.open()

        with handle:
            result = handle.perform(build_options(header_function=explode))

        assert result.error_code == ErrorCode.WRITE_ERROR
        assert result.error_message == "Header callback failed: callback failed"
        assert handle.is_closed
        assert backend.last_connection.is_closed

    def test_body_longer_than_content_length(self, backend, transport) -> None:
        backend.queue_response("example.com", 80, OK_RESPONSE)
        result = perform(transport, build_options(
            "POST", body=b"abc", headers={"Content-Length": "1"}
        ))

        assert result.error_code == ErrorCode.SEND_ERROR
        assert result.error_message.startswith("Invalid request: ")
        assert backend.last_connection.is_closed

    def test_body_shorter_than_content_length(self, backend, transport) -> None:
        backend.queue_response("example.com", 80, OK_RESPONSE)
        result = perform(transport, build_options(
            "POST", body=b"abc", headers={"Content-Length": "10"}
        ))

        assert result.error_code == ErrorCode.SEND_ERROR
        assert backend.last_connection.is_closed

    def test_write_function_short_write(self, backend, transport) -> None:
        backend.queue_response("example.com", 80, OK_RESPONSE)
        result = perform(transport, build_options(WRITEFUNCTION=lambda data: 1))
        assert result.error_code == ErrorCode.WRITE_ERROR


class TestTLS:
    """Test https exchanges over the mock backend."""

    def test_https_request(self, backend, transport) -> None:
        backend.queue_response("secure.example.com", 443, OK_RESPONSE)
        result = perform(transport, build_options(url="https://secure.example.com/"))

        assert result.content == b"hello"
        assert backend.last_connection.get_extra_info("ssl_object") is True
        assert b"Host: secure.example.com\r\n" in backend.last_connection.written_data

        context = backend.ssl_contexts[0]
        assert context.verify_mode == ssl.CERT_REQUIRED
        assert context.check_hostname

    def test_verification_disabled(self, backend, transport) -> None:
        backend.queue_response("secure.example.com", 443, OK_RESPONSE)
        perform(transport, build_options(
            url="https://secure.example.com/", SSL_VERIFYPEER=False, SSL_VERIFYHOST=0
        ))

        context = backend.ssl_contexts[0]
        assert context.verify_mode == ssl.CERT_NONE
        assert not context.check_hostname

    def test_handshake_failure(self, backend, transport) -> None:
        backend.fail_tls("secure.example.com", 443, ssl.SSLError("handshake failure"))
        result = perform(transport, build_options(url="https://secure.example.com/"))

        assert result.error_code == ErrorCode.SSL_CONNECT_ERROR
        assert backend.last_connection.is_closed

    def test_certificate_failure(self, backend, transport) -> None:
        backend.fail_tls(
            "secure.example.com", 443, ssl.SSLCertVerificationError("certificate verify failed")
        )
        result = perform(transport, build_options(url="https://secure.example.com/"))

        assert result.error_code == ErrorCode.PEER_FAILED_VERIFICATION
        assert result.error_message.startswith("SSL certificate problem:")


class TestClientOverHTTP11:
    """Test Client classification of h11 exchanges."""

    def test_content_length_mismatch_is_network_error(self, backend, transport) -> None:
        backend.queue_response("example.com", 80, OK_RESPONSE)
        request = Request.create(
            "POST", "http://example.com/", headers={"Content-Length": "1"}, body=b"abc"
        )

        with pytest.raises(NetworkError) as exc_info:
            Client(transport=transport).send_request(request)

        assert exc_info.value.code == ErrorCode.SEND_ERROR
        assert exc_info.value.request is request

    def test_header_callback_exception_is_network_error(self, backend, transport) -> None:
        def explode(line):
            raise ValueError("callback failed")

        backend.queue_response("example.com", 80, OK_RESPONSE)
        client = Client(transport=transport).set_option(Option.HEADERFUNCTION, explode)

        with pytest.raises(NetworkError) as exc_info:
            client.send_request(Request.create("GET", "http://example.com/"))

        assert exc_info.value.code == ErrorCode.WRITE_ERROR

    def test_non_standard_status_code(self, backend, transport) -> None:
        backend.queue_response(
            "example.com", 80, b"HTTP/1.1 999 Weird\r\nContent-Length: 2\r\n\r\nok"
        )
        response = Client(transport=transport).send_request(
            Request.create("GET", "http://example.com/")
        )

        assert response.status_code == 999
        assert response.reason_phrase == "Weird"
        assert response.content == b"ok"
