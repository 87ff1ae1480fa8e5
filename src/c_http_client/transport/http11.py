"""
HTTP/1.1 transport implementation for c_http_client.

``HTTP11Transport`` performs the exchange in pure Python: h11 handles
the HTTP/1.1 framing and a NetworkBackend supplies the connections.
It honours the same option set as the libcurl transport and reports
header lines and failures the way libcurl does, so the client cannot
tell the two apart.
"""

import logging
import socket
import ssl
import time
import zlib
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urljoin

import h11

from ..network.backend import NetworkBackend
from ..network.sockets import SocketNetworkBackend
from ..network.stream import NetworkStream
from ..network.utils import create_ssl_context, format_host_header, parse_url
from ..options import HTTPVersion, Option, TransportOptions
from .base import (
    ErrorCode,
    Transport,
    TransportFailure,
    TransportHandle,
    TransportResult,
)

logger = logging.getLogger(__name__)

SUPPORTED_OPTIONS = frozenset({
    Option.CUSTOMREQUEST,
    Option.URL,
    Option.HTTP_VERSION,
    Option.POSTFIELDS,
    Option.HTTPHEADER,
    Option.HEADERFUNCTION,
    Option.WRITEFUNCTION,
    Option.RETURNTRANSFER,
    Option.ENCODING,
    Option.NOBODY,
    Option.TIMEOUT,
    Option.CONNECTTIMEOUT,
    Option.FOLLOWLOCATION,
    Option.MAXREDIRS,
    Option.SSL_VERIFYPEER,
    Option.SSL_VERIFYHOST,
    Option.CAINFO,
    Option.USERAGENT,
})

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})
BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})
SUPPORTED_ENCODINGS = "gzip, deflate"


@dataclass
class ExchangeSettings:
    """Options of one ``perform`` call, read once and typed."""

    method: str
    url: str
    body: bytes = b""
    header_lines: List[str] = field(default_factory=list)
    header_function: Optional[Callable[[bytes], Optional[int]]] = None
    write_function: Optional[Callable[[bytes], Optional[int]]] = None
    return_transfer: bool = False
    encoding: Optional[str] = None
    nobody: bool = False
    timeout: Optional[float] = None
    connect_timeout: Optional[float] = None
    follow_location: bool = False
    max_redirects: int = -1
    verify_peer: bool = True
    verify_host: bool = True
    cafile: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def from_options(cls, options: TransportOptions, max_redirects: int) -> "ExchangeSettings":
        normalized: Dict[Any, Any] = {}
        for key, value in options.items():
            key = Option.normalize(key)
            if key not in SUPPORTED_OPTIONS:
                logger.debug(f"Ignoring unsupported transport option {key}")
                continue
            normalized[key] = value

        version = normalized.get(Option.HTTP_VERSION, HTTPVersion.HTTP_1_1)
        if version != HTTPVersion.HTTP_1_1:
            logger.debug(f"HTTP version {version!r} requested, sending HTTP/1.1")

        body = normalized.get(Option.POSTFIELDS) or b""
        if isinstance(body, str):
            body = body.encode("utf-8")

        return cls(
            method=str(normalized.get(Option.CUSTOMREQUEST) or "GET"),
            url=str(normalized.get(Option.URL) or ""),
            body=bytes(body),
            header_lines=list(normalized.get(Option.HTTPHEADER) or []),
            header_function=normalized.get(Option.HEADERFUNCTION),
            write_function=normalized.get(Option.WRITEFUNCTION),
            return_transfer=bool(normalized.get(Option.RETURNTRANSFER)),
            encoding=normalized.get(Option.ENCODING),
            nobody=bool(normalized.get(Option.NOBODY)),
            timeout=normalized.get(Option.TIMEOUT) or None,
            connect_timeout=normalized.get(Option.CONNECTTIMEOUT) or None,
            follow_location=bool(normalized.get(Option.FOLLOWLOCATION)),
            max_redirects=int(normalized.get(Option.MAXREDIRS, max_redirects)),
            verify_peer=bool(normalized.get(Option.SSL_VERIFYPEER, True)),
            verify_host=bool(normalized.get(Option.SSL_VERIFYHOST, 2)),
            cafile=normalized.get(Option.CAINFO),
            user_agent=normalized.get(Option.USERAGENT),
        )


def decode_content(content: bytes, content_encoding: str) -> bytes:
    """
    Undo a gzip or deflate Content-Encoding.

    Unknown encodings are returned untouched.

    Raises:
        TransportFailure: If the content does not decode
    """
    encoding = content_encoding.strip().lower()
    if not content or encoding not in ("gzip", "x-gzip", "deflate"):
        return content

    try:
        if encoding == "deflate":
            try:
                return zlib.decompress(content)
            except zlib.error:
                # Raw deflate stream without the zlib wrapper
                return zlib.decompress(content, -zlib.MAX_WBITS)
        return zlib.decompress(content, 16 + zlib.MAX_WBITS)
    except zlib.error as exc:
        raise TransportFailure(
            ErrorCode.BAD_CONTENT_ENCODING,
            f"Error while processing content unencoding: {exc}",
        ) from exc


class HTTP11Handle(TransportHandle):
    """
    One-shot HTTP/1.1 exchange (plus any redirects it follows).

    Every hop uses a fresh connection that is closed as soon as the
    hop's response has been read.
    """

    def __init__(self, transport: "HTTP11Transport") -> None:
        self._transport = transport
        self._backend = transport.backend
        self._streams: List[NetworkStream] = []
        self._closed = False
        self._deadline: Optional[float] = None
        self._timeout: Optional[float] = None

        # Metrics
        self._bytes_sent = 0
        self._bytes_received = 0
        self._redirect_count = 0

    def perform(self, options: TransportOptions) -> TransportResult:
        if self._closed:
            raise RuntimeError("Handle is closed")

        start_time = time.monotonic()
        try:
            settings = ExchangeSettings.from_options(
                options, self._transport.max_redirects
            )
            self._timeout = settings.timeout
            self._deadline = start_time + settings.timeout if settings.timeout else None

            content = self._run(settings)
            if settings.write_function is not None:
                self._deliver(settings.write_function, content)
                content = b""
        except TransportFailure as exc:
            logger.error(
                f"Exchange failed with error {exc.code}: {exc.message} "
                f"({time.monotonic() - start_time:.3f}s)"
            )
            return TransportResult.failure(exc.code, exc.message)

        logger.debug(
            f"Exchange finished after {self._redirect_count} redirect(s) "
            f"({time.monotonic() - start_time:.3f}s)"
        )
        return TransportResult(content if settings.return_transfer else b"")

    def _run(self, settings: ExchangeSettings) -> bytes:
        method, url, body = settings.method, settings.url, settings.body

        while True:
            status_code, location, content, content_encoding = self._exchange(
                settings, method, url, body
            )

            if not (settings.follow_location and status_code in REDIRECT_STATUSES and location):
                if settings.encoding is not None and content_encoding:
                    content = decode_content(content, content_encoding)
                return content

            if 0 <= settings.max_redirects <= self._redirect_count:
                raise TransportFailure(
                    ErrorCode.TOO_MANY_REDIRECTS,
                    f"Maximum ({settings.max_redirects}) redirects followed",
                )

            url = urljoin(url, location)
            self._redirect_count += 1
            if (status_code == 303 and method != "HEAD") or (
                status_code in (301, 302) and method == "POST"
            ):
                method, body = "GET", b""
            logger.debug(f"Following redirect {status_code} to {url}")

    def _exchange(
        self,
        settings: ExchangeSettings,
        method: str,
        url: str,
        body: bytes,
    ) -> Tuple[int, Optional[str], bytes, str]:
        try:
            scheme, host, port, target = parse_url(url)
        except ValueError as exc:
            raise TransportFailure(ErrorCode.URL_MALFORMAT, f"URL rejected: {exc}") from exc

        if scheme not in ("http", "https"):
            raise TransportFailure(
                ErrorCode.UNSUPPORTED_PROTOCOL,
                f'Protocol "{scheme}" not supported',
            )

        stream = self._connect(settings, scheme, host, port)
        try:
            connection = h11.Connection(h11.CLIENT)
            headers = self._request_headers(settings, scheme, host, port, method, body)
            try:
                request = h11.Request(method=method, target=target, headers=headers)
            except h11.LocalProtocolError as exc:
                raise TransportFailure(ErrorCode.SEND_ERROR, f"Invalid request: {exc}") from exc

            self._send_event(stream, connection, request)
            if body:
                self._send_event(stream, connection, h11.Data(data=body))
            self._send_event(stream, connection, h11.EndOfMessage())

            return self._receive_response(stream, connection, settings, method)
        finally:
            stream.close()

    def _connect(
        self,
        settings: ExchangeSettings,
        scheme: str,
        host: str,
        port: int,
    ) -> NetworkStream:
        connect_timeout = settings.connect_timeout or self._transport.connect_timeout
        remaining = self._remaining()
        if remaining is not None:
            connect_timeout = min(connect_timeout, remaining) if connect_timeout else remaining

        try:
            stream = self._backend.connect_tcp(host, port, timeout=connect_timeout)
        except socket.gaierror as exc:
            raise TransportFailure(
                ErrorCode.COULDNT_RESOLVE_HOST, f"Could not resolve host: {host}"
            ) from exc
        except socket.timeout as exc:
            raise TransportFailure(
                ErrorCode.OPERATION_TIMEDOUT,
                f"Connection timed out after {self._elapsed_ms(connect_timeout)} milliseconds",
            ) from exc
        except OSError as exc:
            raise TransportFailure(
                ErrorCode.COULDNT_CONNECT,
                f"Failed to connect to {host} port {port}: {exc.strerror or exc}",
            ) from exc
        self._streams.append(stream)

        if scheme != "https":
            return stream

        context = create_ssl_context(
            alpn_protocols=["http/1.1"],
            verify_peer=settings.verify_peer,
            check_hostname=settings.verify_host,
            cafile=settings.cafile,
        )
        try:
            stream = self._backend.connect_tls(
                stream, host, port,
                timeout=connect_timeout,
                alpn_protocols=["http/1.1"],
                ssl_context=context,
            )
        except ssl.SSLCertVerificationError as exc:
            raise TransportFailure(
                ErrorCode.PEER_FAILED_VERIFICATION,
                f"SSL certificate problem: {getattr(exc, 'verify_message', None) or exc}",
            ) from exc
        except socket.timeout as exc:
            raise TransportFailure(
                ErrorCode.OPERATION_TIMEDOUT, "SSL connection timeout"
            ) from exc
        except OSError as exc:
            raise TransportFailure(
                ErrorCode.SSL_CONNECT_ERROR, f"SSL connect error: {exc}"
            ) from exc
        self._streams.append(stream)
        return stream

    def _request_headers(
        self,
        settings: ExchangeSettings,
        scheme: str,
        host: str,
        port: int,
        method: str,
        body: bytes,
    ) -> List[Tuple[bytes, bytes]]:
        headers: List[Tuple[bytes, bytes]] = []
        for line in settings.header_lines:
            name, separator, value = line.partition(":")
            if not separator or not name.strip():
                logger.debug(f"Skipping header line without a value: {line!r}")
                continue
            headers.append((name.strip().encode("utf-8"), value.strip().encode("utf-8")))

        present = {name.lower() for name, _ in headers}

        def add_default(name: bytes, value: str) -> None:
            if name.lower() not in present:
                headers.append((name, value.encode("utf-8")))

        add_default(b"Host", format_host_header(host, port, scheme))
        if settings.user_agent:
            add_default(b"User-Agent", settings.user_agent)
        add_default(b"Accept", "*/*")
        if settings.encoding is not None:
            add_default(b"Accept-Encoding", settings.encoding or SUPPORTED_ENCODINGS)
        if (body or method.upper() in BODY_METHODS) and b"transfer-encoding" not in present:
            add_default(b"Content-Length", str(len(body)))
        add_default(b"Connection", "close")
        return headers

    def _send_event(self, stream: NetworkStream, connection: h11.Connection, event: Any) -> None:
        try:
            data = connection.send(event)
        except h11.LocalProtocolError as exc:
            raise TransportFailure(ErrorCode.SEND_ERROR, f"Invalid request: {exc}") from exc
        if not data:
            return
        try:
            stream.set_timeout(self._remaining())
            stream.write(data)
        except socket.timeout as exc:
            raise self._timeout_failure() from exc
        except OSError as exc:
            raise TransportFailure(
                ErrorCode.SEND_ERROR, f"Failed sending data to the peer: {exc}"
            ) from exc
        self._bytes_sent += len(data)

    def _receive_response(
        self,
        stream: NetworkStream,
        connection: h11.Connection,
        settings: ExchangeSettings,
        method: str,
    ) -> Tuple[int, Optional[str], bytes, str]:
        status_code: Optional[int] = None
        location: Optional[str] = None
        content_encoding = ""
        chunks: List[bytes] = []

        while True:
            event = self._next_event(stream, connection)

            if isinstance(event, h11.InformationalResponse):
                self._emit_head(settings, event)
                continue

            if isinstance(event, h11.Response):
                self._emit_head(settings, event)
                status_code = event.status_code
                for name, value in event.headers:
                    if name == b"location":
                        location = value.decode("iso-8859-1")
                    elif name == b"content-encoding":
                        content_encoding = value.decode("iso-8859-1")
                if settings.nobody and method.upper() != "HEAD":
                    return status_code, location, b"", content_encoding
                continue

            if isinstance(event, h11.Data):
                chunks.append(bytes(event.data))
                continue

            if isinstance(event, h11.EndOfMessage):
                break

            if isinstance(event, h11.ConnectionClosed):
                if status_code is None:
                    raise TransportFailure(ErrorCode.GOT_NOTHING, "Empty reply from server")
                break

        return status_code, location, b"".join(chunks), content_encoding

    def _next_event(self, stream: NetworkStream, connection: h11.Connection) -> Any:
        while True:
            try:
                event = connection.next_event()
            except h11.RemoteProtocolError as exc:
                if self._bytes_received == 0:
                    raise TransportFailure(
                        ErrorCode.GOT_NOTHING, "Empty reply from server"
                    ) from exc
                raise TransportFailure(
                    ErrorCode.WEIRD_SERVER_REPLY, f"Invalid server reply: {exc}"
                ) from exc

            if event is not h11.NEED_DATA:
                return event

            try:
                stream.set_timeout(self._remaining())
                data = stream.read(self._transport.read_chunk_size)
            except socket.timeout as exc:
                raise self._timeout_failure() from exc
            except OSError as exc:
                raise TransportFailure(
                    ErrorCode.RECV_ERROR, f"Failure when receiving data from the peer: {exc}"
                ) from exc

            self._bytes_received += len(data)
            connection.receive_data(data)

    def _emit_head(self, settings: ExchangeSettings, event: Any) -> None:
        status_line = b"HTTP/%s %d" % (event.http_version, event.status_code)
        if event.reason:
            status_line += b" " + event.reason
        self._emit(settings, status_line + b"\r\n")

        for name, value in event.headers.raw_items():
            self._emit(settings, name + b": " + value + b"\r\n")
        self._emit(settings, b"\r\n")

    @staticmethod
    def _emit(settings: ExchangeSettings, line: bytes) -> None:
        if settings.header_function is None:
            return
        try:
            consumed = settings.header_function(line)
        except Exception as exc:
            raise TransportFailure(
                ErrorCode.WRITE_ERROR, f"Header callback failed: {exc}"
            ) from exc
        if consumed is not None and consumed != len(line):
            raise TransportFailure(ErrorCode.WRITE_ERROR, "Failed writing header")

    @staticmethod
    def _deliver(write_function: Callable[[bytes], Optional[int]], content: bytes) -> None:
        if not content:
            return
        written = write_function(content)
        if written is not None and written != len(content):
            raise TransportFailure(
                ErrorCode.WRITE_ERROR, "Failure writing output to destination"
            )

    def _remaining(self) -> Optional[float]:
        """Seconds left before the overall deadline, or None without one."""
        if self._deadline is None:
            return None
        remaining = self._deadline - time.monotonic()
        if remaining <= 0:
            raise self._timeout_failure()
        return remaining

    def _timeout_failure(self) -> TransportFailure:
        return TransportFailure(
            ErrorCode.OPERATION_TIMEDOUT,
            f"Operation timed out after {self._elapsed_ms(self._timeout)} milliseconds",
        )

    @staticmethod
    def _elapsed_ms(timeout: Optional[float]) -> int:
        return int((timeout or 0) * 1000)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for stream in self._streams:
            if not stream.is_closed:
                stream.close()
        self._streams.clear()
        logger.debug(f"Handle closed ({self._bytes_sent} bytes sent, {self._bytes_received} received)")

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def metrics(self) -> Dict[str, Any]:
        """
        Get handle metrics.

        Returns:
            Dictionary with byte counts and the number of redirects followed
        """
        return {
            "bytes_sent": self._bytes_sent,
            "bytes_received": self._bytes_received,
            "redirect_count": self._redirect_count,
        }


class HTTP11Transport(Transport):
    """
    Pure-Python HTTP/1.1 transport.

    HTTP/2 is not available here; requests asking for it are sent as
    HTTP/1.1, the same fallback libcurl applies when h2 cannot be
    negotiated.
    """

    # Default configuration
    DEFAULT_CONNECT_TIMEOUT = 300.0  # libcurl's default
    DEFAULT_MAX_REDIRECTS = 30
    READ_CHUNK_SIZE = 65536  # 64KB chunks

    def __init__(
        self,
        backend: Optional[NetworkBackend] = None,
        connect_timeout: Optional[float] = None,
        max_redirects: Optional[int] = None,
        read_chunk_size: Optional[int] = None,
    ) -> None:
        """
        Initialize the transport.

        Args:
            backend: NetworkBackend used for connections (sockets by default)
            connect_timeout: Connect timeout used when CONNECTTIMEOUT is not set
            max_redirects: Redirect limit used when MAXREDIRS is not set
            read_chunk_size: Maximum bytes per read
        """
        self.backend = backend or SocketNetworkBackend()
        self.connect_timeout = connect_timeout or self.DEFAULT_CONNECT_TIMEOUT
        self.max_redirects = (
            max_redirects if max_redirects is not None else self.DEFAULT_MAX_REDIRECTS
        )
        self.read_chunk_size = read_chunk_size or self.READ_CHUNK_SIZE

    def open(self) -> HTTP11Handle:
        return HTTP11Handle(self)
