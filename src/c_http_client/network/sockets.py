"""
Blocking socket implementation of the network interfaces.
"""

import logging
import socket
import ssl
from typing import Any, List, Optional

from .backend import NetworkBackend
from .stream import NetworkStream
from .utils import create_ssl_context

logger = logging.getLogger(__name__)


class SocketNetworkStream(NetworkStream):
    """NetworkStream over a connected (optionally TLS-wrapped) socket."""

    DEFAULT_READ_SIZE = 65536

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock
        self._closed = False

    def read(self, max_bytes: Optional[int] = None) -> bytes:
        if self._closed:
            raise RuntimeError("Stream is closed")
        return self._sock.recv(max_bytes or self.DEFAULT_READ_SIZE)

    def write(self, data: bytes) -> None:
        if self._closed:
            raise RuntimeError("Stream is closed")
        self._sock.sendall(data)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._sock.close()
        except OSError as exc:
            logger.debug(f"Error while closing socket: {exc}")

    def set_timeout(self, timeout: Optional[float]) -> None:
        self._sock.settimeout(timeout)

    def get_extra_info(self, name: str) -> Optional[Any]:
        if name == "socket":
            return self._sock
        if name == "ssl_object":
            return isinstance(self._sock, ssl.SSLSocket)
        if name == "selected_alpn_protocol" and isinstance(self._sock, ssl.SSLSocket):
            return self._sock.selected_alpn_protocol()
        try:
            if name == "peername":
                return self._sock.getpeername()
            if name == "sockname":
                return self._sock.getsockname()
        except OSError:
            return None
        return None

    @property
    def is_closed(self) -> bool:
        return self._closed


class SocketNetworkBackend(NetworkBackend):
    """Network backend using blocking sockets from the standard library."""

    def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None,
    ) -> SocketNetworkStream:
        sock = socket.create_connection((host, port), timeout=timeout)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        logger.debug(f"Connected to {host}:{port}")
        return SocketNetworkStream(sock)

    def connect_tls(
        self,
        stream: NetworkStream,
        host: str,
        port: int,
        timeout: Optional[float] = None,
        alpn_protocols: Optional[List[str]] = None,
        ssl_context: Optional[ssl.SSLContext] = None,
    ) -> SocketNetworkStream:
        sock = stream.get_extra_info("socket")
        if sock is None:
            raise RuntimeError("Stream has no underlying socket")

        context = ssl_context or create_ssl_context(alpn_protocols=alpn_protocols)
        sock.settimeout(timeout)
        tls_sock = context.wrap_socket(sock, server_hostname=host)
        logger.debug(f"TLS established with {host}:{port} ({tls_sock.version()})")
        return SocketNetworkStream(tls_sock)
