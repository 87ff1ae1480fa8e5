"""
Mock network implementations for testing.

This module provides mock implementations of NetworkStream and NetworkBackend
that can be used for unit testing without requiring actual network connections.
"""

import ssl
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Tuple

from .backend import NetworkBackend
from .stream import NetworkStream


class MockNetworkStream(NetworkStream):
    """
    Mock network stream for testing.

    This implementation simulates a network stream in memory,
    allowing tests to verify network behavior without actual I/O.
    """

    def __init__(self, data: bytes = b"", read_error: Optional[OSError] = None):
        """
        Initialize the mock stream.

        Args:
            data: Data to be available for reading.
            read_error: Raised by ``read`` once ``data`` is exhausted.
        """
        self._data = data
        self._position = 0
        self._closed = False
        self._read_error = read_error
        self._extra_info: Dict[str, Any] = {}
        self._write_buffer: List[bytes] = []
        self.timeout: Optional[float] = None

    def read(self, max_bytes: Optional[int] = None) -> bytes:
        if self._closed:
            raise RuntimeError("Stream is closed")

        if self._position >= len(self._data):
            if self._read_error is not None:
                raise self._read_error
            return b""

        if max_bytes is None:
            result = self._data[self._position:]
            self._position = len(self._data)
        else:
            end = min(self._position + max_bytes, len(self._data))
            result = self._data[self._position:end]
            self._position = end

        return result

    def write(self, data: bytes) -> None:
        if self._closed:
            raise RuntimeError("Stream is closed")

        self._write_buffer.append(data)

    def close(self) -> None:
        """Close the mock stream."""
        self._closed = True

    def set_timeout(self, timeout: Optional[float]) -> None:
        self.timeout = timeout

    def get_extra_info(self, name: str) -> Optional[Any]:
        return self._extra_info.get(name)

    @property
    def is_closed(self) -> bool:
        """Check if the mock stream is closed."""
        return self._closed

    @property
    def written_data(self) -> bytes:
        """Get all data that was written to the stream."""
        return b"".join(self._write_buffer)

    def set_extra_info(self, name: str, value: Any) -> None:
        self._extra_info[name] = value

    def add_data(self, data: bytes) -> None:
        """
        Add data to be available for reading.

        Args:
            data: The data to add.
        """
        self._data += data


class MockNetworkBackend(NetworkBackend):
    """
    Mock network backend for testing.

    Every ``connect_tcp`` call opens a fresh stream fed with the next
    response queued for that endpoint, so a redirect chain can be
    scripted one connection at a time.
    """

    def __init__(self) -> None:
        self._responses: Dict[Tuple[str, int], Deque[Tuple[bytes, Optional[OSError]]]] = {}
        self._failures: Dict[Tuple[str, int], OSError] = {}
        self._tls_failures: Dict[Tuple[str, int], OSError] = {}
        self.connections: List[MockNetworkStream] = []
        self.connect_timeouts: List[Optional[float]] = []
        self.ssl_contexts: List[Optional[ssl.SSLContext]] = []

    def queue_response(
        self,
        host: str,
        port: int,
        data: bytes,
        read_error: Optional[OSError] = None,
    ) -> None:
        """
        Queue raw response bytes for the next connection to host:port.

        ``read_error`` is raised once the connection has delivered ``data``.
        """
        self._responses.setdefault((host, port), deque()).append((data, read_error))

    def fail_connect(self, host: str, port: int, error: OSError) -> None:
        """Make connections to host:port raise ``error``."""
        self._failures[(host, port)] = error

    def fail_tls(self, host: str, port: int, error: OSError) -> None:
        """Make TLS handshakes with host:port raise ``error``."""
        self._tls_failures[(host, port)] = error

    def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None,
    ) -> MockNetworkStream:
        key = (host, port)
        self.connect_timeouts.append(timeout)
        if key in self._failures:
            raise self._failures[key]

        queued = self._responses.get(key)
        data, read_error = queued.popleft() if queued else (b"", None)
        stream = MockNetworkStream(data, read_error=read_error)
        stream.set_extra_info("peername", key)
        stream.set_extra_info("sockname", ("127.0.0.1", 12345))
        stream.set_extra_info("ssl_object", False)
        self.connections.append(stream)
        return stream

    def connect_tls(
        self,
        stream: NetworkStream,
        host: str,
        port: int,
        timeout: Optional[float] = None,
        alpn_protocols: Optional[List[str]] = None,
        ssl_context: Optional[ssl.SSLContext] = None,
    ) -> NetworkStream:
        """Mark the stream as TLS; the data is left untouched."""
        self.ssl_contexts.append(ssl_context)
        if (host, port) in self._tls_failures:
            raise self._tls_failures[(host, port)]

        if isinstance(stream, MockNetworkStream):
            stream.set_extra_info("ssl_object", True)
            stream.set_extra_info(
                "selected_alpn_protocol",
                alpn_protocols[0] if alpn_protocols else "http/1.1",
            )
        return stream

    @property
    def last_connection(self) -> Optional[MockNetworkStream]:
        return self.connections[-1] if self.connections else None

    def reset(self) -> None:
        """Reset all mock connections."""
        self._responses.clear()
        self._failures.clear()
        self._tls_failures.clear()
        self.connections.clear()
        self.connect_timeouts.clear()
        self.ssl_contexts.clear()
