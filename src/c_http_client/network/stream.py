"""
Network stream interface for c_http_client.

This module defines the NetworkStream interface that all network stream
implementations must follow for consistent behavior across the library.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class NetworkStream(ABC):
    """
    Interface for network streams with blocking I/O operations.

    Implementations report failures as ``OSError`` (including
    ``socket.timeout`` and ``ssl.SSLError``), which transports map onto
    their error codes.
    """

    @abstractmethod
    def read(self, max_bytes: Optional[int] = None) -> bytes:
        """
        Read data from the stream.

        Args:
            max_bytes: Maximum number of bytes to read.

        Returns:
            The data read from the stream, b"" once the peer has closed.

        Raises:
            RuntimeError: If the stream is closed.
            OSError: If a network error occurs.
        """
        pass

    @abstractmethod
    def write(self, data: bytes) -> None:
        """
        Write all of ``data`` to the stream.

        Raises:
            RuntimeError: If the stream is closed.
            OSError: If a network error occurs.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the stream and cleanup resources."""
        pass

    @abstractmethod
    def set_timeout(self, timeout: Optional[float]) -> None:
        """Set the timeout for subsequent reads and writes (None blocks)."""
        pass

    @abstractmethod
    def get_extra_info(self, name: str) -> Optional[Any]:
        """
        Get extra information about the stream.

        Args:
            name: The name of the information to retrieve. Common values include:
                 - "socket": The underlying socket object
                 - "peername": The remote endpoint address
                 - "sockname": The local endpoint address
                 - "ssl_object": Whether the stream is SSL/TLS encrypted

        Returns:
            The requested information or None if not available.
        """
        pass

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        """Check if the stream is closed."""
        pass
