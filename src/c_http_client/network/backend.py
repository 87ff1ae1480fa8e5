"""
Network backend interface for c_http_client.

``HTTP11Transport`` opens every connection through a NetworkBackend,
which lets tests swap real sockets for scripted streams.
"""

import ssl
from abc import ABC, abstractmethod
from typing import List, Optional

from .stream import NetworkStream


class NetworkBackend(ABC):
    """
    Opens blocking TCP connections and upgrades them to TLS.

    Failures are raised as the OSError subclasses the socket and ssl
    modules use, so the transport can map them onto error codes.
    """

    @abstractmethod
    def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None,
    ) -> NetworkStream:
        """
        Connect to a TCP endpoint.

        Args:
            host: The hostname or IP address to connect to.
            port: The port number to connect to.
            timeout: Optional timeout in seconds for the connection.

        Returns:
            A NetworkStream representing the TCP connection.

        Raises:
            socket.gaierror: If the host cannot be resolved.
            OSError: If the connection fails.
            socket.timeout: If the connection times out.
        """
        pass

    @abstractmethod
    def connect_tls(
        self,
        stream: NetworkStream,
        host: str,
        port: int,
        timeout: Optional[float] = None,
        alpn_protocols: Optional[List[str]] = None,
        ssl_context: Optional[ssl.SSLContext] = None,
    ) -> NetworkStream:
        """
        Upgrade a TCP stream to TLS.

        Args:
            stream: The existing TCP NetworkStream to upgrade.
            host: The hostname for TLS certificate verification.
            port: The port number.
            timeout: Optional timeout in seconds for the TLS handshake.
            alpn_protocols: Optional list of ALPN protocols to negotiate.
            ssl_context: Optional preconfigured context; a default
                         verifying context is used otherwise.

        Returns:
            A NetworkStream representing the TLS connection.

        Raises:
            ssl.SSLError: If the TLS handshake fails.
            socket.timeout: If the TLS handshake times out.
        """
        pass
