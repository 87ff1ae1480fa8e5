"""
Network backend components for c_http_client.

This module provides the low-level networking abstractions used by
the pure-Python transport.
"""

from .backend import NetworkBackend
from .stream import NetworkStream
from .mock import MockNetworkBackend, MockNetworkStream
from .sockets import SocketNetworkBackend, SocketNetworkStream
from .utils import (
    create_ssl_context,
    format_host_header,
    is_ipv6_address,
    parse_url,
)

__all__ = [
    "NetworkBackend",
    "NetworkStream",
    "MockNetworkBackend",
    "MockNetworkStream",
    "SocketNetworkBackend",
    "SocketNetworkStream",
    "create_ssl_context",
    "format_host_header",
    "is_ipv6_address",
    "parse_url",
]
