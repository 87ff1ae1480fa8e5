"""
Network utilities for c_http_client.

This module provides helpers for URL splitting, Host header
formatting and SSL context setup.
"""

import socket
import ssl
from typing import List, Optional, Tuple
from urllib.parse import urlsplit

DEFAULT_PORTS = {"http": 80, "https": 443}


def parse_url(url: str) -> Tuple[str, str, int, str]:
    """
    Parse URL into components.

    Args:
        url: URL string to parse

    Returns:
        Tuple of (scheme, host, port, target) where target is the
        request-target (path plus query)

    Raises:
        ValueError: If URL is malformed
    """
    parsed = urlsplit(url)

    # Extract scheme
    scheme = (parsed.scheme or "http").lower()

    # Extract host
    host = parsed.hostname or ""
    if not host:
        raise ValueError("No hostname found in URL")

    # Extract port (parsed.port raises ValueError itself when out of range)
    port = parsed.port
    if port is None:
        port = DEFAULT_PORTS.get(scheme, 80)

    # Build request-target; fragments never go on the wire
    target = parsed.path or "/"
    if parsed.query:
        target += "?" + parsed.query

    return scheme, host, port, target


def is_ipv6_address(host: str) -> bool:
    """
    Check if a host string is an IPv6 address.

    Args:
        host: Host string to check

    Returns:
        True if the host is an IPv6 address
    """
    try:
        socket.inet_pton(socket.AF_INET6, host)
        return True
    except OSError:
        return False


def format_host_header(host: str, port: int, scheme: str) -> str:
    """
    Format host header for HTTP requests.

    Args:
        host: Hostname
        port: Port number
        scheme: URL scheme

    Returns:
        Formatted host header string
    """
    if is_ipv6_address(host):
        host = f"[{host}]"
    if DEFAULT_PORTS.get(scheme) == port:
        return host
    return f"{host}:{port}"


def create_ssl_context(
    alpn_protocols: Optional[List[str]] = None,
    verify_peer: bool = True,
    check_hostname: bool = True,
    cafile: Optional[str] = None,
) -> ssl.SSLContext:
    """
    Create an SSL context for client connections.

    Args:
        alpn_protocols: Optional list of ALPN protocols to negotiate
        verify_peer: Whether to verify the peer certificate
        check_hostname: Whether to verify hostname (ignored without verify_peer)
        cafile: Optional CA bundle used instead of the system store

    Returns:
        Configured SSL context
    """
    context = ssl.create_default_context(cafile=cafile)

    if not verify_peer:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    else:
        context.check_hostname = check_hostname

    # Set ALPN protocols if provided
    if alpn_protocols:
        context.set_alpn_protocols(alpn_protocols)

    context.options |= ssl.OP_NO_COMPRESSION

    # Disable legacy protocols
    context.minimum_version = ssl.TLSVersion.TLSv1_2

    return context
