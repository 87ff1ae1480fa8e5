"""
Transports for c_http_client.

A transport performs the HTTP exchange described by an option set.
``CurlTransport`` delegates to libcurl, ``HTTP11Transport`` runs on h11
and the network backend, ``MockTransport`` plays back scripted responses.
"""

from .base import ErrorCode, Transport, TransportHandle, TransportResult
from .curl import CurlHandle, CurlTransport
from .http11 import HTTP11Handle, HTTP11Transport
from .mock import MockTransport, MockTransportHandle

__all__ = [
    "ErrorCode",
    "Transport",
    "TransportHandle",
    "TransportResult",
    "CurlHandle",
    "CurlTransport",
    "HTTP11Handle",
    "HTTP11Transport",
    "MockTransport",
    "MockTransportHandle",
]
