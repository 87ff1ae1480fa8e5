"""
c_http_client - synchronous HTTP transport client

Turns immutable request values into transport option sets, runs the
exchange on libcurl (or a pure-Python h11 transport), rebuilds the
response from the raw header lines and classifies every failure.
"""

__version__ = "0.1.0"
__author__ = "Developer"
__email__ = "dev@example.com"

# Import main components for easy access
from .http_primitives import URI, Request, Response, BaseResponseFactory, ResponseFactory
from .streams import BytesStream, StreamInterface, create_body_stream
from .options import HTTPVersion, Option, OptionTranslator
from .assembler import AssemblerState, ResponseAssembler
from .client import Client
from .exceptions import (
    HTTPClientError,
    ClientError,
    RequestError,
    NetworkError,
    StreamError,
)
from .transport import (
    CurlTransport,
    ErrorCode,
    HTTP11Transport,
    MockTransport,
    Transport,
    TransportResult,
)

__all__ = [
    "URI",
    "Request",
    "Response",
    "BaseResponseFactory",
    "ResponseFactory",
    "BytesStream",
    "StreamInterface",
    "create_body_stream",
    "HTTPVersion",
    "Option",
    "OptionTranslator",
    "AssemblerState",
    "ResponseAssembler",
    "Client",
    "HTTPClientError",
    "ClientError",
    "RequestError",
    "NetworkError",
    "StreamError",
    "CurlTransport",
    "ErrorCode",
    "HTTP11Transport",
    "MockTransport",
    "Transport",
    "TransportResult",
]
