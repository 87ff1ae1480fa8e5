"""
Transport interface for c_http_client.

A transport performs the actual HTTP exchange. Each request gets its
own ``TransportHandle``: it is opened right before the exchange and
closed on every exit path, so handles never outlive a call.
"""

from abc import ABC, abstractmethod
from enum import IntEnum
from types import TracebackType
from typing import NamedTuple, Optional, Type

from ..options import TransportOptions


class ErrorCode(IntEnum):
    """Transport error codes, numbered like libcurl's CURLcode."""

    OK = 0
    UNSUPPORTED_PROTOCOL = 1
    URL_MALFORMAT = 3
    COULDNT_RESOLVE_HOST = 6
    COULDNT_CONNECT = 7
    WEIRD_SERVER_REPLY = 8
    WRITE_ERROR = 23
    OPERATION_TIMEDOUT = 28
    SSL_CONNECT_ERROR = 35
    ABORTED_BY_CALLBACK = 42
    TOO_MANY_REDIRECTS = 47
    GOT_NOTHING = 52
    SEND_ERROR = 55
    RECV_ERROR = 56
    PEER_FAILED_VERIFICATION = 60
    BAD_CONTENT_ENCODING = 61


class TransportResult(NamedTuple):
    """Outcome of one exchange; ``error_code`` is 0 on success."""
    content: bytes = b""
    error_code: int = 0
    error_message: str = ""

    @property
    def ok(self) -> bool:
        return self.error_code == 0

    @classmethod
    def failure(cls, code: int, message: str) -> "TransportResult":
        return cls(b"", int(code), message)


class TransportFailure(Exception):
    """Internal signal used by transports to abort an exchange with an error code."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class TransportHandle(ABC):
    """
    A single-use transport resource.

    Handles are context managers; leaving the ``with`` block closes
    them whatever happened inside.
    """

    @abstractmethod
    def perform(self, options: TransportOptions) -> TransportResult:
        """
        Execute one exchange with the given options.

        Network failures are reported through the result's error code
        and message, not raised.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the resources held by the handle."""
        pass

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        pass

    def __enter__(self) -> "TransportHandle":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.close()


class Transport(ABC):
    """Interface for transport implementations."""

    @property
    def available(self) -> bool:
        """Whether the transport can open URL resources in this environment."""
        return True

    @abstractmethod
    def open(self) -> TransportHandle:
        """Acquire a new handle for a single exchange."""
        pass
