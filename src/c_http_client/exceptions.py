"""
Custom exceptions for c_http_client.

This module defines the exception hierarchy raised by the client.
Every failure of ``Client.send_request`` is reported as exactly one of
``ClientError``, ``RequestError`` or ``NetworkError``.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .http_primitives import Request


class HTTPClientError(Exception):
    """Base exception for all c_http_client errors."""

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.code = code


class RequestAwareMixin:
    """
    Gives an error access to the request that caused it.

    The request is shared with the caller, not copied. It MAY be a
    different object from the one passed to ``Client.send_request``.
    """

    _request: Optional["Request"] = None

    def set_request(self, request: Optional["Request"]) -> None:
        """Attach the originating request."""
        self._request = request

    @property
    def request(self) -> Optional["Request"]:
        """The request that caused this error, if known."""
        return self._request

    @property
    def has_request(self) -> bool:
        return self._request is not None


class ClientError(RequestAwareMixin, HTTPClientError):
    """
    Raised for local misconfiguration or environment failures.

    Examples are a disabled transport capability or a response body
    that cannot be written. A request is attached only when the failure
    happens after the request was validated.
    """

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        code: Optional[int] = None,
        request: Optional["Request"] = None,
    ) -> None:
        super().__init__(message, cause, code)
        self.set_request(request)


class RequestError(RequestAwareMixin, HTTPClientError):
    """Raised when a request cannot be sent as given (missing host, unreadable body...)."""

    def __init__(
        self,
        message: str,
        request: "Request",
        cause: Optional[BaseException] = None,
        code: Optional[int] = None,
    ) -> None:
        super().__init__(message, cause, code)
        self.set_request(request)


class NetworkError(RequestAwareMixin, HTTPClientError):
    """
    Raised when the transport attempted the exchange and failed.

    ``code`` holds the transport's numeric error code (libcurl numbering)
    and ``message`` its error message.
    """

    def __init__(
        self,
        message: str,
        request: "Request",
        code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, cause, code)
        self.set_request(request)


class StreamError(HTTPClientError):
    """Raised when there's an error with body stream operations."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Stream error: {message}", cause)
