"""
HTTP primitives for c_http_client.

This module defines the value objects exchanged with the client:
URIs, requests and responses. Requests and responses are immutable;
every ``with_*`` method returns a new instance.
"""

from abc import ABC, abstractmethod
from typing import (
    Dict,
    Iterable,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Sequence,
    Union,
)
from dataclasses import dataclass, field, replace
from urllib.parse import urlsplit, urlunsplit

from .streams import BytesStream, StreamInterface, create_body_stream


# Type aliases for better readability
Headers = Dict[str, List[str]]
HeaderValues = Union[str, Sequence[str]]
StatusCode = int


class URI(NamedTuple):
    """Immutable representation of URI components."""
    scheme: str
    userinfo: str
    host: str
    port: Optional[int]
    path: str
    query: str
    fragment: str

    @classmethod
    def from_string(cls, uri: str) -> "URI":
        """
        Create a URI from a string.

        The host is empty when the string has no authority part; that
        is not an error here, the client rejects such requests later.
        """
        parsed = urlsplit(uri)
        userinfo = ""
        if "@" in parsed.netloc:
            userinfo = parsed.netloc.rsplit("@", 1)[0]

        return cls(
            scheme=parsed.scheme.lower(),
            userinfo=userinfo,
            host=parsed.hostname or "",
            port=parsed.port,
            path=parsed.path,
            query=parsed.query,
            fragment=parsed.fragment,
        )

    @property
    def authority(self) -> str:
        """userinfo@host:port, with IPv6 hosts bracketed."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.port is not None:
            host = f"{host}:{self.port}"
        if self.userinfo:
            host = f"{self.userinfo}@{host}"
        return host

    def with_host(self, host: str) -> "URI":
        return self._replace(host=host)

    def __str__(self) -> str:
        return urlunsplit(
            (self.scheme, self.authority, self.path, self.query, self.fragment)
        )


def _normalize_values(value: HeaderValues) -> List[str]:
    if isinstance(value, (str, bytes)):
        value = [value]
    values = []
    for item in value:
        if isinstance(item, bytes):
            item = item.decode("iso-8859-1")
        values.append(str(item))
    return values


def _find_header(headers: Headers, name: str) -> Optional[str]:
    """Return the stored spelling of ``name`` (case-insensitive), if present."""
    name_lower = name.lower()
    for existing in headers:
        if existing.lower() == name_lower:
            return existing
    return None


def _validate_headers(headers: Headers) -> None:
    if not isinstance(headers, dict):
        raise ValueError("headers must be a dict")

    for name, values in headers.items():
        if not isinstance(name, str) or not name:
            raise ValueError("header names must be non-empty strings")
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise ValueError("header values must be a list of strings")


def _build_headers(headers: Union[Mapping[str, HeaderValues], Iterable, None]) -> Headers:
    result: Headers = {}
    if headers is None:
        return result

    items = headers.items() if isinstance(headers, Mapping) else headers
    for name, value in items:
        if isinstance(name, bytes):
            name = name.decode("iso-8859-1")
        existing = _find_header(result, name)
        if existing is None:
            result[name] = _normalize_values(value)
        else:
            result[existing] = result[existing] + _normalize_values(value)
    return result


class _HeaderAccessMixin:
    """Case-insensitive header accessors shared by Request and Response."""

    headers: Headers

    def get_header(self, name: str) -> List[str]:
        """Get all values of a header (case-insensitive), or an empty list."""
        existing = _find_header(self.headers, name)
        if existing is None:
            return []
        return list(self.headers[existing])

    def get_header_line(self, name: str) -> str:
        """Get the values of a header joined with ', '."""
        return ", ".join(self.get_header(name))

    def has_header(self, name: str) -> bool:
        """Check if a header exists (case-insensitive)."""
        return _find_header(self.headers, name) is not None

    def _replaced_headers(self, name: str, value: HeaderValues) -> Headers:
        headers = dict(self.headers)
        existing = _find_header(headers, name)
        if existing is not None:
            del headers[existing]
        headers[name] = _normalize_values(value)
        return headers

    def _added_headers(self, name: str, value: HeaderValues) -> Headers:
        headers = dict(self.headers)
        existing = _find_header(headers, name)
        if existing is None:
            headers[name] = _normalize_values(value)
        else:
            headers[existing] = headers[existing] + _normalize_values(value)
        return headers

    def _removed_headers(self, name: str) -> Headers:
        headers = dict(self.headers)
        existing = _find_header(headers, name)
        if existing is not None:
            del headers[existing]
        return headers


@dataclass(frozen=True)
class Request(_HeaderAccessMixin):
    """
    Immutable HTTP request representation.

    Once created, the request cannot be modified - any changes
    must create a new Request instance.
    """

    method: str
    uri: URI
    headers: Headers = field(default_factory=dict)
    body: Optional[StreamInterface] = None
    protocol_version: str = "1.1"

    def __post_init__(self) -> None:
        """Validate request data after initialization."""
        if not isinstance(self.method, str):
            raise ValueError("method must be a string")

        if not isinstance(self.uri, URI):
            raise ValueError("uri must be a URI")

        if not isinstance(self.protocol_version, str):
            raise ValueError("protocol_version must be a string")

        if self.body is not None and not isinstance(self.body, StreamInterface):
            raise ValueError("body must implement StreamInterface")

        _validate_headers(self.headers)

    @classmethod
    def create(
        cls,
        method: Union[str, bytes],
        uri: Union[str, URI],
        headers: Optional[Mapping[str, HeaderValues]] = None,
        body: Union[bytes, str, StreamInterface, None] = None,
        protocol_version: str = "1.1",
    ) -> "Request":
        """
        Create a Request with proper type conversion.

        Args:
            method: HTTP method (GET, POST, etc.)
            uri: URI string or URI
            headers: Optional mapping of header name to value(s)
            body: Optional body as bytes, string or stream
            protocol_version: HTTP protocol version ("1.0", "1.1", "2"...)

        Returns:
            New Request instance
        """
        if isinstance(method, bytes):
            method = method.decode("ascii")

        if isinstance(uri, str):
            uri = URI.from_string(uri)
        elif not isinstance(uri, URI):
            raise ValueError("uri must be a string or URI")

        return cls(
            method=method,
            uri=uri,
            headers=_build_headers(headers),
            body=create_body_stream(body),
            protocol_version=protocol_version,
        )

    def with_method(self, method: str) -> "Request":
        """Create a new request with a different method."""
        return replace(self, method=method)

    def with_uri(self, uri: Union[str, URI]) -> "Request":
        """Create a new request with a different URI."""
        if isinstance(uri, str):
            uri = URI.from_string(uri)
        return replace(self, uri=uri)

    def with_protocol_version(self, protocol_version: str) -> "Request":
        return replace(self, protocol_version=protocol_version)

    def with_header(self, name: str, value: HeaderValues) -> "Request":
        """Create a new request with ``name`` replaced by ``value``."""
        return replace(self, headers=self._replaced_headers(name, value))

    def with_added_header(self, name: str, value: HeaderValues) -> "Request":
        """Create a new request with ``value`` appended to ``name``."""
        return replace(self, headers=self._added_headers(name, value))

    def without_header(self, name: str) -> "Request":
        return replace(self, headers=self._removed_headers(name))

    def with_body(self, body: Union[bytes, str, StreamInterface, None]) -> "Request":
        """Create a new request with a different body."""
        return replace(self, body=create_body_stream(body))

    @property
    def host(self) -> str:
        """Get the URI host."""
        return self.uri.host


@dataclass(frozen=True)
class Response(_HeaderAccessMixin):
    """
    Immutable HTTP response representation.

    The response itself is immutable, but its body is a stream that
    the client writes the received content into.
    """

    status_code: StatusCode = 200
    reason_phrase: str = ""
    headers: Headers = field(default_factory=dict)
    body: StreamInterface = field(default_factory=BytesStream)
    protocol_version: str = "1.1"

    def __post_init__(self) -> None:
        """Validate response data after initialization."""
        if not isinstance(self.status_code, int) or isinstance(self.status_code, bool):
            raise ValueError("status_code must be int")

        if not 100 <= self.status_code <= 999:
            raise ValueError(f"status_code must be between 100 and 999, got {self.status_code}")

        if not isinstance(self.reason_phrase, str):
            raise ValueError("reason_phrase must be a string")

        if not isinstance(self.body, StreamInterface):
            raise ValueError("body must implement StreamInterface")

        _validate_headers(self.headers)

    def with_status(self, status_code: StatusCode, reason_phrase: str = "") -> "Response":
        """Create a new response with a different status line."""
        return replace(self, status_code=status_code, reason_phrase=reason_phrase)

    def with_header(self, name: str, value: HeaderValues) -> "Response":
        """Create a new response with ``name`` replaced by ``value``."""
        return replace(self, headers=self._replaced_headers(name, value))

    def with_added_header(self, name: str, value: HeaderValues) -> "Response":
        """Create a new response with ``value`` appended to ``name``."""
        return replace(self, headers=self._added_headers(name, value))

    def without_header(self, name: str) -> "Response":
        return replace(self, headers=self._removed_headers(name))

    def with_body(self, body: StreamInterface) -> "Response":
        """Create a new response with a different body stream."""
        return replace(self, body=body)

    def with_protocol_version(self, protocol_version: str) -> "Response":
        return replace(self, protocol_version=protocol_version)

    @property
    def content(self) -> bytes:
        """The whole body. Rewinds the body stream when it can."""
        return bytes(self.body)


class BaseResponseFactory(ABC):
    """Interface for objects that produce initial Response values."""

    @abstractmethod
    def create_response(self, code: StatusCode = 200, reason_phrase: str = "") -> Response:
        pass


class ResponseFactory(BaseResponseFactory):
    """Default factory producing a ``Response`` with an empty writable body."""

    def create_response(self, code: StatusCode = 200, reason_phrase: str = "") -> Response:
        return Response(status_code=code, reason_phrase=reason_phrase, body=BytesStream())
