"""
Transport option translation for c_http_client.

``OptionTranslator`` turns a ``Request`` into the flat option set a
transport accepts. Option keys are named after the libcurl options
they correspond to, so the same mapping drives every transport.
"""

import logging
from enum import Enum, IntEnum
from typing import Any, Dict, List, Mapping, Optional, Union

from typing_extensions import Protocol

from .exceptions import RequestError, StreamError
from .http_primitives import Headers, Request

logger = logging.getLogger(__name__)


class Option(str, Enum):
    """
    Transport option keys.

    Members compare and hash equal to their string value, so
    ``options["TIMEOUT"]`` and ``options[Option.TIMEOUT]`` address the
    same entry.
    """

    CUSTOMREQUEST = "CUSTOMREQUEST"
    URL = "URL"
    HTTP_VERSION = "HTTP_VERSION"
    POSTFIELDS = "POSTFIELDS"
    HTTPHEADER = "HTTPHEADER"
    HEADERFUNCTION = "HEADERFUNCTION"
    WRITEFUNCTION = "WRITEFUNCTION"
    RETURNTRANSFER = "RETURNTRANSFER"
    ENCODING = "ENCODING"
    NOBODY = "NOBODY"
    TIMEOUT = "TIMEOUT"
    CONNECTTIMEOUT = "CONNECTTIMEOUT"
    FOLLOWLOCATION = "FOLLOWLOCATION"
    MAXREDIRS = "MAXREDIRS"
    SSL_VERIFYPEER = "SSL_VERIFYPEER"
    SSL_VERIFYHOST = "SSL_VERIFYHOST"
    CAINFO = "CAINFO"
    PROXY = "PROXY"
    USERAGENT = "USERAGENT"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def normalize(cls, key: Union["Option", str, int]) -> Union["Option", str, int]:
        """
        Map a caller-supplied key onto an ``Option`` member when possible.

        Unknown string keys are upper-cased and kept as-is, integer keys
        (raw transport constants) pass through untouched.
        """
        if isinstance(key, cls):
            return key
        if isinstance(key, str):
            name = key.strip().upper()
            try:
                return cls(name)
            except ValueError:
                return name
        return key


class HTTPVersion(IntEnum):
    """HTTP protocol versions, numbered like libcurl's CURL_HTTP_VERSION_*."""

    HTTP_1_0 = 1
    HTTP_1_1 = 2
    HTTP_2_0 = 3


TransportOptions = Dict[Union[Option, str, int], Any]


class HeaderFunction(Protocol):
    """Callback receiving one raw response header line at a time."""

    def __call__(self, line: bytes) -> Optional[int]:
        ...


class OptionTranslator:
    """
    Builds transport options from a request.

    Caller overrides are merged last and always win, which lets callers
    force transport behaviour (timeouts, proxy, TLS verification) the
    translator does not derive from the request.
    """

    def translate(
        self,
        request: Request,
        overrides: Optional[Mapping[Union[Option, str, int], Any]] = None,
        header_function: Optional[HeaderFunction] = None,
    ) -> TransportOptions:
        """
        Translate a request into a transport option set.

        Args:
            request: The request to send
            overrides: Options applied on top of the translated ones
            header_function: Callback for raw response header lines

        Returns:
            The merged option set

        Raises:
            RequestError: If the request body cannot be read
        """
        options: TransportOptions = {
            Option.CUSTOMREQUEST: request.method,
            Option.URL: str(request.uri),
            Option.HTTP_VERSION: self.http_version(request.protocol_version),
            Option.POSTFIELDS: self.post_fields(request),
            Option.HTTPHEADER: self.header_lines(request.headers),
            Option.RETURNTRANSFER: True,
            Option.ENCODING: "",
        }

        if request.method.upper() == "HEAD":
            options[Option.NOBODY] = True

        if header_function is not None:
            options[Option.HEADERFUNCTION] = header_function

        return self.merge(options, overrides or {})

    @staticmethod
    def http_version(protocol_version: str) -> HTTPVersion:
        """Unrecognized versions fall back to HTTP/1.0."""
        version = protocol_version.strip()
        if version in ("2", "2.0"):
            return HTTPVersion.HTTP_2_0
        if version == "1.1":
            return HTTPVersion.HTTP_1_1
        return HTTPVersion.HTTP_1_0

    @staticmethod
    def header_lines(headers: Headers) -> List[str]:
        """Flatten a header map into ``Name: v1, v2`` lines."""
        return [f"{name}: {', '.join(values)}" for name, values in headers.items()]

    @staticmethod
    def post_fields(request: Request) -> bytes:
        """
        Read the whole request body.

        Returns an empty payload when the body is missing, unreadable,
        unseekable or empty. Otherwise the stream is rewound first, so
        the result does not depend on the stream's prior position.
        """
        stream = request.body
        if stream is None:
            return b""

        if not (stream.readable() and stream.seekable() and stream.size):
            return b""

        try:
            stream.rewind()
            return stream.get_contents()
        except (StreamError, OSError) as exc:
            raise RequestError("Unable to read request body.", request, cause=exc) from exc

    @staticmethod
    def merge(
        translated: Mapping[Union[Option, str, int], Any],
        overrides: Mapping[Union[Option, str, int], Any],
    ) -> TransportOptions:
        """Merge ``overrides`` over ``translated``; overrides win on collision."""
        merged: TransportOptions = dict(translated)
        for key, value in overrides.items():
            key = Option.normalize(key)
            if key in merged:
                logger.debug(f"Option {key} overridden by caller")
            merged[key] = value
        return merged
