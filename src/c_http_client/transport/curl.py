"""
libcurl transport for c_http_client.

``CurlTransport`` hands the option set to libcurl through pycurl.
Connection handling, DNS, TLS, HTTP/2 and redirects are entirely
libcurl's business; this module only maps options and reports the
outcome.
"""

import io
import logging
from typing import Any, List, Optional, Tuple, Union

import pycurl

from ..exceptions import ClientError
from ..options import Option, TransportOptions
from .base import Transport, TransportHandle, TransportResult

logger = logging.getLogger(__name__)

# Seconds-based options that have a millisecond counterpart.
_MILLISECOND_OPTIONS = {
    Option.TIMEOUT: "TIMEOUT_MS",
    Option.CONNECTTIMEOUT: "CONNECTTIMEOUT_MS",
}


def resolve_option(key: Union[Option, str, int]) -> int:
    """
    Map an option key onto a pycurl constant.

    Raises:
        ClientError: If libcurl has no option with that name
    """
    if isinstance(key, int) and not isinstance(key, bool):
        return key

    name = key.value if isinstance(key, Option) else str(key).strip().upper()
    constant = getattr(pycurl, name, None)
    if not isinstance(constant, int):
        raise ClientError(f"Unknown transport option: {name}")
    return constant


class CurlHandle(TransportHandle):
    """Wraps one ``pycurl.Curl`` easy handle."""

    def __init__(self, curl: Optional["pycurl.Curl"] = None) -> None:
        self._curl = curl if curl is not None else pycurl.Curl()
        self._closed = False

    def perform(self, options: TransportOptions) -> TransportResult:
        if self._closed:
            raise RuntimeError("Handle is closed")

        buffer = io.BytesIO()
        return_transfer = bool(options.get(Option.RETURNTRANSFER))

        for key, value in self._prepare(options):
            try:
                self._curl.setopt(key, value)
            except (pycurl.error, TypeError) as exc:
                raise ClientError(f"Invalid value for transport option {key}", cause=exc) from exc

        # An explicit WRITEFUNCTION takes the body instead of the buffer.
        if return_transfer and Option.WRITEFUNCTION not in options:
            self._curl.setopt(pycurl.WRITEFUNCTION, buffer.write)

        try:
            self._curl.perform()
        except pycurl.error as exc:
            code, message = exc.args[0], exc.args[1] if len(exc.args) > 1 else str(exc)
            logger.error(f"libcurl reported error {code}: {message}")
            return TransportResult.failure(code, message)

        logger.debug(
            f"libcurl finished with HTTP status {self._curl.getinfo(pycurl.RESPONSE_CODE)}"
        )
        return TransportResult(buffer.getvalue() if return_transfer else b"")

    def _prepare(self, options: TransportOptions) -> List[Tuple[int, Any]]:
        prepared = []
        for key, value in options.items():
            key = Option.normalize(key)
            if key == Option.RETURNTRANSFER:
                continue
            # libcurl switches to POST whenever POSTFIELDS is set
            if key == Option.POSTFIELDS and not value:
                continue

            if key in _MILLISECOND_OPTIONS and isinstance(value, float):
                key, value = _MILLISECOND_OPTIONS[key], int(value * 1000)
            elif isinstance(value, bool):
                value = int(value)

            prepared.append((resolve_option(key), value))
        return prepared

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._curl.close()

    @property
    def is_closed(self) -> bool:
        return self._closed


class CurlTransport(Transport):
    """Transport backed by libcurl."""

    @property
    def available(self) -> bool:
        """Whether the linked libcurl can speak HTTP at all."""
        protocols = pycurl.version_info()[8]
        return "http" in protocols

    @property
    def version(self) -> str:
        return pycurl.version

    def open(self) -> CurlHandle:
        return CurlHandle()
