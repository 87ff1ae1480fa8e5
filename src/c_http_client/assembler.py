"""
Response assembly for c_http_client.

The transport reports the response header block one raw line at a
time. ``ResponseAssembler`` consumes those lines in order and threads
an immutable ``Response`` forward, replacing it on every change.
"""

import logging
from enum import Enum
from typing import Optional, Union

from .exceptions import ClientError, StreamError
from .http_primitives import Request, Response

logger = logging.getLogger(__name__)

STATUS_LINE_PREFIX = "HTTP/"


class AssemblerState(Enum):
    """States of a ResponseAssembler."""
    AWAITING_STATUS_LINE = "awaiting_status_line"
    ACCUMULATING_HEADERS = "accumulating_headers"
    DONE = "done"


class ResponseAssembler:
    """
    Header-line state machine building a Response.

    One assembler belongs to exactly one request. ``on_header_line`` is
    handed to the transport as its header callback; ``attach_body`` is
    called once the transport has finished.

    Status lines replace the status, so when a transport reports several
    (``100 Continue``, redirects) the last one wins. Header lines append
    a value, so repeated header names accumulate.
    """

    def __init__(self, response: Response) -> None:
        self._response = response
        self._state = AssemblerState.AWAITING_STATUS_LINE
        self._lines_seen = 0

    def on_header_line(self, line: Union[bytes, str]) -> int:
        """
        Consume one raw header line.

        Returns:
            The length of ``line``, whether or not it was acted upon.
            Transports treat any other value as an aborted transfer.
        """
        if self._state is AssemblerState.DONE:
            raise RuntimeError("Response already assembled")

        if isinstance(line, bytes):
            length = len(line)
            text = line.decode("iso-8859-1")
        else:
            length = len(line)
            text = line

        self._lines_seen += 1
        stripped = text.strip()

        if not stripped:
            return length

        if text.startswith(STATUS_LINE_PREFIX):
            self._apply_status_line(stripped)
        else:
            self._apply_header_line(stripped)

        return length

    __call__ = on_header_line

    def _apply_status_line(self, line: str) -> None:
        parts = line.split(None, 2)
        try:
            status_code = int(parts[1])
            response = self._response.with_status(status_code, parts[2] if len(parts) > 2 else "")
        except (IndexError, ValueError):
            logger.warning(f"Skipping malformed status line: {line!r}")
            return

        version = parts[0][len(STATUS_LINE_PREFIX):]
        if version:
            response = response.with_protocol_version(version)

        self._response = response
        self._state = AssemblerState.ACCUMULATING_HEADERS
        logger.debug(f"Status line received: {status_code} {response.reason_phrase}")

    def _apply_header_line(self, line: str) -> None:
        name, _, value = line.partition(":")
        name = name.strip()
        if not name:
            logger.warning(f"Skipping header line without a name: {line!r}")
            return

        self._response = self._response.with_added_header(name, value.strip())

    def attach_body(
        self,
        content: Optional[bytes],
        request: Optional[Request] = None,
    ) -> Response:
        """
        Write the received body into the response and return it.

        Args:
            content: The response body reported by the transport
            request: The originating request, attached to errors

        Raises:
            ClientError: If the response body cannot be written
        """
        if self._state is AssemblerState.DONE:
            raise RuntimeError("Response already assembled")

        body = self._response.body
        try:
            if not body.writable():
                raise StreamError("Response body is not writable")
            body.write(content or b"")
        except (StreamError, OSError) as exc:
            raise ClientError(
                "Unable to write response body, check body is writable.",
                cause=exc,
                request=request,
            ) from exc

        self._state = AssemblerState.DONE
        return self._response

    @property
    def response(self) -> Response:
        """The response as assembled so far."""
        return self._response

    @property
    def state(self) -> AssemblerState:
        return self._state

    @property
    def lines_seen(self) -> int:
        return self._lines_seen
