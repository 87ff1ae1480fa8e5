"""
Mock transport for testing.

``MockTransport`` plays back a scripted response: it feeds the header
lines to the registered header callback, then returns the scripted
content or error code. Every option set it receives is recorded.
"""

from typing import List, Optional, Sequence, Union

from ..options import Option, TransportOptions
from .base import ErrorCode, Transport, TransportHandle, TransportResult


class MockTransportHandle(TransportHandle):
    """Handle produced by MockTransport."""

    def __init__(self, transport: "MockTransport") -> None:
        self._transport = transport
        self._closed = False

    def perform(self, options: TransportOptions) -> TransportResult:
        if self._closed:
            raise RuntimeError("Handle is closed")

        self._transport.performed.append(dict(options))

        header_function = options.get(Option.HEADERFUNCTION)
        if header_function is not None:
            for line in self._transport.header_lines:
                consumed = header_function(line)
                if consumed is not None and consumed != len(line):
                    return TransportResult.failure(
                        ErrorCode.WRITE_ERROR, "Failed writing header"
                    )

        if self._transport.error_code:
            return TransportResult.failure(
                self._transport.error_code, self._transport.error_message
            )

        if not options.get(Option.RETURNTRANSFER):
            return TransportResult(b"")
        return TransportResult(self._transport.content)

    def close(self) -> None:
        self._closed = True

    @property
    def is_closed(self) -> bool:
        return self._closed


class MockTransport(Transport):
    """
    Mock transport for testing.

    Args:
        header_lines: Raw header lines fed to the header callback, in order
        content: Body returned on success
        error_code: Non-zero to simulate a transport failure
        error_message: Message reported with ``error_code``
        available: Value of the ``available`` capability flag
    """

    def __init__(
        self,
        header_lines: Optional[Sequence[Union[bytes, str]]] = None,
        content: bytes = b"",
        error_code: int = 0,
        error_message: str = "",
        available: bool = True,
    ) -> None:
        self.header_lines = list(header_lines or [])
        self.content = content
        self.error_code = error_code
        self.error_message = error_message
        self._available = available
        self.performed: List[TransportOptions] = []
        self.handles: List[MockTransportHandle] = []

    @property
    def available(self) -> bool:
        return self._available

    def open(self) -> MockTransportHandle:
        handle = MockTransportHandle(self)
        self.handles.append(handle)
        return handle

    @property
    def last_options(self) -> Optional[TransportOptions]:
        """The most recent option set passed to ``perform``."""
        return self.performed[-1] if self.performed else None

    def reset(self) -> None:
        """Forget recorded option sets and handles."""
        self.performed.clear()
        self.handles.clear()
