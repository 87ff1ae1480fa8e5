"""
Body streams for c_http_client.

Request and response bodies are exposed through ``StreamInterface``.
The client only needs a handful of capabilities from a body: the
readable/seekable/writable predicates, its size, rewinding and reading
the full contents, and writing. ``BytesStream`` is the in-memory
implementation used by default.
"""

from abc import ABC, abstractmethod
from typing import Optional, Union
import io

from .exceptions import StreamError


class StreamInterface(ABC):
    """
    Base interface for all body streams.

    Read and write failures must be reported as ``StreamError`` or
    ``OSError`` so callers can classify them.
    """

    @abstractmethod
    def readable(self) -> bool:
        """Whether the stream can be read."""
        pass

    @abstractmethod
    def seekable(self) -> bool:
        """Whether the stream position can be changed."""
        pass

    @abstractmethod
    def writable(self) -> bool:
        """Whether data can be written to the stream."""
        pass

    @property
    @abstractmethod
    def size(self) -> Optional[int]:
        """Total size in bytes, or None when unknown."""
        pass

    @abstractmethod
    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        """Move the stream position."""
        pass

    @abstractmethod
    def tell(self) -> int:
        """Current stream position."""
        pass

    @abstractmethod
    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes, or everything left when negative."""
        pass

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Write ``data`` and return the number of bytes written."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the stream."""
        pass

    def rewind(self) -> None:
        """Seek back to the beginning of the stream."""
        self.seek(0)

    def get_contents(self) -> bytes:
        """Read everything from the current position to the end."""
        return self.read()

    def __bytes__(self) -> bytes:
        if self.seekable():
            self.rewind()
        return self.get_contents()


class BytesStream(StreamInterface):
    """
    In-memory body stream.

    Wraps an ``io.BytesIO`` buffer and adds capability flags so tests
    and callers can model read-only or write-only bodies.
    """

    def __init__(
        self,
        data: Union[bytes, bytearray, str] = b"",
        readable: bool = True,
        writable: bool = True,
        seekable: bool = True,
    ) -> None:
        """
        Initialize BytesStream.

        Args:
            data: Initial contents. Strings are encoded as UTF-8.
            readable: Whether reads are allowed
            writable: Whether writes are allowed
            seekable: Whether seeks are allowed

        The position starts at the end of the initial contents, so
        writes append and a reader has to rewind first.
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        if not isinstance(data, (bytes, bytearray)):
            raise ValueError("data must be bytes or str")

        self._buffer = io.BytesIO(bytes(data))
        self._buffer.seek(0, io.SEEK_END)
        self._readable = readable
        self._writable = writable
        self._seekable = seekable
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise StreamError("Stream is closed")

    def readable(self) -> bool:
        return self._readable and not self._closed

    def seekable(self) -> bool:
        return self._seekable and not self._closed

    def writable(self) -> bool:
        return self._writable and not self._closed

    @property
    def size(self) -> Optional[int]:
        if self._closed:
            return None
        return self._buffer.getbuffer().nbytes

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        self._check_open()
        if not self._seekable:
            raise StreamError("Stream is not seekable")
        return self._buffer.seek(offset, whence)

    def tell(self) -> int:
        self._check_open()
        return self._buffer.tell()

    def read(self, size: int = -1) -> bytes:
        self._check_open()
        if not self._readable:
            raise StreamError("Cannot read from non-readable stream")
        return self._buffer.read(size)

    def write(self, data: Union[bytes, bytearray, str]) -> int:
        self._check_open()
        if not self._writable:
            raise StreamError("Cannot write to non-writable stream")
        if isinstance(data, str):
            data = data.encode("utf-8")
        return self._buffer.write(data)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._buffer.close()

    @property
    def closed(self) -> bool:
        """Get whether the stream is closed."""
        return self._closed

    def __repr__(self) -> str:
        return f"<BytesStream size={self.size} closed={self._closed}>"


def create_body_stream(
    data: Union[bytes, bytearray, str, StreamInterface, None],
) -> Optional[StreamInterface]:
    """
    Factory function to turn body data into a stream.

    Args:
        data: Bytes, string, an existing stream, or None

    Returns:
        A StreamInterface, or None when there is no body
    """
    if data is None or isinstance(data, StreamInterface):
        return data

    return BytesStream(data)
