"""Sources of serialized bytes for the decoder to read from."""

from __future__ import annotations

import contextlib
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from phpunserialize._errors import DecodePHPSerializeError

if TYPE_CHECKING:
    from typing_extensions import Buffer

    from _typeshed import SupportsRead


class ByteSource(Protocol):
    """A readable sequence of bytes, such as an in-memory buffer or a file.

    `read()` returns up to `size` bytes. Returning fewer than `size` bytes does
    not necessarily mean the end of the input has been reached, but returning
    no bytes does.

    `close()` releases any underlying resource and must not raise.
    """

    def read(self, size: int, /) -> bytes: ...

    def close(self) -> None: ...


@dataclass(init=False, slots=True)
class BytesSource(ByteSource):
    """A `ByteSource` reading from a bytes-like object held in memory."""

    data: memoryview
    position: int

    def __init__(self, data: Buffer) -> None:
        view = memoryview(data)
        if not (view.format == "B" and view.ndim == 1 and view.itemsize == 1):
            view = view.cast("B")
        self.data = view.toreadonly()
        self.position = 0

    def read(self, size: int, /) -> bytes:
        if size < 0:
            raise ValueError(f"size must be >= 0: {size=}")
        start = self.position
        self.position = min(len(self.data), start + size)
        return bytes(self.data[start : self.position])

    def close(self) -> None:
        # Nothing to release, the memoryview stays readable until collected.
        pass


@dataclass(init=False, slots=True)
class StreamSource(ByteSource):
    """A `ByteSource` reading from a binary file-like object.

    I/O errors raised by the stream are re-raised as `DecodePHPSerializeError`.
    """

    stream: SupportsRead[bytes]
    position: int

    def __init__(self, stream: SupportsRead[bytes]) -> None:
        self.stream = stream
        self.position = 0

    def read(self, size: int, /) -> bytes:
        try:
            result = self.stream.read(size)
        except OSError as e:
            raise DecodePHPSerializeError(
                "Exception when reading from stream", position=self.position
            ) from e
        if not isinstance(result, (bytes, bytearray)):
            raise TypeError(
                f"stream must be opened in binary mode, read() returned "
                f"{type(result).__name__}"
            )
        self.position += len(result)
        return bytes(result)

    def close(self) -> None:
        close = getattr(self.stream, "close", None)
        if close is None:
            return
        with contextlib.suppress(Exception):
            close()
