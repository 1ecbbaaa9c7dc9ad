from __future__ import annotations

import array
import io

import pytest

from phpunserialize import DecodePHPSerializeError, Decoder
from phpunserialize.sources import BytesSource, StreamSource


def test_bytes_source__reads_in_chunks() -> None:
    source = BytesSource(b"abcdef")

    assert source.read(2) == b"ab"
    assert source.read(0) == b""
    assert source.read(10) == b"cdef"
    assert source.read(1) == b""
    assert source.position == 6


def test_bytes_source__accepts_buffers() -> None:
    assert BytesSource(bytearray(b"N;")).read(2) == b"N;"
    assert BytesSource(memoryview(b"xN;")[1:]).read(2) == b"N;"
    # Multi-byte items are read as their raw bytes
    data = array.array("H", [0x3B4E])
    assert len(BytesSource(data).data) == 2


def test_bytes_source__data_is_read_only() -> None:
    data = bytearray(b"i:1;")
    source = BytesSource(data)

    with pytest.raises(TypeError):
        source.data[0] = ord("x")  # type: ignore[index]


def test_bytes_source__rejects_negative_size() -> None:
    with pytest.raises(ValueError, match="size must be >= 0"):
        BytesSource(b"").read(-1)


def test_stream_source__reads_from_file() -> None:
    fp = io.BytesIO(b"abc")
    source = StreamSource(fp)

    assert source.read(2) == b"ab"
    assert source.read(2) == b"c"
    assert source.read(2) == b""
    assert source.position == 3


def test_stream_source__handles_short_reads() -> None:
    class Trickle(io.RawIOBase):
        def __init__(self, data: bytes) -> None:
            self.data = data

        def readable(self) -> bool:
            return True

        def read(self, size: int = -1) -> bytes:
            chunk, self.data = self.data[:1], self.data[1:]
            return chunk

    assert Decoder(encoding="utf-8").decode(Trickle(b's:5:"hello";')) == "hello"


def test_stream_source__wraps_io_errors() -> None:
    class Broken(io.RawIOBase):
        def readable(self) -> bool:
            return True

        def read(self, size: int = -1) -> bytes:
            raise OSError("disk on fire")

    with pytest.raises(
        DecodePHPSerializeError, match="Exception when reading from stream"
    ) as exc_info:
        Decoder().decode(Broken())
    assert isinstance(exc_info.value.__cause__, OSError)
    assert exc_info.value.position == 0


def test_stream_source__rejects_text_streams() -> None:
    source = StreamSource(io.StringIO("N;"))  # type: ignore[arg-type]

    with pytest.raises(TypeError, match="stream must be opened in binary mode"):
        source.read(1)


def test_stream_source__close_closes_stream() -> None:
    fp = io.BytesIO(b"")
    StreamSource(fp).close()
    assert fp.closed


def test_stream_source__close_suppresses_errors() -> None:
    class FailingClose:
        def read(self, size: int, /) -> bytes:
            return b""

        def close(self) -> None:
            raise OSError("cannot close")

    StreamSource(FailingClose()).close()
