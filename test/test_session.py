from __future__ import annotations

import pytest

from phpunserialize import (
    Decoder,
    InvalidReferenceDecodePHPSerializeError,
    MixedArray,
    UnexpectedEndDecodePHPSerializeError,
    loads_session,
)
from phpunserialize.session import iter_session


def test_loads_session() -> None:
    result = loads_session(
        b'user|s:5:"alice";cart|a:1:{i:0;i:42;}logged_in|b:1;'
    )

    assert result == {
        "user": "alice",
        "cart": MixedArray({0: 42}),
        "logged_in": True,
    }


def test_loads_session__empty() -> None:
    assert loads_session(b"") == {}


def test_loads_session__skips_unset_variables() -> None:
    assert loads_session('!old|a|i:1;!older|') == {"a": 1}


def test_loads_session__references_span_variables() -> None:
    # a's array is 1, its item is 2, and b's value refers back to the array
    result = loads_session(b"a|a:1:{i:0;i:5;}b|R:1;")

    assert result["b"] is result["a"]


def test_loads_session__object_factory() -> None:
    result = loads_session(
        b'obj|O:3:"Foo":1:{s:1:"x";i:1;}', object_factory=lambda n, p: (n, dict(p))
    )
    assert result == {"obj": ("Foo", {"x": 1})}


def test_iter_session__yields_in_order() -> None:
    pairs = list(iter_session(b"b|i:2;a|i:1;b|i:3;"))

    assert pairs == [("b", 2), ("a", 1), ("b", 3)]


def test_iter_session__uses_decoder_encoding() -> None:
    data = 'näme|s:5:"héllo";'.encode("latin-1")

    assert list(iter_session(data, decoder=Decoder(encoding="latin-1"))) == [
        ("näme", "héllo")
    ]


@pytest.mark.parametrize("data", [b"user", b'user|s:5:"ali'])
def test_loads_session__truncated(data: bytes) -> None:
    with pytest.raises(UnexpectedEndDecodePHPSerializeError):
        loads_session(data)


def test_loads_session__invalid_reference() -> None:
    with pytest.raises(InvalidReferenceDecodePHPSerializeError):
        loads_session(b"a|i:1;b|R:2;")
