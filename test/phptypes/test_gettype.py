from __future__ import annotations

import pytest

from phpunserialize import loads
from phpunserialize.phptypes import MixedArray, php_type_name


@pytest.mark.parametrize(
    "serialized,type_name",
    [
        (b"N;", "NULL"),
        (b"b:0;", "boolean"),
        (b"i:1;", "integer"),
        (b"d:1.5;", "double"),
        (b's:1:"x";', "string"),
        (b"a:0:{}", "array"),
        (b'O:8:"stdClass":0:{}', "object"),
    ],
)
def test_php_type_name__decoded_values(serialized: bytes, type_name: str) -> None:
    assert php_type_name(loads(serialized)) == type_name


def test_php_type_name__factory_objects() -> None:
    result = loads(b'O:3:"Foo":0:{}', object_factory=lambda name, props: object())
    assert php_type_name(result) == "object"


def test_php_type_name__array_with_custom_class_key_is_array() -> None:
    assert php_type_name(MixedArray({"__class__": "Foo"})) == "array"
