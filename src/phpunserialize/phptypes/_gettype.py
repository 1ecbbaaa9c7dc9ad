from __future__ import annotations

from typing import Literal

from phpunserialize.phptypes.mixedarray import MixedArray

PHPTypeName = Literal[
    "NULL", "boolean", "integer", "double", "string", "array", "object"
]


def php_type_name(value: object) -> PHPTypeName:
    """Get the name PHP's `gettype()` would report for a decoded value.

    Arrays holding a class name entry are property bags of objects decoded
    without an `ObjectFactory`, so they are reported as `"object"`. Any value
    that isn't one of the Python types used for PHP scalars and arrays is
    assumed to have been created by an `ObjectFactory`.

    >>> php_type_name(None), php_type_name(1.5), php_type_name(MixedArray())
    ('NULL', 'double', 'array')
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "double"
    if isinstance(value, str):
        return "string"
    if isinstance(value, MixedArray):
        return "array" if value.class_name is None else "object"
    return "object"
