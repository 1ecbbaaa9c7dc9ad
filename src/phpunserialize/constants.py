"""Constant values related to the PHP serialize() format."""

from __future__ import annotations

from enum import IntEnum
from typing import Final

INT64_RANGE: Final = range(-(2**63), 2**63)
"""The range of PHP's `int` type on 64-bit platforms.

Integers outside this range are rejected when decoding rather than being
wrapped or clamped.
"""

CLASS_NAME_KEY: Final = "class"
"""The key that holds the class name of an object decoded without an
`ObjectFactory`."""

SESSION_DELIMITER: Final = ord("|")
SESSION_UNDEFINED_MARKER: Final = ord("!")


class TypeTag(IntEnum):
    """1-byte tags used to identify the type of the next value.

    Each tag is the first character of a serialized value, and determines the
    grammar used to read the rest of it.
    """

    # N;
    Null = ord("N")
    # b:<0|1>;
    Bool = ord("b")
    # i:<int>;
    Int = ord("i")
    # d:<decimal>;
    Float = ord("d")
    # s:<byte length>:"<bytes>";
    String = ord("s")
    # a:<count>:{<key><value>...}
    Array = ord("a")
    # O:<byte length>:"<class name>":<count>:{<key><value>...}
    Object = ord("O")
    # R:<1-based history index>;
    Reference = ord("R")

    @property
    def char(self) -> str:
        return chr(self.value)


ARRAY_KEY_TAGS: Final = frozenset({TypeTag.Int, TypeTag.String})
"""The tags that values used as array or object keys can have."""
