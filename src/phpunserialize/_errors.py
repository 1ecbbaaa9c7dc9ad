from __future__ import annotations

from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, cast

if TYPE_CHECKING:
    from phpunserialize.constants import TypeTag


@dataclass(init=False)
class PHPSerializeError(Exception):
    """The base class that all phpunserialize errors are subclasses of."""

    if not TYPE_CHECKING:
        message: str  # needed to have dataclass include message in the repr, etc

    def __init__(self, message: str, *args: object) -> None:
        super().__init__(message, *args)

    @property
    def message(self) -> str:
        return cast(str, self.args[0])

    def __str__(self) -> str:
        field_values = [
            (f.name, getattr(self, f.name)) for f in fields(self) if f.name != "message"
        ]
        values_fmt = ", ".join(f"{f}={v!r}" for (f, v) in field_values)

        if values_fmt:
            return f"{self.message}: {values_fmt}"
        return self.message


@dataclass(init=False)
class DecodePHPSerializeError(PHPSerializeError, ValueError):
    """Serialized data could not be decoded.

    `position` is the number of bytes that had been consumed from the input
    when the problem was detected, or None when the error was raised outside of
    a decode call.
    """

    position: int | None

    def __init__(
        self, message: str, *args: object, position: int | None
    ) -> None:
        super().__init__(message, *args)
        self.position = position


@dataclass(init=False)
class UnexpectedEndDecodePHPSerializeError(DecodePHPSerializeError):
    """The input ended before the value being decoded was complete."""


@dataclass(init=False)
class MalformedTokenDecodePHPSerializeError(DecodePHPSerializeError):
    """A character in the input is not allowed by the grammar at its position."""

    expected: str
    actual: str

    def __init__(
        self, message: str, *args: object, expected: str, actual: str, position: int
    ) -> None:
        super().__init__(message, *args, position=position)
        self.expected = expected
        self.actual = actual


@dataclass(init=False)
class UnhandledTagDecodePHPSerializeError(MalformedTokenDecodePHPSerializeError):
    """
    No decode step is able to handle a type tag.

    Raised for bytes which are not a known `TypeTag`, and for known tags that
    the configured decode steps chose not to read.
    """

    tag: TypeTag | str

    def __init__(
        self, message: str, *args: object, tag: TypeTag | str, position: int
    ) -> None:
        actual = repr(chr(tag)) if isinstance(tag, int) else repr(tag)
        super().__init__(
            message, *args, expected="a type tag", actual=actual, position=position
        )
        self.tag = tag


@dataclass(init=False)
class InvalidReferenceDecodePHPSerializeError(DecodePHPSerializeError):
    """A back-reference points outside the values decoded so far."""

    index: int
    history_length: int

    def __init__(
        self,
        message: str,
        *args: object,
        index: int,
        history_length: int,
        position: int,
    ) -> None:
        super().__init__(message, *args, position=position)
        self.index = index
        self.history_length = history_length


@dataclass(init=False)
class ObjectCreationDecodePHPSerializeError(DecodePHPSerializeError):
    """An `ObjectFactory` failed to create a Python object for a PHP object.

    The original error is available as `cause` (and as `__cause__`).
    """

    class_name: str
    cause: BaseException | None

    def __init__(
        self,
        message: str,
        *args: object,
        class_name: str,
        cause: BaseException | None = None,
        position: int | None = None,
    ) -> None:
        super().__init__(message, *args, position=position)
        self.class_name = class_name
        self.cause = cause
