from __future__ import annotations

from dataclasses import dataclass
from typing import NewType

from phpunserialize._errors import PHPSerializeError

HistoryIndex = NewType("HistoryIndex", int)
"""A 1-based position in a `DecodeHistory`."""


@dataclass(init=False)
class HistoryIndexOutOfRangePHPSerializeError(PHPSerializeError, KeyError):
    index: int
    history_length: int

    def __init__(self, message: str, *, index: int, history_length: int) -> None:
        super(HistoryIndexOutOfRangePHPSerializeError, self).__init__(message)
        self.index = index
        self.history_length = history_length


@dataclass(init=False, slots=True)
class DecodeHistory:
    """The values decoded so far from PHP serialized data.

    PHP's serialize() format allows back-references (`R:<n>;`) to values that
    occurred earlier in the serialized data. References are 1-based positions
    in the order values finished decoding, except that arrays and objects take
    their position before their contents, and array keys never take a position.

    Values are stored as-is, so resolving a reference returns the same object
    that was recorded, not a copy.
    """

    _values: list[object]

    def __init__(self) -> None:
        self._values = []

    def __len__(self) -> int:
        return len(self._values)

    def append(self, value: object) -> HistoryIndex:
        self._values.append(value)
        return HistoryIndex(len(self._values))

    def remove_last(self) -> object:
        if not self._values:
            raise IndexError("remove_last() called on an empty DecodeHistory")
        return self._values.pop()

    def replace(self, index: HistoryIndex, value: object) -> None:
        """Record `value` in place of the value already recorded at `index`."""
        self.resolve(index)
        self._values[index - 1] = value

    def resolve(self, index: int) -> object:
        # Negative indexes must not wrap around to the end of the list.
        if not 0 < index <= len(self._values):
            raise HistoryIndexOutOfRangePHPSerializeError(
                "History index has not been recorded",
                index=index,
                history_length=len(self._values),
            )
        return self._values[index - 1]
