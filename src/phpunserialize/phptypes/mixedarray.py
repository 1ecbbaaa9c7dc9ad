from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, MutableMapping
from dataclasses import dataclass
from reprlib import recursive_repr
from typing import TYPE_CHECKING, Union, overload

from phpunserialize._recursive_eq import recursive_eq
from phpunserialize.constants import CLASS_NAME_KEY

if TYPE_CHECKING:
    from typing_extensions import TypeAlias, TypeVar

    from _typeshed import SupportsKeysAndGetItem

    VT = TypeVar("VT", default=object)
else:
    from typing import TypeVar

    VT = TypeVar("VT")

ArrayKey: TypeAlias = Union[int, str]
"""The types PHP allows as array keys."""


def check_array_key(key: object) -> ArrayKey:
    """Return `key` if it's a valid PHP array key, otherwise raise TypeError.

    `bool` is rejected even though it's an `int` subclass, PHP itself would
    silently convert it to `0` or `1`.
    """
    if isinstance(key, bool) or not isinstance(key, (int, str)):
        raise TypeError(f"MixedArray keys must be int or str, not {type(key).__name__}")
    return key


@recursive_eq
@dataclass(init=False, eq=False, repr=False, slots=True)
class MixedArray(MutableMapping[ArrayKey, VT]):
    """An ordered mapping with `int` and `str` keys, like a PHP array.

    Items keep the order they were first inserted in. Assigning to an existing
    key replaces its value without moving it.

    Parameters
    ----------
    init
        A Mapping to copy items from, or a series of `(key, value)` pairs.
    expected_size
        The number of items the array is expected to hold. This is only a hint,
        the array can hold any number of items.

    Examples
    --------
    >>> arr = MixedArray([(0, 'a'), ('b', 'c')])
    >>> arr
    MixedArray({0: 'a', 'b': 'c'})
    >>> arr[0] = 'z'
    >>> list(arr)
    [0, 'b']
    >>> MixedArray([(0, 'x'), (1, 'y')]).to_list()
    ['x', 'y']
    """

    _items: dict[ArrayKey, VT]
    expected_size: int

    @overload
    def __init__(self, /, *, expected_size: int = 0) -> None: ...

    @overload
    def __init__(
        self,
        init: SupportsKeysAndGetItem[ArrayKey, VT] | Iterable[tuple[ArrayKey, VT]],
        /,
        *,
        expected_size: int = 0,
    ) -> None: ...

    def __init__(
        self,
        init: (
            SupportsKeysAndGetItem[ArrayKey, VT]
            | Iterable[tuple[ArrayKey, VT]]
            | None
        ) = None,
        /,
        *,
        expected_size: int = 0,
    ) -> None:
        if expected_size < 0:
            raise ValueError(f"expected_size must be >= 0: {expected_size=}")
        self._items = {}
        self.expected_size = expected_size
        if init is not None:
            self.update(init)

    def __setitem__(self, key: ArrayKey, value: VT, /) -> None:
        self._items[check_array_key(key)] = value

    def __delitem__(self, key: ArrayKey, /) -> None:
        del self._items[key]

    def __getitem__(self, key: ArrayKey, /) -> VT:
        return self._items[key]

    def __iter__(self) -> Iterator[ArrayKey]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object, /) -> bool:
        return key in self._items

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if isinstance(other, MixedArray):
            # PHP's === on arrays: same pairs in the same order
            if len(self) != len(other):
                return False
            return list(self._items.items()) == list(other._items.items())
        if isinstance(other, Mapping):
            return self._items == dict(other.items())
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    @recursive_repr("MixedArray(...)")
    def __repr__(self) -> str:
        return f"MixedArray({self._items!r})"

    def clear(self) -> None:
        self._items.clear()

    @property
    def class_name(self) -> str | None:
        """The PHP class name of an object decoded without an `ObjectFactory`.

        None for regular arrays.
        """
        name = self._items.get(CLASS_NAME_KEY)
        return name if isinstance(name, str) else None

    def is_list(self) -> bool:
        """True if the keys are exactly `0, 1, ... len - 1`, in that order."""
        return all(
            type(key) is int and key == i for i, key in enumerate(self._items)
        )

    def to_list(self) -> list[VT]:
        """Get the values as a list, if the array is a list (see `is_list()`)."""
        if not self.is_list():
            raise ValueError(
                "MixedArray is not a list: keys are not 0..n-1 in insertion order"
            )
        return list(self._items.values())

    def to_dict(self) -> dict[ArrayKey, VT]:
        """Get a shallow copy of the items as a plain `dict`."""
        return dict(self._items)

