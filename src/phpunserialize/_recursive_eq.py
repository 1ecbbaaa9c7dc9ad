from __future__ import annotations

from _thread import get_ident
from functools import wraps
from typing import Callable, Final, TypeVar

_ACTIVE_EQ: Final[set[tuple[int, int]]] = set()

_T = TypeVar("_T")


def recursive_eq(cls: type[_T]) -> type[_T]:
    """Make `==` terminate for instances that (indirectly) contain themselves.

    PHP back-references let an array hold itself, e.g. `$a[0] = &$a`. A plain
    `__eq__` would recurse forever on such values. The wrapped `__eq__` notes
    which objects are being compared on the current thread. When a comparison
    re-enters an object that is already being compared, the two sides are equal
    only if both sides have looped back at the same point, so the identity
    structures of the two values must match as well as their contents.
    """
    original_eq: Callable[[_T, object], bool] = cls.__eq__  # type: ignore[assignment]

    @wraps(original_eq)
    def __eq__(self: _T, other: object) -> bool:
        if self is other:
            return True

        thread = get_ident()
        self_key, other_key = (id(self), thread), (id(other), thread)
        self_active = self_key in _ACTIVE_EQ
        other_active = other_key in _ACTIVE_EQ
        if self_active or other_active:
            return self_active and other_active

        _ACTIVE_EQ.update((self_key, other_key))
        try:
            return original_eq(self, other)
        finally:
            _ACTIVE_EQ.difference_update((self_key, other_key))

    cls.__eq__ = __eq__  # type: ignore[method-assign,assignment]
    return cls
