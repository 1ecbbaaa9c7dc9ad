from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from phpunserialize._recursive_eq import recursive_eq
from phpunserialize.phptypes import MixedArray


@recursive_eq
@dataclass
class Holder:
    name: str
    items: list[object] = field(default_factory=list)


def test_recursive_eq__array_containing_itself() -> None:
    a = MixedArray[object]()
    a[0] = a
    b = MixedArray[object]()
    b[0] = b

    for _ in range(2):
        assert a == a
        assert a == b
        assert b == a


def test_recursive_eq__different_values_in_cycle() -> None:
    a = MixedArray[object]({"v": 1})
    a["self"] = a
    b = MixedArray[object]({"v": 2})
    b["self"] = b

    assert a != b


def test_recursive_eq__same_values_different_identity_structure() -> None:
    # a -> b -> a ...
    a = MixedArray[object]({"v": 1})
    b = MixedArray[object]({"v": 1, "next": a})
    a["next"] = b

    # c -> c ...
    c = MixedArray[object]({"v": 1})
    c["next"] = c

    # The loops close at different points, so they are not equal.
    for _ in range(2):
        assert a != c


def test_recursive_eq__objects_via_decorated_dataclass() -> None:
    a = Holder("x")
    a.items.append(a)
    b = Holder("x")
    b.items.append(b)

    assert a == b
    b.name = "y"
    assert a != b


def test_recursive_eq__handles_failure_in_wrapped_eq() -> None:
    class Failing:
        def __eq__(self, value: object) -> bool:
            raise RuntimeError("oops")

    a = MixedArray[object]({0: MixedArray[object]({0: 1})})
    _a = MixedArray[object]({0: MixedArray[object]({0: 1})})
    bad = MixedArray[object]({0: MixedArray[object]({0: Failing()})})

    with pytest.raises(RuntimeError, match="oops"):
        a.__eq__(bad)

    # The comparison state was reset after the error
    for _ in range(2):
        assert a == _a
