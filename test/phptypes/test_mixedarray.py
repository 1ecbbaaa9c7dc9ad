from __future__ import annotations

from collections import OrderedDict

import pytest
from hypothesis import given
from hypothesis import strategies as st

from phpunserialize.phptypes import MixedArray, check_array_key

array_keys = st.one_of(st.integers(), st.text())
array_items = st.lists(st.tuples(array_keys, st.integers()))


@given(items=array_items)
def test_mixed_array__preserves_first_insertion_order(
    items: list[tuple[int | str, int]],
) -> None:
    array = MixedArray(items)
    expected = dict(items)

    assert list(array) == list(expected)
    assert list(array.values()) == list(expected.values())
    assert len(array) == len(expected)


def test_mixed_array__int_and_str_keys_are_distinct() -> None:
    array = MixedArray[str]({1: "int", "1": "str"})

    assert array[1] == "int"
    assert array["1"] == "str"
    assert len(array) == 2


@pytest.mark.parametrize("key", [True, False, 1.5, None, (1,), b"k"])
def test_mixed_array__rejects_invalid_keys(key: object) -> None:
    array = MixedArray[object]()

    with pytest.raises(TypeError, match="MixedArray keys must be int or str"):
        array[key] = 1  # type: ignore[index]
    with pytest.raises(TypeError):
        check_array_key(key)
    assert len(array) == 0


def test_mixed_array__rejects_negative_expected_size() -> None:
    with pytest.raises(ValueError, match="expected_size must be >= 0"):
        MixedArray(expected_size=-1)


def test_mixed_array__delete_and_reinsert_moves_to_end() -> None:
    array = MixedArray({0: "a", 1: "b"})
    del array[0]
    array[0] = "c"

    assert list(array.items()) == [(1, "b"), (0, "c")]
    assert not array.is_list()


def test_mixed_array__eq_to_mixed_array_is_order_sensitive() -> None:
    a = MixedArray({0: "x", "k": "y"})
    b = MixedArray({"k": "y", 0: "x"})

    assert a == MixedArray({0: "x", "k": "y"})
    assert a != b


def test_mixed_array__eq_to_other_mappings_is_order_insensitive() -> None:
    a = MixedArray({0: "x", "k": "y"})

    assert a == {"k": "y", 0: "x"}
    assert a == OrderedDict([("k", "y"), (0, "x")])
    assert a != {0: "x"}
    assert a != [(0, "x"), ("k", "y")]


def test_mixed_array__is_not_hashable() -> None:
    with pytest.raises(TypeError):
        hash(MixedArray())


@pytest.mark.parametrize(
    "items,is_list",
    [
        ({}, True),
        ({0: "a"}, True),
        ({0: "a", 1: "b", 2: "c"}, True),
        ({1: "a"}, False),
        ({0: "a", 2: "b"}, False),
        ({1: "b", 0: "a"}, False),
        ({"0": "a"}, False),
    ],
)
def test_mixed_array__is_list(items: dict[int | str, str], is_list: bool) -> None:
    array = MixedArray(items)

    assert array.is_list() is is_list
    if is_list:
        assert array.to_list() == list(items.values())
    else:
        with pytest.raises(ValueError, match="MixedArray is not a list"):
            array.to_list()


def test_mixed_array__class_name() -> None:
    assert MixedArray({"a": 1}).class_name is None
    assert MixedArray({"class": "Foo"}).class_name == "Foo"
    assert MixedArray({"class": 1}).class_name is None


def test_mixed_array__to_dict_is_a_copy() -> None:
    array = MixedArray({0: "a"})
    copy = array.to_dict()
    copy[1] = "b"

    assert copy == {0: "a", 1: "b"}
    assert len(array) == 1


def test_mixed_array__repr() -> None:
    array = MixedArray[object]({0: "a", "b": None})
    assert repr(array) == "MixedArray({0: 'a', 'b': None})"

    array["self"] = array
    assert repr(array) == "MixedArray({0: 'a', 'b': None, 'self': MixedArray(...)})"


def test_mixed_array__clear() -> None:
    array = MixedArray({0: "a"})
    array.clear()

    assert len(array) == 0
    assert array == MixedArray()
