import pytest

from datawrangler.compute.pagination import paginate
from datawrangler.compute.sorting import sort_positions
from datawrangler.errors import FieldNotFound
from datawrangler.store import Store


@pytest.fixture
def view():
    return Store.from_columns(
        {"values": [5, 3, None, 4, 2], "names": ["e", "c", "x", "d", "b"]}
    ).view()


def test_sort_positions_ascending(view):
    assert sort_positions(view, ["values"]) == [4, 1, 3, 0, 2]


def test_sort_positions_descending(view):
    assert sort_positions(view, ["values"], True) == [0, 3, 1, 4, 2]


def test_sort_by_text(view):
    assert view.sort_by("names").values("names") == ["b", "c", "d", "e", "x"]


def test_sort_multiple_keys_directions():
    view = Store.from_columns({"a": [1, 1, 2, 2], "b": [1, 2, 1, 2]}).view()
    assert sort_positions(view, ["a", "b"], [True, False]) == [2, 3, 0, 1]


def test_sort_keys_and_directions_length():
    view = Store.from_columns({"a": [1]}).view()
    with pytest.raises(ValueError):
        sort_positions(view, ["a"], [True, False])


def test_sort_without_keys(view):
    with pytest.raises(ValueError):
        sort_positions(view, [])


def test_sort_unknown_key(view):
    with pytest.raises(FieldNotFound):
        view.sort_by("missing")


def test_sort_empty_view():
    view = Store.from_columns({"a": [1]}).view().head(0)
    assert sort_positions(view, ["a"]) == []


def test_sort_keeps_rows_of_store(view):
    ordered = view.sort_by("values")
    assert ordered.rows == (4, 1, 3, 0, 2)
    assert ordered.fields == view.fields


@pytest.mark.parametrize(
    "offset,length,expected",
    [
        (0, 2, (10, 11)),
        (1, 1, (11,)),
        (2, None, (12, 13)),
        (3, 5, (13,)),
        (4, 1, ()),
        (0, 0, ()),
    ],
)
def test_paginate(offset, length, expected):
    assert paginate((10, 11, 12, 13), offset, length) == expected


@pytest.mark.parametrize("offset,length", [(-1, 1), (0, -1)])
def test_paginate_invalid(offset, length):
    with pytest.raises(ValueError):
        paginate((1, 2), offset, length)
