import math

import pyarrow as pa
import pytest

from datawrangler.errors import RowIndexError, ShapeMismatch, TypeMismatch
from datawrangler.store import Column, FieldType


def test_column_values_and_missing():
    column = Column(FieldType.FLOAT, [10.0, None, 30.0])
    assert len(column) == 3
    assert column.missing_count == 1
    assert column.missing_mask() == [False, True, False]
    assert column.get(0) == 10.0
    assert column.get(1) is None
    assert column.is_missing(1)
    assert list(column) == [10.0, None, 30.0]
    assert str(column) == "Column(float, rows=3, missing=1)"


def test_column_explicit_mask():
    column = Column(FieldType.INTEGER, [1, 2, 3], missing=[False, True, False])
    assert column.to_pylist() == [1, None, 3]


def test_column_mask_ignores_masked_values():
    # Values under the mask are unspecified, even if they don't fit the type.
    column = Column(FieldType.INTEGER, [1, "garbage", 3], missing=[False, True, False])
    assert column.to_pylist() == [1, None, 3]


def test_column_mask_length_mismatch():
    with pytest.raises(ShapeMismatch) as err:
        Column(FieldType.INTEGER, [1, 2], missing=[False])
    assert err.value.expected == 2
    assert err.value.actual == 1


def test_set_missing():
    column = Column(FieldType.TEXT, ["a", "b"])
    assert column.to_arrow().null_count == 0
    column.set_missing(0)
    assert column.to_pylist() == [None, "b"]
    assert column.to_arrow().null_count == 1


def test_row_out_of_bounds():
    column = Column(FieldType.INTEGER, [1, 2])
    with pytest.raises(RowIndexError):
        column.get(2)
    with pytest.raises(IndexError):
        column.set_missing(-1)


def test_storage_type():
    assert Column(FieldType.UNSIGNED, [1]).to_arrow().type == pa.uint64()
    assert Column(FieldType.CATEGORICAL, ["a"]).to_arrow().type == pa.string()
    assert Column(FieldType.BOOLEAN, [True]).to_arrow().type == pa.bool_()


def test_incompatible_values():
    with pytest.raises(TypeMismatch):
        Column(FieldType.INTEGER, ["not a number"])


@pytest.mark.parametrize("dtype", [FieldType.INTEGER, FieldType.UNSIGNED])
def test_fractional_values_rejected(dtype):
    with pytest.raises(TypeMismatch):
        Column(dtype, [1, 2.5])
    with pytest.raises(TypeMismatch):
        Column(dtype, [math.inf])
    assert Column(dtype, [1, 2.0]).to_pylist() == [1, 2]


def test_map_promotes_mixed_numbers():
    mapped = Column(FieldType.INTEGER, [2, 1]).map(lambda v: v if v % 2 == 0 else v / 2)
    assert mapped.dtype is FieldType.FLOAT
    assert mapped.to_pylist() == [2.0, 0.5]


def test_map_mixed_results_rejected():
    with pytest.raises(TypeMismatch):
        Column(FieldType.INTEGER, [1, 2]).map(lambda v: v if v == 1 else "two")


def test_from_arrow():
    column = Column.from_arrow(pa.array([1, None], type=pa.int32()))
    assert column.dtype is FieldType.INTEGER
    assert column.to_pylist() == [1, None]
    assert column.to_arrow().type == pa.int64()


def test_from_arrow_dictionary():
    array = pa.array(["a", "b", "a"]).dictionary_encode()
    column = Column.from_arrow(array)
    assert column.dtype is FieldType.CATEGORICAL
    assert column.to_pylist() == ["a", "b", "a"]


def test_from_arrow_lossy_cast():
    with pytest.raises(TypeMismatch):
        Column.from_arrow(pa.array([1.5]), FieldType.INTEGER)


def test_take():
    column = Column(FieldType.TEXT, ["a", None, "c"])
    taken = column.take([2, 1, None, 0, 0])
    assert taken.dtype is FieldType.TEXT
    assert taken.to_pylist() == ["c", None, None, "a", "a"]


def test_map_infers_type():
    column = Column(FieldType.INTEGER, [1, 2, None])
    mapped = column.map(lambda v: v * 1.5)
    assert mapped.dtype is FieldType.FLOAT
    assert mapped.to_pylist() == [1.5, 3.0, None]


def test_map_explicit_type():
    mapped = Column(FieldType.INTEGER, [1, 2]).map(str, dtype=FieldType.CATEGORICAL)
    assert mapped.dtype is FieldType.CATEGORICAL
    assert mapped.to_pylist() == ["1", "2"]


def test_map_undefined_results_become_missing():
    column = Column(FieldType.FLOAT, [4.0, 0.0, -1.0, 1.0])
    mapped = column.map(lambda v: math.sqrt(1 / v))
    assert mapped.to_pylist() == [0.5, None, None, 1.0]


def test_map_nan_becomes_missing():
    mapped = Column(FieldType.FLOAT, [1.0, 2.0]).map(lambda v: math.nan if v > 1 else v)
    assert mapped.to_pylist() == [1.0, None]


def test_map_all_missing_keeps_type():
    mapped = Column(FieldType.TEXT, [None, None]).map(str.upper)
    assert mapped.dtype is FieldType.TEXT
    assert mapped.to_pylist() == [None, None]


@pytest.mark.parametrize(
    "dtype,values,func",
    [
        (FieldType.INTEGER, [1, None, 3, None], lambda v: v + 1),
        (FieldType.TEXT, [None, "a", None], lambda v: None),
        (FieldType.FLOAT, [None, 2.0], lambda v: 1 / (v - 2.0)),
        (FieldType.BOOLEAN, [True, None], lambda v: not v),
    ],
)
def test_map_preserves_missing_positions(dtype, values, func):
    column = Column(dtype, values)
    mapped = column.map(func)
    for row, missing in enumerate(column.missing_mask()):
        if missing:
            assert mapped.is_missing(row)


def test_map_never_calls_on_missing():
    calls = []
    Column(FieldType.INTEGER, [None, 1, None]).map(lambda v: calls.append(v) or v)
    assert calls == [1]


def test_equals():
    assert Column(FieldType.INTEGER, [1, None]).equals(Column(FieldType.INTEGER, [1, None]))
    assert not Column(FieldType.INTEGER, [1, None]).equals(Column(FieldType.INTEGER, [1, 2]))
    assert not Column(FieldType.TEXT, ["a"]).equals(Column(FieldType.CATEGORICAL, ["a"]))
