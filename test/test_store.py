import pyarrow as pa
import pytest

from datawrangler.errors import FieldNotFound, SchemaConflict, ShapeMismatch, TypeMismatch
from datawrangler.store import Column, FieldIdent, FieldRegistry, FieldType, Store

SCHEMA = [
    FieldIdent("id", FieldType.INTEGER),
    FieldIdent("score", FieldType.FLOAT),
    FieldIdent("tag", FieldType.CATEGORICAL),
]


def make_registry(**columns):
    return FieldRegistry(
        (FieldIdent(name, column.dtype), column) for name, column in columns.items()
    )


def test_empty_store():
    store = Store()
    assert store.nrows == 0
    assert store.nfields == 0
    assert store.field_ids() == []
    assert store.view().nrows == 0


def test_insert_aligned_registries():
    store = Store()
    store.insert_registry(make_registry(a=Column(FieldType.INTEGER, [1, 2])))
    store.insert_registry(make_registry(b=Column(FieldType.TEXT, ["x", "y"])), tag="other")
    assert store.nrows == 2
    assert store.nfields == 2
    assert [tag for tag, _ in store.registries] == ["registry0", "other"]
    assert store.column("b").to_pylist() == ["x", "y"]


def test_insert_misaligned_registry():
    store = Store.from_columns({"a": [1, 2]})
    with pytest.raises(ShapeMismatch):
        store.insert_registry(make_registry(b=Column(FieldType.INTEGER, [1, 2, 3])))
    assert store.nfields == 1


def test_insert_remapped_registry():
    store = Store.from_columns({"a": [1, 2, 3]})
    store.insert_registry(make_registry(b=Column(FieldType.TEXT, ["x", "z"])), remap=[0, 2])
    assert store.nrows == 3
    assert store.column("b").to_pylist() == ["x", None, "z"]
    assert store.column("b").is_missing(1)


def test_remap_extends_rows():
    store = Store.from_columns({"a": [1, 2]})
    store.insert_registry(make_registry(b=Column(FieldType.INTEGER, [7])), remap=[4])
    assert store.nrows == 5
    # Rows beyond the original registry read as missing too.
    assert store.column("a").to_pylist() == [1, 2, None, None, None]
    assert store.column("b").to_pylist() == [None, None, None, None, 7]


@pytest.mark.parametrize("remap", [[0], [0, 0], [-1, 1]])
def test_invalid_remap(remap):
    store = Store.from_columns({"a": [1, 2]})
    with pytest.raises(ShapeMismatch):
        store.insert_registry(make_registry(b=Column(FieldType.INTEGER, [1, 2])), remap=remap)


def test_duplicate_fields_are_qualified():
    store = Store()
    store.insert_registry(make_registry(id=Column(FieldType.INTEGER, [1, 2])), tag="users")
    store.insert_registry(make_registry(id=Column(FieldType.INTEGER, [3, 4])), tag="orders")
    assert [str(i) for i in store.field_ids()] == ["id: integer", "orders.id: integer"]
    assert store.column("orders.id").to_pylist() == [3, 4]
    assert store.column(FieldIdent("id", FieldType.INTEGER)).to_pylist() == [1, 2]


def test_duplicate_qualified_fields_conflict():
    store = Store()
    for _ in range(2):
        store.insert_registry(make_registry(id=Column(FieldType.INTEGER, [1])), tag="same")
    with pytest.raises(SchemaConflict):
        store.insert_registry(make_registry(id=Column(FieldType.INTEGER, [1])), tag="same")
    assert store.nfields == 2


def test_same_name_different_types():
    store = Store()
    store.insert_registry(make_registry(v=Column(FieldType.INTEGER, [1])))
    store.insert_registry(make_registry(v=Column(FieldType.TEXT, ["a"])))
    assert store.field_ids() == [FieldIdent("v", FieldType.INTEGER), FieldIdent("v", FieldType.TEXT)]
    assert store.column(FieldIdent("v", FieldType.TEXT)).to_pylist() == ["a"]
    with pytest.raises(FieldNotFound):
        store.column("v")


def test_column_not_found():
    store = Store.from_columns({"a": [1]})
    with pytest.raises(FieldNotFound):
        store.column("b")
    with pytest.raises(KeyError):
        store.column(FieldIdent("a", FieldType.FLOAT))


def test_from_columns_inference():
    store = Store.from_columns(
        {
            "i": [1, None],
            "f": [None, 2.5],
            "s": ["a", "b"],
            "b": [True, None],
            FieldIdent("u", FieldType.UNSIGNED): [1, 2],
            "c": Column(FieldType.CATEGORICAL, ["x", "y"]),
        }
    )
    assert [i.dtype for i in store.field_ids()] == [
        FieldType.INTEGER,
        FieldType.FLOAT,
        FieldType.TEXT,
        FieldType.BOOLEAN,
        FieldType.UNSIGNED,
        FieldType.CATEGORICAL,
    ]


def test_from_columns_all_missing():
    with pytest.raises(TypeMismatch):
        Store.from_columns({"a": [None, None]})


def test_from_columns_mixed_numbers():
    store = Store.from_columns({"n": [1, None, 2.5]})
    assert store.field_ids() == [FieldIdent("n", FieldType.FLOAT)]
    assert store.column("n").to_pylist() == [1.0, None, 2.5]


def test_from_columns_declared_integer_rejects_fractions():
    with pytest.raises(TypeMismatch):
        Store.from_columns({FieldIdent("n", FieldType.INTEGER): [1, 2.5]})


def test_from_rows_coercion():
    rows = [
        {"id": "1", "score": "9.5", "tag": "red"},
        {"id": 2, "score": None},
        {"id": "3.0", "score": "", "tag": "blue"},
    ]
    store = Store.from_rows(SCHEMA, rows)
    assert store.nrows == 3
    assert store.field_ids() == SCHEMA
    assert store.column("id").to_pylist() == [1, 2, 3]
    assert store.column("score").to_pylist() == [9.5, None, None]
    assert store.column("tag").to_pylist() == ["red", None, "blue"]


def test_from_rows_by_ident():
    store = Store.from_rows(SCHEMA[:1], [{SCHEMA[0]: "5"}])
    assert store.column("id").to_pylist() == [5]


def test_from_rows_rejects():
    with pytest.raises(TypeMismatch) as err:
        Store.from_rows(SCHEMA, [{"id": 1}, {"id": "abc"}])
    assert "Row 1" in str(err.value)
    assert "id: integer" in str(err.value)
    assert isinstance(err.value.__cause__, TypeMismatch)


def test_from_rows_unknown_field():
    with pytest.raises(FieldNotFound):
        Store.from_rows(SCHEMA, [{"nope": 1}])


def test_from_rows_empty():
    store = Store.from_rows(SCHEMA, [])
    assert store.nrows == 0
    assert store.nfields == 3


def test_from_arrow():
    table = pa.table(
        {
            "n": pa.array([1, None], type=pa.int32()),
            "c": pa.array(["a", "b"]).dictionary_encode(),
        }
    )
    store = Store.from_arrow(table)
    assert store.field_ids() == [
        FieldIdent("n", FieldType.INTEGER),
        FieldIdent("c", FieldType.CATEGORICAL),
    ]
    assert store.column("n").to_pylist() == [1, None]


def test_to_arrow():
    store = Store.from_columns({"a": [1, None], "b": ["x", "y"]})
    batch = store.to_arrow()
    assert batch.column_names == ["a", "b"]
    assert batch.to_pydict() == {"a": [1, None], "b": ["x", "y"]}


def test_store_equals():
    left = Store.from_columns({"a": [1, None]})
    assert left.equals(Store.from_columns({"a": [1, None]}))
    assert not left.equals(Store.from_columns({"a": [1, 2]}))
    assert not left.equals(Store.from_columns({"b": [1, None]}))


def test_store_preset_rows():
    store = Store(nrows=3)
    assert store.nrows == 3
    with pytest.raises(ShapeMismatch):
        store.insert_registry(make_registry(a=Column(FieldType.INTEGER, [1])))
    store.insert_registry(make_registry(a=Column(FieldType.INTEGER, [1])), remap=[1])
    assert store.column("a").to_pylist() == [None, 1, None]


def test_store_str():
    store = Store.from_columns({"a": [1]})
    assert str(store) == "Store(fields=['a: integer'], rows=1)"
