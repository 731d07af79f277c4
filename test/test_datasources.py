import os
import tempfile

import pyarrow as pa
import pyarrow.csv as csv
import pytest

from datawrangler.compute.datasources import (
    CSVDataSource,
    PyArrowTableDataSource,
    RowsDataSource,
)
from datawrangler.errors import DataSourceError, FieldNotFound, TypeMismatch
from datawrangler.store import FieldIdent, FieldType, Store

# Mock data for testing
MOCK_PYARROW_TABLE = pa.table({"col1": [1, 4, 7], "col2": [2.5, None, 8.0], "col3": ["a", "b", None]})

MOCK_CSV_FILE = tempfile.NamedTemporaryFile(delete=False, mode="w+", suffix=".csv")


def setup_module():
    csv.write_csv(MOCK_PYARROW_TABLE, MOCK_CSV_FILE.name)
    MOCK_CSV_FILE.close()


def teardown_module():
    os.unlink(MOCK_CSV_FILE.name)


MOCK_SCHEMA = [
    FieldIdent("col1", FieldType.INTEGER),
    FieldIdent("col2", FieldType.FLOAT),
    FieldIdent("col3", FieldType.TEXT),
]


@pytest.mark.parametrize(
    "data_source_class, init_args, expected_str",
    [
        (
            CSVDataSource,
            (MOCK_CSV_FILE.name, None),
            f"CSVDataSource({MOCK_CSV_FILE.name}, block_size=None)",
        ),
        (
            PyArrowTableDataSource,
            (MOCK_PYARROW_TABLE,),
            "PyArrowTableDataSource(columns=['col1', 'col2', 'col3'], rows=3)",
        ),
        (
            PyArrowTableDataSource,
            (MOCK_PYARROW_TABLE.to_batches()[0],),
            "PyArrowTableDataSource(columns=['col1', 'col2', 'col3'], rows=3)",
        ),
        (
            RowsDataSource,
            (MOCK_SCHEMA, []),
            "RowsDataSource(fields=['col1: integer', 'col2: float', 'col3: text'])",
        ),
    ],
)
def test_init_and_str(data_source_class, init_args, expected_str):
    data_source = data_source_class(*init_args)
    assert str(data_source) == expected_str


@pytest.mark.parametrize(
    "data_source",
    [
        lambda: CSVDataSource(MOCK_CSV_FILE.name),
        lambda: PyArrowTableDataSource(MOCK_PYARROW_TABLE),
        lambda: PyArrowTableDataSource(MOCK_PYARROW_TABLE.to_batches()[0]),
        lambda: RowsDataSource(MOCK_SCHEMA, MOCK_PYARROW_TABLE.to_pylist()),
    ],
)
def test_load(data_source):
    source = data_source()
    store = source.load()
    assert isinstance(store, Store)
    assert store.field_ids() == MOCK_SCHEMA
    assert source.poll_schema() == MOCK_SCHEMA
    assert source.view().to_pydict() == MOCK_PYARROW_TABLE.to_pydict()


def test_csv_declared_schema():
    schema = [FieldIdent("col1", FieldType.UNSIGNED), FieldIdent("col3", FieldType.CATEGORICAL)]
    source = CSVDataSource(MOCK_CSV_FILE.name, schema=schema)
    assert source.poll_schema() == [
        FieldIdent("col1", FieldType.UNSIGNED),
        FieldIdent("col2", FieldType.FLOAT),
        FieldIdent("col3", FieldType.CATEGORICAL),
    ]
    store = source.load()
    assert store.column("col1").to_pylist() == [1, 4, 7]
    assert store.column("col3").dtype is FieldType.CATEGORICAL


def test_csv_unknown_declared_field():
    source = CSVDataSource(MOCK_CSV_FILE.name, schema=[FieldIdent("nope", FieldType.TEXT)])
    with pytest.raises(FieldNotFound):
        source.load()


def test_csv_block_size():
    source = CSVDataSource(MOCK_CSV_FILE.name, block_size=64)
    assert source.load().column("col1").to_pylist() == [1, 4, 7]


def test_csv_empty_column(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("a,b\n1,\n2,\n")
    store = CSVDataSource(str(path)).load()
    assert store.column("b").dtype is FieldType.TEXT
    assert store.column("b").to_pylist() == [None, None]


def test_rows_data_source_coercion():
    source = RowsDataSource(MOCK_SCHEMA, [{"col1": "12", "col2": "", "col3": "z"}])
    assert source.view().to_pylist() == [{"col1": 12, "col2": None, "col3": "z"}]


def test_rows_data_source_rejects():
    source = RowsDataSource(MOCK_SCHEMA, [{"col1": "twelve"}])
    with pytest.raises(TypeMismatch):
        source.load()


def test_csv_malformed(tmp_path):
    path = tmp_path / "malformed.csv"
    path.write_text("a,b\n1,2\n3\n")
    with pytest.raises(DataSourceError) as exc:
        CSVDataSource(str(path)).load()
    assert isinstance(exc.value.__cause__, pa.ArrowInvalid)


def test_csv_declared_schema_mismatch(tmp_path):
    path = tmp_path / "text.csv"
    path.write_text("a\nx\n")
    source = CSVDataSource(str(path), schema=[FieldIdent("a", FieldType.INTEGER)])
    with pytest.raises(DataSourceError):
        source.load()
