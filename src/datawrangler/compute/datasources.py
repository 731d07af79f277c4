"""Data sources, loading data into stores.

The data sources are expected to fetch the data from some source,
convert it into the types understood by the engine and
load it into a :class:`datawrangler.store.Store`,
from which views can be created.

They are used to do things like loading
data from CSV files or equivalent operations.

>>> from datawrangler.store import FieldIdent, FieldType
>>> source = RowsDataSource(
...     [FieldIdent("id", FieldType.INTEGER), FieldIdent("v", FieldType.FLOAT)],
...     [{"id": "1", "v": "10.5"}, {"id": "2", "v": ""}],
... )
>>> source.view().to_pydict()
{'id': [1, 2], 'v': [10.5, None]}
"""

import abc
import logging
from typing import Any, Iterable, Mapping

import pyarrow as pa
import pyarrow.csv

from ..errors import DataSourceError, FieldNotFound
from ..store import Column, FieldIdent, FieldRegistry, FieldType, Store
from .view import View

log = logging.getLogger(__name__)


class DataSource(abc.ABC):
    """Base class for sources of data."""

    @abc.abstractmethod
    def poll_schema(self) -> list[FieldIdent]:
        """Poll the schema of the data source without loading its content."""
        ...

    @abc.abstractmethod
    def load(self) -> Store:
        """Load the content of the data source into a new Store."""
        ...

    def view(self) -> View:
        """Load the data and return a view over all of it."""
        return self.load().view()


class RowsDataSource(DataSource):
    """Load data from rows of raw values.

    Each row is a mapping from field names (or identifiers)
    to raw values, which are coerced to the types declared
    by the schema. See :meth:`Store.from_rows`.
    """

    def __init__(
        self, schema: Iterable[FieldIdent], rows: Iterable[Mapping[FieldIdent | str, Any]]
    ) -> None:
        """
        :param schema: The fields of the data, in order.
        :param rows: The rows of raw values, ``None`` marks a missing value.
        """
        self.schema = list(schema)
        self.rows = rows

    def __str__(self) -> str:
        return f"RowsDataSource(fields={[str(i) for i in self.schema]})"

    def poll_schema(self) -> list[FieldIdent]:
        return list(self.schema)

    def load(self) -> Store:
        return Store.from_rows(self.schema, self.rows, tag="rows")


class PyArrowTableDataSource(DataSource):
    """Load data from an in-memory pyarrow.Table or pyarrow.RecordBatch.

    Given a :class:`pyarrow.Table` or `pyarrow.RecordBatch` object,
    allow to use its data in the engine. Field types are guessed from
    the Arrow types, dictionary encoded columns become categorical fields.
    """

    def __init__(self, table: pa.Table | pa.RecordBatch) -> None:
        """
        :param table: The table or recordbatch with the data to read.
        """
        self.table = table

    def __str__(self) -> str:
        return f"PyArrowTableDataSource(columns={self.table.column_names}, rows={self.table.num_rows})"

    def poll_schema(self) -> list[FieldIdent]:
        """Poll the schema of the Table."""
        return [
            FieldIdent(field.name, FieldType.from_arrow_type(field.type))
            for field in self.table.schema
        ]

    def load(self) -> Store:
        return Store.from_arrow(self.table, tag="arrow")


class CSVDataSource(DataSource):
    """Load data from a CSV file.

    Given a local CSV file path, load the content
    with the Arrow CSV reader and store it.
    Empty cells are loaded as missing values.

    Unless a schema is provided, the field types are
    guessed by the reader from the content of the file.
    """

    def __init__(
        self,
        filename: str,
        block_size: int | None = None,
        schema: Iterable[FieldIdent] | None = None,
    ) -> None:
        """
        :param filename: The path of the local CSV file.
        :param block_size: How many bytes the reader processes at once,
                           influences the memory used while loading.
        :param schema: The type of the fields, guessed when not provided.
                       Fields of the file missing from the schema are guessed too.
        """
        self.filename = filename
        self.block_size = block_size
        self.schema = list(schema) if schema is not None else None

    def __str__(self) -> str:
        return f"CSVDataSource({self.filename}, block_size={self.block_size})"

    def _convert_options(self) -> pa.csv.ConvertOptions:
        column_types = {}
        if self.schema is not None:
            column_types = {ident.name: ident.dtype.arrow_type for ident in self.schema}
        return pa.csv.ConvertOptions(column_types=column_types, strings_can_be_null=True)

    def poll_schema(self) -> list[FieldIdent]:
        """Poll the schema of the CSV file."""
        try:
            with pa.csv.open_csv(self.filename, convert_options=self._convert_options()) as reader:
                arrow_schema = reader.schema
        except pa.ArrowInvalid as err:
            raise DataSourceError(f"Unable to read {self.filename}: {err}") from err
        declared = {ident.name: ident for ident in self.schema or ()}
        return [
            declared.get(field.name) or FieldIdent(field.name, FieldType.from_arrow_type(field.type))
            for field in arrow_schema
        ]

    def load(self) -> Store:
        """Read the whole CSV file into a new Store.

        :raises DataSourceError: when the file is not valid CSV or its
                                 content doesn't match the declared schema.
        """
        try:
            table = pa.csv.read_csv(
                self.filename,
                read_options=pa.csv.ReadOptions(block_size=self.block_size),
                convert_options=self._convert_options(),
            )
        except pa.ArrowInvalid as err:
            raise DataSourceError(f"Unable to read {self.filename}: {err}") from err
        log.debug("Read %d rows from %s", table.num_rows, self.filename)

        declared = {ident.name: ident for ident in self.schema or ()}
        unknown = set(declared) - set(table.column_names)
        if unknown:
            raise FieldNotFound(sorted(unknown)[0], table.column_names)

        registry = FieldRegistry()
        for name, array in zip(table.column_names, table.columns):
            ident = declared.get(name) or FieldIdent(name, FieldType.from_arrow_type(array.type))
            registry.add_field(ident, Column.from_arrow(array, ident.dtype))
        return Store.from_registry(registry, tag="csv")
