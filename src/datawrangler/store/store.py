"""The Store, owner of the data.

A :class:`Store` owns one or more :class:`FieldRegistry` and
assigns a stable index to each of its rows. Stores are the only
objects holding data, everything else (views, joins, aggregations)
refers to the rows of a store by index.

Registries are usually added aligned, all with the same number of rows:

>>> store = Store.from_columns({"id": [1, 2, 3], "v": [10.0, None, 30.0]})
>>> store.nrows
3
>>> [str(ident) for ident in store.field_ids()]
['id: integer', 'v: float']

But a registry can also be inserted with a *remap*, which tells at which
row of the store each row of the registry lives. The store rows not covered
by the remap will read as missing for the fields of that registry.
This is used by joins, where one side of the join only has data
for some of the rows of the result:

>>> extra = FieldRegistry([(FieldIdent("w", FieldType.TEXT), Column(FieldType.TEXT, ["a", "c"]))])
>>> store.insert_registry(extra, remap=[0, 2])
>>> store.column("w").to_pylist()
['a', None, 'c']

Stores are meant to be built once and then only read, as views
referencing them expect their data to never change.
"""

import logging
from typing import Any, Iterable, Mapping, Self, Sequence

import pyarrow as pa

from ..errors import FieldNotFound, SchemaConflict, ShapeMismatch, TypeMismatch
from .column import Column
from .registry import FieldRegistry
from .types import FieldIdent, FieldType

log = logging.getLogger(__name__)


class Store:
    """Owning container of field registries and their data."""

    def __init__(self, nrows: int = 0) -> None:
        """
        :param nrows: Number of rows of the store before any registry is inserted.
        """
        self._registries: list[FieldRegistry] = []
        self._tags: list[str] = []
        self._remaps: list[list[int] | None] = []
        self._nrows = nrows
        # Columns of remapped registries, realigned to the store rows.
        self._realigned: dict[tuple[int, FieldIdent], Column] = {}

    def __str__(self) -> str:
        return f"Store(fields={[str(i) for i in self.field_ids()]}, rows={self._nrows})"

    __repr__ = __str__

    @property
    def nrows(self) -> int:
        return self._nrows

    @property
    def nfields(self) -> int:
        return sum(len(registry) for registry in self._registries)

    @property
    def registries(self) -> list[tuple[str, FieldRegistry]]:
        """The ``(tag, registry)`` pairs in insertion order."""
        return list(zip(self._tags, self._registries))

    def insert_registry(
        self,
        registry: FieldRegistry,
        tag: str | None = None,
        remap: Sequence[int] | None = None,
    ) -> None:
        """Add a registry to the store.

        :param registry: The registry to add, the store takes ownership of it.
        :param tag: The source tag of the registry, used to qualify
                    the names of fields that already exist in the store.
                    Defaults to ``registry<N>``.
        :param remap: The store row of each registry row. When omitted
                      the registry must have as many rows as the store
                      (unless the store is still empty).
        """
        if tag is None:
            tag = f"registry{len(self._registries)}"

        nrows = self._nrows
        if remap is None:
            if len(registry) and (self._registries or self._nrows) and registry.nrows != self._nrows:
                raise ShapeMismatch(
                    "Registry rows don't match store rows",
                    expected=self._nrows,
                    actual=registry.nrows,
                )
            nrows = max(nrows, registry.nrows)
        else:
            remap = list(remap)
            if len(remap) != registry.nrows:
                raise ShapeMismatch(
                    "Row remap length doesn't match registry rows",
                    expected=registry.nrows,
                    actual=len(remap),
                )
            if any(idx < 0 for idx in remap) or len(set(remap)) != len(remap):
                raise ShapeMismatch("Row remap must contain distinct non-negative indices")
            if remap:
                nrows = max(nrows, max(remap) + 1)

        self._registries.append(registry)
        self._tags.append(tag)
        self._remaps.append(remap)
        try:
            self._field_index()
        except SchemaConflict:
            self._registries.pop()
            self._tags.pop()
            self._remaps.pop()
            raise

        if nrows != self._nrows:
            self._realigned.clear()
        self._nrows = nrows
        log.debug("Inserted registry %s %s into store, now %d rows", tag, registry, nrows)

    def _field_index(self) -> dict[FieldIdent, tuple[int, FieldIdent]]:
        """Map each exposed field ident to its registry and ident in the registry."""
        index: dict[FieldIdent, tuple[int, FieldIdent]] = {}
        for regidx, registry in enumerate(self._registries):
            for ident in registry:
                exposed = ident
                if exposed in index:
                    exposed = ident.renamed(f"{self._tags[regidx]}.{ident.name}")
                    if exposed in index:
                        raise SchemaConflict(f"Field already exists: {exposed}")
                index[exposed] = (regidx, ident)
        return index

    def field_ids(self) -> list[FieldIdent]:
        """Identifiers of all the fields, in registry and insertion order."""
        return list(self._field_index())

    def resolve(self, field: FieldIdent | str) -> FieldIdent:
        """Find the identifier of a field, by ident or by unique name."""
        idents = self.field_ids()
        if isinstance(field, FieldIdent):
            if field in idents:
                return field
        else:
            matches = [ident for ident in idents if ident.name == field]
            if len(matches) == 1:
                return matches[0]
        raise FieldNotFound(field, idents)

    def column(self, field: FieldIdent | str) -> Column:
        """The column of a field, aligned to the rows of the store."""
        ident = self.resolve(field)
        regidx, regident = self._field_index()[ident]
        registry = self._registries[regidx]
        remap = self._remaps[regidx]
        column = registry.get(regident)
        if remap is None and registry.nrows == self._nrows:
            return column

        key = (regidx, regident)
        if key not in self._realigned:
            if remap is None:
                remap = range(registry.nrows)
            positions: list[int | None] = [None] * self._nrows
            for regrow, storerow in enumerate(remap):
                positions[storerow] = regrow
            self._realigned[key] = column.take(positions)
        return self._realigned[key]

    def view(self) -> "View":
        """A view over all fields and all rows of the store."""
        from ..compute.view import View

        return View.of(self)

    def equals(self, other: "Store") -> bool:
        """Same fields, in the same order, with the same data."""
        if self.field_ids() != other.field_ids() or self.nrows != other.nrows:
            return False
        return all(self.column(i).equals(other.column(i)) for i in self.field_ids())

    def to_arrow(self) -> pa.RecordBatch:
        idents = self.field_ids()
        return pa.RecordBatch.from_arrays(
            [self.column(ident).to_arrow() for ident in idents],
            names=[ident.name for ident in idents],
        )

    @classmethod
    def from_registry(cls, registry: FieldRegistry, tag: str | None = None) -> Self:
        store = cls()
        store.insert_registry(registry, tag=tag)
        return store

    @classmethod
    def from_columns(cls, columns: Mapping[FieldIdent | str, Column | Iterable[Any]]) -> Self:
        """Build a store with a single registry from a mapping of columns.

        Values can be :class:`Column` objects or plain iterables.
        When the key is a bare name and the value is not a Column,
        the type is guessed from the present values with
        :meth:`FieldType.infer_values`.
        """
        registry = FieldRegistry()
        for key, values in columns.items():
            if not isinstance(values, Column):
                values = list(values)
                if isinstance(key, FieldIdent):
                    dtype = key.dtype
                else:
                    dtype = FieldType.infer_values(values)
                    if dtype is None:
                        raise TypeMismatch(f"Unable to guess the type of field {key}, no values")
                values = Column(dtype, values)
            ident = key if isinstance(key, FieldIdent) else FieldIdent(key, values.dtype)
            registry.add_field(ident, values)
        return cls.from_registry(registry)

    @classmethod
    def from_rows(
        cls,
        schema: Iterable[FieldIdent],
        rows: Iterable[Mapping[FieldIdent | str, Any]],
        tag: str | None = None,
    ) -> Self:
        """Build a store from rows of raw values.

        Each row maps fields (by ident or name) to a raw value,
        ``None`` or a field absent from the row mean the value is missing.
        Every value is coerced to the type declared by the schema
        with :meth:`FieldType.coerce`.

        >>> schema = [FieldIdent("id", FieldType.INTEGER), FieldIdent("name", FieldType.TEXT)]
        >>> store = Store.from_rows(schema, [{"id": "1", "name": "a"}, {"id": 2}])
        >>> store.column("name").to_pylist()
        ['a', None]

        :raises TypeMismatch: when a value can't be coerced to the field type.
        :raises FieldNotFound: when a row references a field not in the schema.
        """
        schema = list(schema)
        names = {ident.name: ident for ident in schema}
        data: dict[FieldIdent, list[Any]] = {ident: [] for ident in schema}
        nrows = 0
        for rowidx, row in enumerate(rows):
            values: dict[FieldIdent, Any] = {}
            for key, raw in row.items():
                ident = key if isinstance(key, FieldIdent) else names.get(key)
                if ident not in data:
                    raise FieldNotFound(key, schema)
                try:
                    values[ident] = ident.dtype.coerce(raw)
                except TypeMismatch as err:
                    raise TypeMismatch(f"Row {rowidx}, field {ident}: {err}") from err
            for ident, column_data in data.items():
                column_data.append(values.get(ident))
            nrows += 1

        registry = FieldRegistry(
            (ident, Column(ident.dtype, values)) for ident, values in data.items()
        )
        log.debug("Loaded %d rows for %d fields", nrows, len(schema))
        return cls.from_registry(registry, tag=tag)

    @classmethod
    def from_arrow(cls, table: pa.Table | pa.RecordBatch, tag: str | None = None) -> Self:
        """Build a store from an Arrow table or record batch.

        Field types are guessed from the Arrow types of the columns.
        """
        registry = FieldRegistry(
            (
                FieldIdent(name, FieldType.from_arrow_type(array.type)),
                Column.from_arrow(array),
            )
            for name, array in zip(table.column_names, table.columns)
        )
        return cls.from_registry(registry, tag=tag)


