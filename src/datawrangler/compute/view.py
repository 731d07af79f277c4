"""Views, lightweight projections over stores.

A :class:`View` is what all transformations operate on. It doesn't hold
any data of its own, it's made of:

* an ordered list of field references, each one pointing to a
  :class:`Store` and to one of its fields, with a label under which
  the field is visible in the view.
* an ordered list of row indices, the rows of the stores that
  are part of the view.

Selecting fields, filtering rows, renaming and sorting all produce
new views that share the same stores, no column data is copied:

>>> from datawrangler.store import Store
>>> from datawrangler.compute import FunctionCallExpression, col, greater
>>> store = Store.from_columns({"id": [1, 2, 3], "v": [10.0, None, 30.0]})
>>> view = store.view()
>>> filtered = view.select(["v"]).filter(FunctionCallExpression(greater, col("v"), 15))
>>> filtered.to_pydict()
{'v': [30.0]}
>>> filtered.rows
(2,)

Views are immutable, every operation returns a new view
and leaves the original one untouched.
Data is copied only when a view is explicitly
materialized via :meth:`View.to_store`.
"""

import logging
from collections import Counter
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator, NamedTuple, Sequence

import pyarrow as pa

from ..errors import FieldNotFound, RowIndexError, SchemaConflict, ShapeMismatch, TypeMismatch
from ..store import Column, FieldIdent, FieldRegistry, FieldType, Store
from . import pagination, sorting
from .base import Expression

if TYPE_CHECKING:
    from .aggregate import GroupBy

log = logging.getLogger(__name__)


class FieldRef(NamedTuple):
    """A field of a store, as seen by a view."""

    store: Store
    ident: FieldIdent
    label: str

    @property
    def view_ident(self) -> FieldIdent:
        """The identifier of the field within the view."""
        return FieldIdent(self.label, self.ident.dtype)


class View:
    """Non-owning projection of fields and rows of one or more stores."""

    def __init__(self, fields: Iterable[FieldRef], rows: Iterable[int]) -> None:
        """
        :param fields: The referenced fields, in the order they appear in the view.
        :param rows: The indices of the rows of the stores that are part of the view.
        """
        self._fields = tuple(fields)
        self._rows = tuple(rows)
        self._rows_array: pa.Array | None = None

        labels = [ref.label for ref in self._fields]
        if len(set(labels)) != len(labels):
            duplicates = sorted({label for label in labels if labels.count(label) > 1})
            raise SchemaConflict(f"Duplicate labels in view: {duplicates}")

        if self._rows:
            lowest, highest = min(self._rows), max(self._rows)
            stores = {id(ref.store): ref.store for ref in self._fields}
            for store in stores.values():
                if lowest < 0:
                    raise RowIndexError(lowest, store.nrows)
                if highest >= store.nrows:
                    raise RowIndexError(highest, store.nrows)

    @classmethod
    def of(cls, store: Store) -> "View":
        """A view of all the fields and rows of a store.

        Fields are labeled by name, unless multiple fields share the same name
        with different types, in which case they are labeled ``"<name>: <type>"``.
        """
        idents = store.field_ids()
        names = Counter(ident.name for ident in idents)
        labels = [ident.name if names[ident.name] == 1 else str(ident) for ident in idents]
        return cls(
            (FieldRef(store, ident, label) for ident, label in zip(idents, labels)),
            range(store.nrows),
        )

    def _derive(self, fields: Iterable[FieldRef] | None = None, rows: Iterable[int] | None = None) -> "View":
        return self.__class__(
            self._fields if fields is None else fields,
            self._rows if rows is None else rows,
        )

    def __str__(self) -> str:
        return f"View(fields={[str(i) for i in self.field_ids()]}, rows={self.nrows})"

    __repr__ = __str__

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def fields(self) -> tuple[FieldRef, ...]:
        return self._fields

    @property
    def rows(self) -> tuple[int, ...]:
        return self._rows

    @property
    def nrows(self) -> int:
        return len(self._rows)

    @property
    def nfields(self) -> int:
        return len(self._fields)

    @property
    def labels(self) -> list[str]:
        return [ref.label for ref in self._fields]

    @property
    def schema(self) -> pa.Schema:
        """The Arrow schema of the data exported by the view."""
        return pa.schema(
            [pa.field(ref.label, ref.ident.dtype.arrow_type) for ref in self._fields]
        )

    def field_ids(self) -> list[FieldIdent]:
        """Identifiers of the fields as visible in the view."""
        return [ref.view_ident for ref in self._fields]

    def ref(self, field: FieldIdent | str) -> FieldRef:
        """Find the reference of a field by label or by view identifier."""
        for ref in self._fields:
            if isinstance(field, FieldIdent):
                if ref.view_ident == field:
                    return ref
            elif ref.label == field:
                return ref
        raise FieldNotFound(field, self.field_ids())

    def _take(self, ref: FieldRef, positions: Sequence[int | None]) -> Column:
        """Gather values of a field at the given view positions."""
        return ref.store.column(ref.ident).take(
            [None if pos is None else self._rows[pos] for pos in positions]
        )

    def column(self, field: FieldIdent | str) -> pa.Array:
        """The data of a field, in view row order, as an Arrow array."""
        ref = self.ref(field)
        if self._rows_array is None:
            self._rows_array = pa.array(self._rows, type=pa.int64())
        return ref.store.column(ref.ident).to_arrow().take(self._rows_array)

    def field(self, field: FieldIdent | str) -> Column:
        """The data of a field, in view row order, as a new :class:`Column`."""
        ref = self.ref(field)
        return Column(ref.ident.dtype, self.column(ref.label))

    def values(self, field: FieldIdent | str) -> list[Any]:
        return self.column(field).to_pylist()

    def get(self, row: int, field: FieldIdent | str) -> Any:
        """The value of a field at a row of the view, ``None`` if missing."""
        ref = self.ref(field)
        if not 0 <= row < len(self._rows):
            raise RowIndexError(row, len(self._rows))
        return ref.store.column(ref.ident).get(self._rows[row])

    def select(self, fields: Iterable[FieldIdent | str]) -> "View":
        """Keep only the given fields, in the given order."""
        return self._derive(fields=[self.ref(field) for field in fields])

    def rename(self, field: FieldIdent | str, label: str) -> "View":
        """Change the label of a field, the store is not modified."""
        ref = self.ref(field)
        if label != ref.label and label in self.labels:
            raise SchemaConflict(f"Field already exists: {label}")
        return self._derive(
            fields=[r._replace(label=label) if r is ref else r for r in self._fields]
        )

    def filter(self, predicate: Expression | Callable[[dict[str, Any]], Any]) -> "View":
        """Keep only the rows for which the predicate holds.

        The predicate can be an :class:`Expression`, evaluated column-wise,
        or a Python callable, invoked for each row with a ``{label: value}``
        dictionary where missing values are ``None``.

        Rows for which the predicate is missing (``null`` or ``None``)
        are discarded, see :mod:`datawrangler.compute.expressions`
        for comparisons that handle missing values explicitly.
        The order of the rows is preserved.
        """
        if isinstance(predicate, Expression):
            mask = predicate.apply(self)
            if isinstance(mask, pa.Scalar):
                mask = pa.array([mask.as_py()] * self.nrows, type=mask.type)
            if isinstance(mask, pa.ChunkedArray):
                mask = mask.combine_chunks()
            if not pa.types.is_boolean(mask.type):
                raise TypeMismatch(f"Filter predicate must be boolean, got {mask.type}")
            if len(mask) != self.nrows:
                raise ShapeMismatch("Filter mask doesn't match view rows", expected=self.nrows, actual=len(mask))
            flags = mask.to_pylist()
        elif callable(predicate):
            flags = [predicate(record) for record in self.to_pylist()]
        else:
            raise TypeMismatch(f"Unsupported filter predicate: {predicate!r}")

        return self._derive(rows=[row for row, keep in zip(self._rows, flags) if keep])

    def _materialize(self) -> FieldRegistry:
        return FieldRegistry(
            (ref.view_ident, self.field(ref.label)) for ref in self._fields
        )

    def to_store(self) -> Store:
        """Copy the selected fields and rows into a new independent Store."""
        store = Store(nrows=self.nrows)
        store.insert_registry(self._materialize())
        return store

    def with_column(self, label: str, data: Expression | Column | Iterable[Any]) -> "View":
        """Add a computed field at the end of the view.

        ``data`` can be an :class:`Expression`, evaluated on the view,
        a :class:`Column` or any iterable of values, one for each row of the view.

        The existing fields are not copied, the new column is stored
        in a new Store whose rows line up with the rows of the view.
        """
        if label in self.labels:
            raise SchemaConflict(f"Field already exists: {label}")
        return self._with_computed(label, data, replace=None)

    def map(
        self,
        field: FieldIdent | str,
        func: Callable[[Any], Any],
        label: str | None = None,
        dtype: FieldType | None = None,
    ) -> "View":
        """Apply a function to the values of a field.

        The result replaces the field, unless a new ``label`` is provided
        in which case it's added as a new field.
        See :meth:`Column.map` for how missing values are handled.
        """
        ref = self.ref(field)
        column = self.field(ref.label).map(func, dtype=dtype)
        if label is None or label == ref.label:
            return self._with_computed(ref.label, column, replace=ref)
        if label in self.labels:
            raise SchemaConflict(f"Field already exists: {label}")
        return self._with_computed(label, column, replace=None)

    def _with_computed(
        self, label: str, data: Expression | Column | Iterable[Any], replace: FieldRef | None
    ) -> "View":
        if isinstance(data, Expression):
            data = data.apply(self)
            if isinstance(data, pa.Scalar):
                data = pa.array([data.as_py()] * self.nrows, type=data.type)
        if not isinstance(data, Column):
            if isinstance(data, (pa.Array, pa.ChunkedArray)):
                data = Column.from_arrow(data)
            else:
                values = list(data)
                dtype = FieldType.infer_values(values)
                if dtype is None:
                    raise TypeMismatch(f"Unable to guess the type of field {label}, no values")
                data = Column(dtype, values)
        if len(data) != self.nrows:
            raise ShapeMismatch("Computed column doesn't match view rows", expected=self.nrows, actual=len(data))

        ident = FieldIdent(label, data.dtype)
        registry = FieldRegistry([(ident, data)])
        if len(set(self._rows)) == len(self._rows):
            # Store the new column at the same row indices used by the view.
            base = self
            computed = Store(nrows=max(self._rows, default=-1) + 1)
            computed.insert_registry(registry, tag="computed", remap=self._rows)
        else:
            # Rows repeat, there is no way to line up the new column,
            # so the view gets materialized.
            base = self.to_store().view()
            computed = Store.from_registry(registry, tag="computed")

        newref = FieldRef(computed, ident, label)
        if replace is None:
            fields = list(base.fields) + [newref]
        else:
            fields = [newref if r.label == replace.label else r for r in base.fields]
        return self.__class__(fields, base.rows)

    def merge(self, other: "View") -> "View":
        """Combine the fields of two views with the same number of rows.

        Rows are paired by position. When both views select the same rows
        the result just references the fields of both, otherwise
        the data is copied into a new store.
        """
        if self.nrows != other.nrows:
            raise ShapeMismatch("Merged views must have the same rows", expected=self.nrows, actual=other.nrows)
        conflicts = set(self.labels) & set(other.labels)
        if conflicts:
            raise SchemaConflict(f"Fields exist in both views: {sorted(conflicts)}")

        if self._rows == other._rows:
            return self._derive(fields=self._fields + other._fields)

        store = Store(nrows=self.nrows)
        store.insert_registry(self._materialize(), tag="left")
        store.insert_registry(other._materialize(), tag="right")
        return store.view()

    def sort_by(self, fields: Sequence[FieldIdent | str] | FieldIdent | str, descending: bool | Sequence[bool] = False) -> "View":
        """Sort the rows by the values of one or more fields.

        See :func:`datawrangler.compute.sorting.sort_positions`.
        """
        if isinstance(fields, (str, FieldIdent)):
            fields = [fields]
        positions = sorting.sort_positions(self, fields, descending)
        return self._derive(rows=[self._rows[pos] for pos in positions])

    def slice(self, offset: int, length: int | None = None) -> "View":
        """Keep ``length`` rows starting at ``offset``."""
        return self._derive(rows=pagination.paginate(self._rows, offset, length))

    def head(self, n: int = 10) -> "View":
        return self.slice(0, n)

    def unique(self, field: FieldIdent | str) -> list[Any]:
        """Distinct values of a field, in order of first occurrence.

        ``None`` is included when the field has missing values.
        """
        return list(dict.fromkeys(self.values(field)))

    def join(
        self,
        other: "View",
        on: Any,
        how: str = "inner",
        qualifiers: tuple[str, str] | None = None,
        op: str = "==",
    ) -> "View":
        """Join with another view, see :func:`datawrangler.compute.join.join`."""
        from .join import join

        return join(self, other, on, how=how, qualifiers=qualifiers, op=op)

    def group_by(self, *keys: FieldIdent | str, sort: bool = False) -> "GroupBy":
        """Group the rows by one or more fields, see :class:`datawrangler.compute.aggregate.GroupBy`."""
        from .aggregate import GroupBy

        return GroupBy(self, keys, sort=sort)

    def aggregate(self, keys: Sequence[FieldIdent | str], aggregations: Any, sort: bool = False) -> "View":
        from .aggregate import aggregate

        return aggregate(self, keys, aggregations, sort=sort)

    def __iter__(self) -> Iterator[list[tuple[FieldIdent, Any]]]:
        """Iterate over the rows of the view.

        Each row is a list of ``(FieldIdent, value)`` pairs in the
        order of the fields of the view, missing values are ``None``.
        """
        idents = self.field_ids()
        columns = [self.values(ref.label) for ref in self._fields]
        for values in zip(*columns) if columns else ([] for _ in self._rows):
            yield list(zip(idents, values))

    def to_arrow(self) -> pa.RecordBatch:
        """Export the data of the view as an Arrow RecordBatch."""
        return pa.RecordBatch.from_arrays(
            [self.column(ref.label) for ref in self._fields],
            schema=self.schema,
        )

    def to_pydict(self) -> dict[str, list[Any]]:
        return {ref.label: self.values(ref.label) for ref in self._fields}

    def to_pylist(self) -> list[dict[str, Any]]:
        """The rows of the view as ``{label: value}`` dictionaries."""
        labels = self.labels
        return [dict(zip(labels, (value for _, value in row))) for row in self]
