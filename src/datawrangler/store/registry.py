"""Ordered mapping of fields to their columns.

A :class:`FieldRegistry` is a schema with its data: it maps each
:class:`FieldIdent` to the :class:`Column` holding the field values
and remembers the order in which fields were added, as that's the order
in which they will be displayed or exported.

All the columns of a registry have the same length, which is the
number of rows of the registry:

>>> registry = FieldRegistry()
>>> registry.add_field(FieldIdent("id", FieldType.INTEGER), Column(FieldType.INTEGER, [1, 2, 3]))
>>> registry.nrows
3
>>> registry.add_field(FieldIdent("v", FieldType.FLOAT), Column(FieldType.FLOAT, [1.0]))
Traceback (most recent call last):
    ...
datawrangler.errors.ShapeMismatch: Column length doesn't match registry rows: expected 3, got 1
"""

from typing import Iterable, Iterator

from ..errors import FieldNotFound, SchemaConflict, ShapeMismatch, TypeMismatch
from .column import Column
from .types import FieldIdent, FieldType


class FieldRegistry:
    """Insertion ordered mapping from :class:`FieldIdent` to :class:`Column`.

    Lookups go through a dictionary, while the order of the fields
    is tracked by an explicit list, so that renaming a field can
    keep its position.
    """

    def __init__(self, fields: Iterable[tuple[FieldIdent, Column]] = ()) -> None:
        """
        :param fields: Initial ``(ident, column)`` pairs, added in order.
        """
        self._order: list[FieldIdent] = []
        self._columns: dict[FieldIdent, Column] = {}
        self._nrows = 0
        for ident, column in fields:
            self.add_field(ident, column)

    def __str__(self) -> str:
        fields = ", ".join(str(ident) for ident in self._order)
        return f"FieldRegistry([{fields}], rows={self._nrows})"

    __repr__ = __str__

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[FieldIdent]:
        return iter(list(self._order))

    def __contains__(self, ident: object) -> bool:
        return ident in self._columns

    @property
    def nrows(self) -> int:
        return self._nrows

    def items(self) -> list[tuple[FieldIdent, Column]]:
        return [(ident, self._columns[ident]) for ident in self._order]

    def add_field(self, ident: FieldIdent, column: Column) -> None:
        """Add a new field at the end of the registry.

        An empty registry adopts the length of the first column added,
        any other column must have the same length.
        """
        if ident in self._columns:
            raise SchemaConflict(f"Field already exists: {ident}")
        if column.dtype != ident.dtype:
            raise TypeMismatch(
                f"Column of type {column.dtype.value} can't be stored as field {ident}"
            )
        if self._order and len(column) != self._nrows:
            raise ShapeMismatch(
                "Column length doesn't match registry rows",
                expected=self._nrows,
                actual=len(column),
            )
        if not self._order:
            self._nrows = len(column)
        self._order.append(ident)
        self._columns[ident] = column

    def get(self, ident: FieldIdent | str) -> Column:
        """The column of a field, looked up by ident or by name."""
        return self._columns[self.resolve(ident)]

    def resolve(self, field: FieldIdent | str) -> FieldIdent:
        """Find the identifier of a field.

        A bare name resolves when exactly one field has that name.
        """
        if isinstance(field, FieldIdent):
            if field not in self._columns:
                raise FieldNotFound(field, list(self._order))
            return field

        matches = [ident for ident in self._order if ident.name == field]
        if len(matches) != 1:
            # Either no field has that name or it's ambiguous.
            raise FieldNotFound(field, list(self._order))
        return matches[0]

    def rename(self, field: FieldIdent | str, name: str) -> FieldIdent:
        """Rename a field keeping its column, type and position.

        :returns: The new identifier of the field.
        """
        ident = self.resolve(field)
        new_ident = ident.renamed(name)
        if new_ident == ident:
            return ident
        if new_ident in self._columns:
            raise SchemaConflict(f"Field already exists: {new_ident}")

        self._order[self._order.index(ident)] = new_ident
        self._columns[new_ident] = self._columns.pop(ident)
        return new_ident
