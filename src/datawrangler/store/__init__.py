"""Typed columnar storage.

The storage layer is made of three nested containers:

* :class:`Column` stores the values of a single field,
  all of the same :class:`FieldType`, and tracks which
  of them are missing.
* :class:`FieldRegistry` maps :class:`FieldIdent` to columns
  of the same length, preserving the order of the fields.
* :class:`Store` owns one or more registries and is the object
  from which views are created.

>>> store = Store.from_columns({"city": ["Rome", "Paris"], "shops": [3, None]})
>>> store.column("shops").to_pylist()
[3, None]
"""

from .column import Column
from .registry import FieldRegistry
from .store import Store
from .types import FieldIdent, FieldType

__all__ = (
    "Column",
    "FieldIdent",
    "FieldRegistry",
    "FieldType",
    "Store",
)
