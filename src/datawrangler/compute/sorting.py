"""Sorting of the rows of a view.

When computing ranks or looking for most significant
values, it's often necessary to sort the data based
on one or more fields.

Sorting never moves data around, it only computes
the new order of the rows, which becomes the row list
of a new view over the same stores.

>>> from datawrangler.store import Store
>>> view = Store.from_columns({"v": [3, None, 1, 2]}).view()
>>> sort_positions(view, ["v"])
[2, 3, 0, 1]
>>> view.sort_by("v", descending=True).to_pydict()
{'v': [3, 2, 1, None]}
"""

import logging
from typing import Sequence

import pyarrow as pa
import pyarrow.compute as pc

from ..store import FieldIdent
from .base import ColumnSource

log = logging.getLogger(__name__)


def sort_positions(
    view: ColumnSource,
    keys: Sequence[FieldIdent | str],
    descending: bool | Sequence[bool] = False,
) -> list[int]:
    """Positions of the rows of a view in sorted order.

    The rows are sorted based on the keys in the order they are provided,
    each key can be sorted in ascending or descending order.

    The sort is stable, rows with equal keys keep their relative order,
    and missing values always come last regardless of the direction.

    :param view: The view whose rows have to be sorted.
    :param keys: The fields to sort by in the order they should be sorted.
    :param descending: If each field should be sorted in a descending order,
                       a single boolean applies to all the keys.
    """
    if isinstance(descending, bool):
        descending = [descending] * len(keys)
    if len(keys) != len(descending):
        raise ValueError("Keys and descending must have the same length")
    if not keys:
        raise ValueError("At least one sort key is required")

    # Keys get positional names, labels might not be valid
    # or unique once FieldIdents are involved.
    table = pa.table({f"key{idx}": view.column(key) for idx, key in enumerate(keys)})
    sorting = [
        (f"key{idx}", "descending" if desc else "ascending")
        for idx, desc in enumerate(descending)
    ]
    log.debug("Sorting %d rows by %s", table.num_rows, list(zip(map(str, keys), descending)))
    return pc.sort_indices(table, sort_keys=sorting, null_placement="at_end").to_pylist()
