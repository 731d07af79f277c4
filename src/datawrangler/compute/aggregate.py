"""Grouping of rows and computation of aggregations.

Frequently when analysing data is necessary
to compute statistics like the min, max, average, etc...
of the data stored in datasets.

The aggregate engine is in charge of grouping the rows
of a view by a set of key fields and computing those
statistics for each group, producing a new Store
with one row for each group.

For example, given the following data::

    city, shop, n_employees
    New York, Shop A, 10
    New York, Shop B, 15
    Los Angeles, Shop C, 8
    Los Angeles, Shop D, 12
    New York, Shop E, 20

We could group by city and compute the sum of the employees
to get::

    city, total_employees
    New York, 45
    Los Angeles, 20

>>> from datawrangler.store import Store
>>> view = Store.from_columns({
...    'city': ['New York', 'New York', 'Los Angeles', 'Los Angeles', 'New York'],
...    'shop': ['Shop A', 'Shop B', 'Shop C', 'Shop D', 'Shop E'],
...    'n_employees': [10, 15, 8, 12, 20],
... }).view()
>>> result = aggregate(view, ["city"], {"total_employees": SumAggregation("n_employees")})
>>> result.to_pydict()
{'city': ['New York', 'Los Angeles'], 'total_employees': [45, 20]}

Groups are emitted in the order in which they are first seen,
rows with missing key values are grouped together.
"""

import abc
import logging
from typing import Any, Callable, Iterable, Mapping, Sequence

import pyarrow as pa
import pyarrow.compute as pc

from ..errors import SchemaConflict, TypeMismatch
from ..store import Column, FieldIdent, FieldRegistry, FieldType, Store
from .view import View

__all__ = (
    "GroupBy",
    "aggregate",
    "Aggregation",
    "CountAggregation",
    "SumAggregation",
    "MeanAggregation",
    "MinAggregation",
    "MaxAggregation",
    "FirstAggregation",
    "CustomAggregation",
)

log = logging.getLogger(__name__)

NUMERIC_TYPES = frozenset(t for t in FieldType if t.is_numeric)
ORDERABLE_TYPES = frozenset(FieldType)


class Aggregation(abc.ABC):
    """Base class for aggregations.

    Every aggregation is expected to implement
    a method to compute its result on the values
    of a single group and to declare which field types it supports.
    """

    #: Name of the reduction, used to build the default output name.
    name = "aggregation"
    #: Field types the aggregation can be computed on.
    types: frozenset[FieldType] = frozenset(FieldType)

    def __init__(self, column: FieldIdent | str) -> None:
        """
        :param column: The field to aggregate.
        """
        self.column = column

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.column})"

    __repr__ = __str__

    @property
    def output_name(self) -> str:
        """Default name of the field holding the result, ``<field>_<reduction>``."""
        column = self.column.name if isinstance(self.column, FieldIdent) else self.column
        return f"{column}_{self.name}"

    def check(self, dtype: FieldType) -> None:
        if dtype not in self.types:
            raise TypeMismatch(f"{self.name} aggregation is not supported on {dtype.value} fields")

    def result_type(self, dtype: FieldType) -> FieldType:
        """The type of the result when aggregating a field of type ``dtype``."""
        return dtype

    @abc.abstractmethod
    def compute(self, values: pa.Array) -> Any:
        """Aggregate the values of a group, missing values are nulls."""
        ...


class SimpleAggregation(Aggregation):
    """Provide a base implementation for aggregations backed by a compute function.

    Arrow compute functions already skip nulls and return a
    null scalar when there is no value left to aggregate,
    which matches how missing values are handled by aggregations.
    """

    @abc.abstractmethod
    def _aggregate(self, data: pa.Array) -> pa.Scalar: ...

    def compute(self, values: pa.Array) -> Any:
        return self._aggregate(values).as_py()


class SumAggregation(SimpleAggregation):
    """Compute the sum of an aggregated field."""

    name = "sum"
    types = NUMERIC_TYPES

    def _aggregate(self, data: pa.Array) -> pa.Scalar:
        return pc.sum(data)

    def compute(self, values: pa.Array) -> Any:
        if not pa.types.is_integer(values.type):
            return super().compute(values)

        # Arrow wraps around on integer overflow.
        present = [v for v in values.to_pylist() if v is not None]
        if not present:
            return None
        total = sum(present)
        try:
            return pa.scalar(total, type=values.type).as_py()
        except (OverflowError, pa.ArrowInvalid) as err:
            raise TypeMismatch(f"Sum {total} doesn't fit in {values.type}") from err


class MeanAggregation(SimpleAggregation):
    """Compute the mean of an aggregated field."""

    name = "mean"
    types = NUMERIC_TYPES

    def result_type(self, dtype: FieldType) -> FieldType:
        return FieldType.FLOAT

    def _aggregate(self, data: pa.Array) -> pa.Scalar:
        return pc.mean(data)


class MinAggregation(SimpleAggregation):
    """Compute the min of an aggregated field."""

    name = "min"
    types = ORDERABLE_TYPES

    def _aggregate(self, data: pa.Array) -> pa.Scalar:
        return pc.min(data)


class MaxAggregation(SimpleAggregation):
    """Compute the max of an aggregated field."""

    name = "max"
    types = ORDERABLE_TYPES

    def _aggregate(self, data: pa.Array) -> pa.Scalar:
        return pc.max(data)


class CountAggregation(SimpleAggregation):
    """Count the present values of an aggregated field."""

    name = "count"

    def result_type(self, dtype: FieldType) -> FieldType:
        return FieldType.INTEGER

    def _aggregate(self, data: pa.Array) -> pa.Scalar:
        return pc.count(data, mode="only_valid")


class FirstAggregation(Aggregation):
    """The first present value of the group."""

    name = "first"

    def compute(self, values: pa.Array) -> Any:
        present = values.drop_null()
        return present[0].as_py() if len(present) else None


class CustomAggregation(Aggregation):
    """Aggregate with a Python function.

    The function receives the list of present values of the group
    and is never invoked for groups where all values are missing.

    >>> from datawrangler.store import Store
    >>> view = Store.from_columns({"k": ["a", "a", "b"], "v": [1, 2, 5]}).view()
    >>> spread = CustomAggregation("v", lambda values: max(values) - min(values), name="spread")
    >>> aggregate(view, ["k"], [spread]).to_pydict()
    {'k': ['a', 'b'], 'v_spread': [1, 0]}
    """

    def __init__(
        self,
        column: FieldIdent | str,
        func: Callable[[list[Any]], Any],
        dtype: FieldType | None = None,
        types: Iterable[FieldType] | None = None,
        name: str = "custom",
    ) -> None:
        """
        :param column: The field to aggregate.
        :param func: The function computing the result from the values of a group.
        :param dtype: The type of the result, guessed from the results when omitted.
        :param types: The field types the function accepts, all of them by default.
        :param name: Name of the reduction.
        """
        super().__init__(column)
        self.func = func
        self.dtype = dtype
        self.name = name
        if types is not None:
            self.types = frozenset(types)

    def result_type(self, dtype: FieldType) -> FieldType:
        return self.dtype or dtype

    def compute(self, values: pa.Array) -> Any:
        present = values.drop_null().to_pylist()
        if not present:
            return None
        return self.func(present)


class GroupBy:
    """Rows of a view partitioned by the values of key fields.

    >>> from datawrangler.store import Store
    >>> view = Store.from_columns({"k": ["b", "a", "b", None]}).view()
    >>> GroupBy(view, ["k"]).groups()
    {('b',): [0, 2], ('a',): [1], (None,): [3]}
    """

    def __init__(self, view: View, keys: Sequence[FieldIdent | str], sort: bool = False) -> None:
        """
        :param view: The view to group.
        :param keys: The fields to group by, no keys means a single group.
        :param sort: Sort the groups by their keys instead of
                     emitting them in order of first occurrence.
        """
        self.view = view
        self.keys = [view.ref(key) for key in keys]
        self.sort = sort

    def __str__(self) -> str:
        return f"GroupBy(keys={[ref.label for ref in self.keys]}, {self.view})"

    def groups(self) -> dict[tuple, list[int]]:
        """Positions of the rows of each group, by key value."""
        if not self.keys:
            return {(): list(range(self.view.nrows))}

        groups: dict[tuple, list[int]] = {}
        columns = [self.view.values(ref.label) for ref in self.keys]
        for pos, key in enumerate(zip(*columns)):
            groups.setdefault(key, []).append(pos)
        return groups

    def aggregate(
        self, aggregations: Sequence[Aggregation] | Mapping[str, Aggregation]
    ) -> View:
        """Compute the aggregations for each group.

        :param aggregations: The aggregations to compute, either a list
                             or a ``{output_name: Aggregation}`` mapping.
        :returns: A view over a new store holding the key fields
                  followed by one field for each aggregation.
        """
        if isinstance(aggregations, Mapping):
            named = list(aggregations.items())
        else:
            named = [(aggr.output_name, aggr) for aggr in aggregations]
        labels = [ref.label for ref in self.keys] + [name for name, _ in named]
        duplicates = sorted({label for label in labels if labels.count(label) > 1})
        if duplicates:
            raise SchemaConflict(f"Duplicate output fields: {duplicates}")

        targets = {}
        for name, aggregation in named:
            ref = self.view.ref(aggregation.column)
            aggregation.check(ref.ident.dtype)
            targets[name] = ref

        groups = self.groups()
        log.debug("Aggregating %d rows in %d groups", self.view.nrows, len(groups))

        registry = FieldRegistry()
        first_rows = [positions[0] for positions in groups.values() if positions]
        for ref in self.keys:
            registry.add_field(ref.view_ident, self.view.field(ref.label).take(first_rows))

        group_indices = [pa.array(positions, type=pa.int64()) for positions in groups.values()]
        for name, aggregation in named:
            ref = targets[name]
            data = self.view.column(ref.label)
            results = [aggregation.compute(data.take(indices)) for indices in group_indices]
            dtype = aggregation.result_type(ref.ident.dtype)
            if isinstance(aggregation, CustomAggregation) and aggregation.dtype is None:
                dtype = FieldType.infer_values(results) or dtype
            registry.add_field(FieldIdent(name, dtype), Column(dtype, results))

        result = Store.from_registry(registry, tag="aggregate").view()
        if self.sort and self.keys:
            result = result.sort_by([ref.label for ref in self.keys])
        return result


def aggregate(
    view: View,
    keys: Sequence[FieldIdent | str],
    aggregations: Sequence[Aggregation] | Mapping[str, Aggregation],
    sort: bool = False,
) -> View:
    """Group the rows of a view and compute aggregations, see :class:`GroupBy`."""
    return GroupBy(view, keys, sort=sort).aggregate(aggregations)
