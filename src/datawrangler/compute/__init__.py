"""The datawrangler Compute Engine

The compute engine operates on :class:`View` objects,
projections over the data owned by one or more
:class:`datawrangler.store.Store`. Every operation takes
a view and returns a new view, leaving the original untouched,
which allows to easily build pipelines like::

    (Store)-->view--select-->(View)--filter-->(View)--join-->(View)-->...

Selections, filters, renames, sorting and pagination never copy
data, they only change which fields and rows a view refers to.
Joins and aggregations produce new data, and thus a new store,
and return a view over it.

Filters and computed fields are described by expressions,
the compute engine is tightly bound to Apache Arrow, so any
:mod:`pyarrow.compute` function can be used in expressions:

>>> from datawrangler.store import Store
>>> view = Store.from_columns({
...    "animals": ["Flamingo", "Horse", "Brittle stars", "Centipede"],
...    "n_legs": [2, 4, 5, 100],
... }).view()
>>>
>>> import pyarrow.compute as pc
>>> # SELECT * FROM data WHERE n_legs >= 5
>>> result = view.filter(FunctionCallExpression(pc.greater_equal, col("n_legs"), 5))
>>> for row in result:
...     print(row)
[(FieldIdent(name='animals', dtype=<FieldType.TEXT: 'text'>), 'Brittle stars'), (FieldIdent(name='n_legs', dtype=<FieldType.INTEGER: 'integer'>), 5)]
[(FieldIdent(name='animals', dtype=<FieldType.TEXT: 'text'>), 'Centipede'), (FieldIdent(name='n_legs', dtype=<FieldType.INTEGER: 'integer'>), 100)]
"""

from .aggregate import (
    Aggregation,
    CountAggregation,
    CustomAggregation,
    FirstAggregation,
    GroupBy,
    MaxAggregation,
    MeanAggregation,
    MinAggregation,
    SumAggregation,
    aggregate,
)
from .base import ColumnRef, Expression, Literal, col, lit
from .datasources import CSVDataSource, DataSource, PyArrowTableDataSource, RowsDataSource
from .expressions import (
    FunctionCallExpression,
    and_,
    divide,
    equal,
    greater,
    greater_equal,
    invert,
    is_missing,
    is_present,
    less,
    less_equal,
    not_equal,
    or_,
)
from .join import Join, JoinKind, join, register_key_coercion
from .view import FieldRef, View

__all__ = (
    "View",
    "FieldRef",
    "Expression",
    "ColumnRef",
    "Literal",
    "col",
    "lit",
    "FunctionCallExpression",
    "equal",
    "not_equal",
    "less",
    "less_equal",
    "greater",
    "greater_equal",
    "is_missing",
    "is_present",
    "and_",
    "or_",
    "invert",
    "divide",
    "Join",
    "JoinKind",
    "join",
    "register_key_coercion",
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
    "DataSource",
    "RowsDataSource",
    "PyArrowTableDataSource",
    "CSVDataSource",
)
