"""Base classes for expressions evaluated by the compute engine.

Filters and computed columns are described by expressions,
which are evaluated column by column against a
:class:`datawrangler.compute.View` (or any object exposing
a ``column(name)`` method that returns an Arrow array,
like :class:`pyarrow.RecordBatch`).
"""

import abc
from typing import Any, Protocol

import pyarrow as pa


class ColumnSource(Protocol):
    """Anything expressions can be applied to."""

    def column(self, name: str) -> pa.Array: ...


class Expression(abc.ABC):
    """Expression to apply to the columns of a view.

    Expressions are some form of operation that
    has to be applied to the data of a view
    to create new data.

    Typical example of expressions are: A + B
    which is expected to sum column A of the view
    to column B of the view and return the result.

    As our engine is Column Major, applying an expression
    always results in a new column, thus in a
    :class:`pyarrow.Array` that contains the data
    for that column.
    """

    @abc.abstractmethod
    def apply(self, batch: ColumnSource) -> pa.Array | pa.Scalar:
        """Apply the expression to a view or record batch.

        Expression classes must implement this method
        to dictate what will happen when an expression
        is applied.
        """
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human readable representation of the expression."""
        ...

    def columns(self) -> set[str]:
        """Names of the columns the expression reads."""
        return set()


class ColumnRef(Expression):
    """References a column of a view.

    When another expression or the engine need
    to operate on a specific column, we will
    need a way to reference that column and its data.

    This expression is aware of the column and when
    applied to a view returns the data for that column,
    with nulls in place of the missing values.
    """

    def __init__(self, name: str) -> None:
        """
        :param name: The label of the column being referenced.
        """
        self.name = name

    def apply(self, batch: ColumnSource) -> pa.Array:
        """Get the data for the column."""
        return batch.column(self.name)

    def columns(self) -> set[str]:
        return {self.name}

    def __str__(self) -> str:
        return f"ColumnRef({self.name})"


class Literal(Expression):
    """A constant value, the same for every row."""

    def __init__(self, value: Any) -> None:
        """
        :param value: The python value or a :class:`pyarrow.Scalar`.
        """
        if not isinstance(value, pa.Scalar):
            value = pa.scalar(value)
        self.value = value

    def apply(self, batch: ColumnSource) -> pa.Scalar:
        return self.value

    def __str__(self) -> str:
        return f"Literal({self.value.as_py()!r})"


col = ColumnRef
lit = Literal
