"""Expressions executed by the compute engine.

The Compute Engine will sometimes need to filter data
or emit new data. Filters will need a ``predicate``, so an
expression that returns ``true`` or ``false`` for each row
that has to be filtered. Computed columns will need an
expression that computes the rows for the new column,
for example ``A + B``.

Any :mod:`pyarrow.compute` function can be invoked through
:class:`FunctionCallExpression`, Arrow propagates nulls (our missing values)
through arithmetic, so ``A + B`` is missing whenever one of the two is.

Comparisons are a bit more subtle, as Arrow returns null
when comparing a missing value. This module provides comparison
functions that always return ``true`` or ``false`` following
the rule that a missing value is unequal to everything
and is neither smaller nor greater than anything:

>>> import pyarrow as pa
>>> values = pa.array([1, None, 3])
>>> equal(values, 3).to_pylist()
[False, False, True]
>>> not_equal(values, 3).to_pylist()
[True, True, False]
>>> greater(values, 1).to_pylist()
[False, False, True]

Division by zero, which Arrow reports as an error for integers,
produces a missing value instead:

>>> divide(pa.array([4.0, 2.0]), pa.array([2.0, 0.0])).to_pylist()
[2.0, None]
"""

from typing import Any, Callable

import pyarrow as pa
import pyarrow.compute as pc

from .. import utils
from .base import ColumnSource, Expression

ArrowData = pa.Array | pa.ChunkedArray | pa.Scalar


def apply_expression_if_needed(batch: ColumnSource, o: Expression | Any) -> Any:
    """Invoke Apply on expressions when needed

    If the provided object is an Expression,
    it will be applied to the target view.

    Otherwise it will treat it as if it's
    already the result of an expression
    or a literal value.

    This allows us to apply all arguments
    we receive without having to care if
    they are the data we need or if they
    are the expression resulting in that data.
    """
    if isinstance(o, Expression):
        o = o.apply(batch)
    return o


class FunctionCallExpression(Expression):
    """Call a compute function on its arguments.

    Given a compute function, and a set of arguments
    (other expressions, literals or data), execute
    the function on the provided arguments and return
    the resulting data.

    For example to sum two columns this would be used as::

        FunctionCallExpression(pyarrow.compute.add, ColumnRef("A"), ColumnRef("B"))
    """

    def __init__(self, func: Callable[..., ArrowData], *args: Expression | Any) -> None:
        """
        :param func: The function accepting the arguments.
        :param *args: The arguments for the function.
        """
        self.func = func
        self.args = args

    def __str__(self) -> str:
        func_qualname = utils.inspect.get_qualname(self.func)
        return f"{func_qualname}({','.join(map(str, self.args))})"

    def columns(self) -> set[str]:
        names: set[str] = set()
        for arg in self.args:
            if isinstance(arg, Expression):
                names |= arg.columns()
        return names

    def apply(self, batch: ColumnSource) -> ArrowData:
        """Invoke the function resolving all arguments on the view.

        When the function arguments are expressions themselves,
        this will apply the expressions on the provided view
        and the resulting data will be used as the arguments for the
        function.
        """
        args = tuple(apply_expression_if_needed(batch, arg) for arg in self.args)
        return self.func(*args)


def equal(left: ArrowData, right: Any) -> ArrowData:
    """``left == right``, false when either side is missing."""
    return pc.fill_null(pc.equal(left, right), False)


def not_equal(left: ArrowData, right: Any) -> ArrowData:
    """``left != right``, true when either side is missing."""
    return pc.fill_null(pc.not_equal(left, right), True)


def less(left: ArrowData, right: Any) -> ArrowData:
    return pc.fill_null(pc.less(left, right), False)


def less_equal(left: ArrowData, right: Any) -> ArrowData:
    return pc.fill_null(pc.less_equal(left, right), False)


def greater(left: ArrowData, right: Any) -> ArrowData:
    return pc.fill_null(pc.greater(left, right), False)


def greater_equal(left: ArrowData, right: Any) -> ArrowData:
    return pc.fill_null(pc.greater_equal(left, right), False)


def is_missing(values: ArrowData) -> ArrowData:
    return pc.is_null(values)


def is_present(values: ArrowData) -> ArrowData:
    return pc.is_valid(values)


def and_(left: ArrowData, right: ArrowData) -> ArrowData:
    return pc.fill_null(pc.and_kleene(left, right), False)


def or_(left: ArrowData, right: ArrowData) -> ArrowData:
    return pc.fill_null(pc.or_kleene(left, right), False)


def invert(values: ArrowData) -> ArrowData:
    return pc.fill_null(pc.invert(values), False)


def divide(left: ArrowData, right: Any) -> ArrowData:
    """``left / right``, missing where ``right`` is zero."""
    if not isinstance(right, (pa.Array, pa.ChunkedArray, pa.Scalar)):
        right = pa.scalar(right)
    right = pc.if_else(pc.equal(right, 0), pa.scalar(None, type=right.type), right)
    return pc.divide(left, right)
