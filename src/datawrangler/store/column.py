"""Typed columns with missing values tracking.

A :class:`Column` is the unit of storage of the engine: a sequence of
values all of the same :class:`FieldType`, stored contiguously in an
Arrow array, paired with a dense sequence of booleans that tells
for each position if the value is missing.

The missing mask is kept separate from the values, so that any
type can carry missing values without having to reserve a sentinel
value for them, and so that marking a value as missing doesn't require
rebuilding the underlying Arrow array:

>>> column = Column(FieldType.FLOAT, [10.0, None, 30.0])
>>> column.to_pylist()
[10.0, None, 30.0]
>>> column.set_missing(0)
>>> column.to_pylist()
[None, None, 30.0]

The value stored at a missing position is unspecified and is never
returned, ``None`` is returned in its place.
"""

import logging
import math
from typing import Any, Callable, Iterable, Iterator, Self, Sequence

import pyarrow as pa

from ..errors import RowIndexError, ShapeMismatch, TypeMismatch
from .types import FieldType

log = logging.getLogger(__name__)


class Column:
    """Single-type column of values with a parallel missing mask."""

    def __init__(
        self,
        dtype: FieldType,
        values: Iterable[Any] | pa.Array,
        missing: Sequence[bool] | None = None,
    ) -> None:
        """
        :param dtype: The type of the values in the column.
        :param values: The values, a Python iterable or an Arrow array.
                       ``None`` values are treated as missing.
        :param missing: Optional mask, ``True`` at each missing position.
                        Must have the same length as ``values``.
        """
        self.dtype = dtype
        if isinstance(values, pa.ChunkedArray):
            values = values.combine_chunks()
        if not isinstance(values, pa.Array):
            values = list(values)

        if missing is not None:
            missing = [bool(m) for m in missing]
            if len(missing) != len(values):
                raise ShapeMismatch(
                    "Missing mask length doesn't match values",
                    expected=len(values),
                    actual=len(missing),
                )
            if not isinstance(values, pa.Array):
                # Values at missing positions are unspecified,
                # don't let them fail the conversion.
                values = [None if m else v for v, m in zip(values, missing)]

        self._data = self._to_storage(dtype, values)
        if missing is None:
            missing = self._data.is_null().to_pylist()
        else:
            missing = [m or n for m, n in zip(missing, self._data.is_null().to_pylist())]
        self._missing: list[bool] = missing
        self._arrow: pa.Array | None = None

    @classmethod
    def from_arrow(cls, array: pa.Array | pa.ChunkedArray, dtype: FieldType | None = None) -> Self:
        """Build a column from an Arrow array.

        Nulls in the array become missing values.

        :param array: The Arrow array with the data.
        :param dtype: The type of the column, guessed
                      from the Arrow type when not provided.
        """
        if dtype is None:
            dtype = FieldType.from_arrow_type(array.type)
        return cls(dtype, array)

    @staticmethod
    def _to_storage(dtype: FieldType, values: list | pa.Array) -> pa.Array:
        try:
            if isinstance(values, pa.Array):
                if pa.types.is_dictionary(values.type):
                    values = values.dictionary_decode()
                if values.type != dtype.arrow_type:
                    values = values.cast(dtype.arrow_type)
                return values
            if dtype in (FieldType.INTEGER, FieldType.UNSIGNED):
                # Arrow truncates floats converted to integers.
                for value in values:
                    if isinstance(value, float) and not value.is_integer():
                        raise TypeMismatch(f"Unable to store {value!r} as {dtype.value} without losing data")
            return pa.array(values, type=dtype.arrow_type)
        except (pa.ArrowInvalid, pa.ArrowTypeError, pa.ArrowNotImplementedError, OverflowError) as err:
            raise TypeMismatch(f"Unable to store values as {dtype.value}: {err}") from err

    def __len__(self) -> int:
        return len(self._missing)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.to_pylist())

    def __str__(self) -> str:
        return f"Column({self.dtype.value}, rows={len(self)}, missing={self.missing_count})"

    __repr__ = __str__

    @property
    def missing_count(self) -> int:
        return sum(self._missing)

    def _check_row(self, row: int) -> None:
        if not 0 <= row < len(self._missing):
            raise RowIndexError(row, len(self._missing))

    def get(self, row: int) -> Any:
        """Value at ``row`` or ``None`` when it is missing."""
        self._check_row(row)
        if self._missing[row]:
            return None
        return self._data[row].as_py()

    def is_missing(self, row: int) -> bool:
        self._check_row(row)
        return self._missing[row]

    def set_missing(self, row: int) -> None:
        """Mark the value at ``row`` as missing."""
        self._check_row(row)
        self._missing[row] = True
        self._arrow = None

    def missing_mask(self) -> list[bool]:
        """Copy of the missing mask."""
        return list(self._missing)

    def to_arrow(self) -> pa.Array:
        """The column data as an Arrow array with nulls at missing positions.

        The array is computed once and reused until the mask changes.
        """
        if self._arrow is None:
            if sum(self._missing) == self._data.null_count:
                # Nulls in the storage already match the mask.
                self._arrow = self._data
            else:
                self._arrow = pa.array(
                    [None if m else v for v, m in zip(self._data.to_pylist(), self._missing)],
                    type=self._data.type,
                )
        return self._arrow

    def to_pylist(self) -> list[Any]:
        return self.to_arrow().to_pylist()

    def take(self, indices: Sequence[int | None]) -> Self:
        """Gather the values at the given positions in a new column.

        A ``None`` index produces a missing value in the result.
        """
        indices = pa.array(indices, type=pa.int64())
        return self.__class__(self.dtype, self.to_arrow().take(indices))

    def map(self, func: Callable[[Any], Any], dtype: FieldType | None = None) -> Self:
        """Apply a function to each present value, returning a new column.

        Missing positions stay missing and ``func`` is never invoked
        for them. A present position becomes missing when ``func``
        is not defined for its value, which means it raised
        :class:`ArithmeticError` (like a division by zero) or
        :class:`ValueError` (like a math domain error),
        it returned ``None`` or it returned ``NaN``.

        >>> Column(FieldType.INTEGER, [4, None, 0]).map(lambda v: 8 / v).to_pylist()
        [2.0, None, None]

        :param func: The function to apply to each value.
        :param dtype: The type of the resulting column, when omitted
                      it's guessed from the values returned by ``func``,
                      see :meth:`FieldType.infer_values`.
        """
        results: list[Any] = []
        for value, missing in zip(self._data.to_pylist(), self._missing):
            if missing:
                results.append(None)
                continue
            try:
                result = func(value)
            except (ArithmeticError, ValueError):
                result = None
            if isinstance(result, float) and math.isnan(result):
                result = None
            results.append(result)

        if dtype is None:
            dtype = FieldType.infer_values(results) or self.dtype
        log.debug("Mapped %s over %d rows into %s", func, len(results), dtype.value)
        return self.__class__(dtype, results)

    def equals(self, other: "Column") -> bool:
        """Same type, same missing positions and same present values."""
        return (
            self.dtype == other.dtype
            and self._missing == other._missing
            and self.to_arrow().equals(other.to_arrow())
        )
