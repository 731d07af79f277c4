"""Field types and identifiers.

Every field stored by datawrangler has a declared type, picked from
a small set of primitive type tags. The type is fixed when the field
is created and it's verified once, when data enters a column, so that
later operations don't need to check it again for every value.

Each type tag is backed by an Apache Arrow type, which is the format
used to actually store the values in memory:

======================  ===============
FieldType               Arrow storage
======================  ===============
``UNSIGNED``            ``uint64``
``INTEGER``             ``int64``
``FLOAT``               ``float64``
``TEXT``                ``string``
``BOOLEAN``             ``bool``
``CATEGORICAL``         ``string``
======================  ===============

A field is identified by its name *and* its type,
two fields with the same name but different types are different fields:

>>> FieldIdent("id", FieldType.INTEGER) == FieldIdent("id", FieldType.INTEGER)
True
>>> FieldIdent("id", FieldType.INTEGER) == FieldIdent("id", FieldType.TEXT)
False
>>> str(FieldIdent("id", FieldType.INTEGER))
'id: integer'
"""

import enum
import math
from typing import Any, Iterable, NamedTuple

import pyarrow as pa

from ..errors import TypeMismatch

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
UINT64_MAX = 2**64 - 1


class FieldType(enum.Enum):
    """Type tag of a field."""

    UNSIGNED = "unsigned"
    INTEGER = "integer"
    FLOAT = "float"
    TEXT = "text"
    BOOLEAN = "boolean"
    CATEGORICAL = "categorical"

    @property
    def arrow_type(self) -> pa.DataType:
        """The Arrow type used to store values of this type."""
        return _ARROW_TYPES[self]

    @property
    def is_numeric(self) -> bool:
        return self in (FieldType.UNSIGNED, FieldType.INTEGER, FieldType.FLOAT)

    @classmethod
    def from_arrow_type(cls, arrow_type: pa.DataType) -> "FieldType":
        """Guess the FieldType that can store values of an Arrow type.

        >>> FieldType.from_arrow_type(pa.int32())
        <FieldType.INTEGER: 'integer'>
        >>> FieldType.from_arrow_type(pa.dictionary(pa.int32(), pa.string()))
        <FieldType.CATEGORICAL: 'categorical'>
        """
        if pa.types.is_boolean(arrow_type):
            return cls.BOOLEAN
        elif pa.types.is_unsigned_integer(arrow_type):
            return cls.UNSIGNED
        elif pa.types.is_signed_integer(arrow_type):
            return cls.INTEGER
        elif pa.types.is_floating(arrow_type):
            return cls.FLOAT
        elif pa.types.is_string(arrow_type) or pa.types.is_large_string(arrow_type):
            return cls.TEXT
        elif pa.types.is_dictionary(arrow_type):
            return cls.CATEGORICAL
        elif pa.types.is_null(arrow_type):
            # No values at all, like an empty column in a CSV file.
            return cls.TEXT
        raise TypeMismatch(f"Unsupported arrow type: {arrow_type}")

    @classmethod
    def infer(cls, value: Any) -> "FieldType":
        """Guess the FieldType of a Python value.

        >>> FieldType.infer(3.5)
        <FieldType.FLOAT: 'float'>
        """
        # bool is a subclass of int, so it must be checked first.
        if isinstance(value, bool):
            return cls.BOOLEAN
        elif isinstance(value, int):
            return cls.INTEGER
        elif isinstance(value, float):
            return cls.FLOAT
        elif isinstance(value, str):
            return cls.TEXT
        raise TypeMismatch(f"Unable to infer field type for value of type {type(value).__name__}")

    @classmethod
    def infer_values(cls, values: Iterable[Any]) -> "FieldType | None":
        """Guess the FieldType able to store all the present values.

        Integers mixed with floats are stored as floats,
        ``None`` is returned when no value is present:

        >>> FieldType.infer_values([1, None, 2.5])
        <FieldType.FLOAT: 'float'>
        >>> FieldType.infer_values([None]) is None
        True
        """
        found = None
        for value in values:
            if value is None:
                continue
            dtype = cls.infer(value)
            if found is None or found is dtype:
                found = dtype
            elif {found, dtype} == {cls.INTEGER, cls.FLOAT}:
                found = cls.FLOAT
            else:
                raise TypeMismatch(f"Mixed {found.value} and {dtype.value} values")
        return found

    def coerce(self, value: Any) -> Any:
        """Convert a raw value to a value storable in a field of this type.

        ``None`` is the missing marker and is returned as is.
        Strings are parsed the way delimited text usually needs:
        blank strings are missing, integers that fail to parse
        are retried as floats and truncated, negative numbers
        are clamped to 0 for unsigned fields:

        >>> FieldType.INTEGER.coerce("12.7")
        12
        >>> FieldType.UNSIGNED.coerce("-3")
        0
        >>> FieldType.BOOLEAN.coerce("true")
        True
        >>> FieldType.FLOAT.coerce("  ") is None
        True

        Values that can't be converted raise :class:`TypeMismatch`.
        """
        if value is None:
            return None
        if isinstance(value, str):
            if not value.strip():
                return None
            return self._parse(value)

        if self in (FieldType.TEXT, FieldType.CATEGORICAL):
            raise TypeMismatch(f"Expected a string for {self.value} field, got {value!r}")
        elif self is FieldType.BOOLEAN:
            if isinstance(value, bool):
                return value
            raise TypeMismatch(f"Expected a boolean, got {value!r}")
        elif isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeMismatch(f"Expected a number for {self.value} field, got {value!r}")

        if self is FieldType.FLOAT:
            return float(value)
        if isinstance(value, float):
            if not value.is_integer():
                raise TypeMismatch(f"Expected an integer for {self.value} field, got {value!r}")
            value = int(value)
        return self._check_range(value)

    def _parse(self, text: str) -> Any:
        if self in (FieldType.TEXT, FieldType.CATEGORICAL):
            return text

        text = text.strip()
        try:
            if self is FieldType.BOOLEAN:
                if text in ("true", "false"):
                    return text == "true"
                raise ValueError(f"invalid boolean literal {text!r}")
            elif self is FieldType.FLOAT:
                return float(text)

            try:
                parsed = int(text)
            except ValueError:
                number = float(text)
                if not math.isfinite(number):
                    raise
                parsed = int(number)
        except ValueError as err:
            raise TypeMismatch(f"Unable to parse {text!r} as {self.value}") from err
        return self._check_range(parsed)

    def _check_range(self, value: int) -> int:
        if self is FieldType.UNSIGNED:
            value = max(value, 0)
            if value > UINT64_MAX:
                raise TypeMismatch(f"Value {value} out of range for unsigned field")
        elif not INT64_MIN <= value <= INT64_MAX:
            raise TypeMismatch(f"Value {value} out of range for integer field")
        return value


_ARROW_TYPES = {
    FieldType.UNSIGNED: pa.uint64(),
    FieldType.INTEGER: pa.int64(),
    FieldType.FLOAT: pa.float64(),
    FieldType.TEXT: pa.string(),
    FieldType.BOOLEAN: pa.bool_(),
    FieldType.CATEGORICAL: pa.string(),
}


class FieldIdent(NamedTuple):
    """Identifies a field by name and type."""

    name: str
    dtype: FieldType

    def __str__(self) -> str:
        return f"{self.name}: {self.dtype.value}"

    def renamed(self, name: str) -> "FieldIdent":
        """Same type, different name."""
        return FieldIdent(name, self.dtype)
