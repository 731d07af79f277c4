"""Errors raised by the datawrangler engine.

All errors inherit from :class:`WranglerError` and from the builtin
exception that best describes them, so that code which already catches
``KeyError`` for a missing field or ``TypeError`` for a wrong type keeps
working.

Missing values are never errors: every operation documents how it
propagates absent values. Errors are reserved for malformed operations,
like referencing a field that doesn't exist or joining columns
that can't be compared.
"""


class WranglerError(Exception):
    """Base class of all the errors raised by datawrangler."""


class ShapeMismatch(WranglerError, ValueError):
    """Length disagreement between data that should be aligned.

    Raised when a column and its missing mask have different lengths,
    or when a column added to a registry doesn't have as many rows as
    the registry has.
    """

    def __init__(self, message: str, expected: int | None = None, actual: int | None = None) -> None:
        if expected is not None and actual is not None:
            message = f"{message}: expected {expected}, got {actual}"
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class SchemaConflict(WranglerError, ValueError):
    """A field with the same identifier already exists."""


class FieldNotFound(WranglerError, KeyError):
    """Referenced a field that doesn't exist."""

    def __init__(self, field: object, available: list | None = None) -> None:
        super().__init__(field)
        self.field = field
        self.available = available or []

    def __str__(self) -> str:
        if self.available:
            names = ", ".join(str(f) for f in self.available)
            return f"Field not found: {self.field} (available: {names})"
        return f"Field not found: {self.field}"


class TypeMismatch(WranglerError, TypeError):
    """Value or field of a type unsupported by the requested operation."""


class KeyTypeMismatch(TypeMismatch):
    """Join keys have types that can't be compared with each other."""


class RowIndexError(WranglerError, IndexError):
    """Row index out of the bounds of a column, store or view."""

    def __init__(self, index: int, length: int) -> None:
        super().__init__(f"Index error: index {index} exceeds data length {length}")
        self.index = index
        self.length = length


class DataSourceError(WranglerError, ValueError):
    """Data that a data source is unable to read, like a malformed CSV file."""
