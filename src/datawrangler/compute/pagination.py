"""Support limiting or skipping rows of a view.

Given a starting index and a length, only keep
length rows after the starting index is reached.

For example if ``offset=1`` and ``length=1``
only the second row will be kept::

    0: skip because < offset
    1: keep
    2: skip because > length=1 and one row was already kept.

>>> paginate((10, 11, 12, 13), 1, 2)
(11, 12)
>>> paginate((10, 11, 12, 13), 3)
(13,)
"""

from typing import Sequence


def paginate(rows: Sequence[int], offset: int, length: int | None = None) -> tuple[int, ...]:
    """Select one page of rows.

    :param rows: The row indices to paginate.
    :param offset: From which row to take data, first row is 0.
    :param length: How many rows to take after offset was reached,
                   ``None`` takes all the remaining rows.
    """
    if offset < 0:
        raise ValueError(f"Offset must be non-negative, got {offset}")
    if length is not None and length < 0:
        raise ValueError(f"Length must be non-negative, got {length}")

    end = None if length is None else offset + length
    return tuple(rows[offset:end])
