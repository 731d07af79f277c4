"""Format the rows of a view into a text table for print.

The `tabulate` function takes a :class:`datawrangler.compute.View` and formats it into a text table.
It will truncate long strings, format floats to 2 decimal places, show missing values as ``NA``
and limit the number of rows to display.

Example:

    >>> from datawrangler.store import Store
    >>> view = Store.from_columns({
    ...     "Product": ["Videogame", "Laptop", "Laptop"],
    ...     "Quantity": [8, None, 7],
    ...     "Price": [66.5, 38.72, 77.46],
    ... }).view()
    >>> print(tabulate(view))
    Product   | Quantity | Price
    --------- | -------- | -----
    Videogame | 8        | 66.50
    Laptop    | NA       | 38.72
    Laptop    | 7        | 77.46
"""

from typing import Any

MISSING = "NA"


def tabulate(view: Any, max_rows: int = 20) -> str:
    """Format a View into a text table.

    Will produce a string like::

        Product   | Quantity | Price | Total
        --------- | -------- | ----- | ------
        Videogame | 8        | 66.50 | 532.00
        Laptop    | NA       | 38.72 | NA
        Laptop    | 7        | 77.46 | 542.22
    """
    cols = view.labels
    rows = [
        [format_value(value) for _, value in row]
        for row in view.head(max_rows)
    ]

    colsizes = compute_max_colsize(cols, rows)
    header = [maketablerow(cols, colsizes=colsizes)]
    separator = [maketablerow(["-"] * len(cols), colsizes=colsizes, fillvalue="-")]
    textrows = [maketablerow(row, colsizes=colsizes) for row in rows]

    table = "\n".join(header + separator + textrows)
    if view.nrows > max_rows:
        table += f"\n... and {view.nrows - max_rows} more rows"
    return table


def compute_max_colsize(cols: list[str], rows: list[list[str]]) -> list[int]:
    """Compute the maximum size of each column in a table."""
    return [
        max([len(row[colidx]) for row in rows] + [len(cols[colidx])])
        for colidx, _ in enumerate(cols)
    ]


def maketablerow(cols: list[str], colsizes: list[int], fillvalue: str = " ") -> str:
    """Make a table row with the given column sizes."""
    return " | ".join(
        [col.ljust(colsizes[idx], fillvalue) for idx, col in enumerate(cols)]
    )


def format_value(v: Any) -> str:
    """Format a value to be printed in the table.

    This function will format floats to 2 decimal places,
    show missing values as ``NA`` and truncate long strings.
    """
    if v is None:
        return MISSING
    elif isinstance(v, float):
        return f"{v:.2f}"
    elif isinstance(v, bool):
        return "true" if v else "false"

    v = str(v)
    if len(v) > 30:
        v = v[:27] + "..."
    return v
