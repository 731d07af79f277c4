"""Command line interface for previewing and wrangling CSV files.

This module provides a command line interface that loads a CSV file
through :class:`datawrangler.compute.CSVDataSource`, applies filters,
projections, aggregations and sorting to the resulting view
and prints it to the console in a tabular format
using the :mod:`datawrangler.utils.tabulate` module.

Operations are applied in a fixed order: filter, group and aggregate,
select, sort and finally the rows are limited.
"""

import argparse
import logging
import re
from typing import Sequence

from datawrangler.compute import (
    CountAggregation,
    CSVDataSource,
    FirstAggregation,
    FunctionCallExpression,
    MaxAggregation,
    MeanAggregation,
    MinAggregation,
    SumAggregation,
    View,
    col,
    equal,
    greater,
    greater_equal,
    less,
    less_equal,
    not_equal,
)
from datawrangler.errors import WranglerError
from datawrangler.utils import tabulate

log = logging.getLogger("datawrangler.commands.preview")

AGGREGATIONS = {
    "count": CountAggregation,
    "sum": SumAggregation,
    "mean": MeanAggregation,
    "min": MinAggregation,
    "max": MaxAggregation,
    "first": FirstAggregation,
}

COMPARISONS = {
    ">=": greater_equal,
    "<=": less_equal,
    "!=": not_equal,
    "==": equal,
    "=": equal,
    ">": greater,
    "<": less,
}

CONDITION_RE = re.compile(r"^\s*(?P<field>[^<>=!]+?)\s*(?P<op>>=|<=|!=|==|=|>|<)\s*(?P<value>.*?)\s*$")


class InvalidArgument(WranglerError, ValueError):
    """A command line argument that can't be understood."""


def parse_condition(view: View, condition: str) -> FunctionCallExpression:
    """Parse a ``field<op>value`` condition into a filter expression.

    The value is coerced to the type of the field.
    """
    match = CONDITION_RE.match(condition)
    if match is None:
        raise InvalidArgument(f"Invalid condition: {condition!r}, expected field<op>value")
    ref = view.ref(match["field"])
    value = ref.ident.dtype.coerce(match["value"])
    return FunctionCallExpression(COMPARISONS[match["op"]], col(ref.label), value)


def parse_aggregation(text: str) -> tuple[str, type]:
    field, sep, reduction = text.rpartition(":")
    if not sep or not field:
        raise InvalidArgument(f"Invalid aggregation: {text!r}, expected field:reduction")
    if reduction not in AGGREGATIONS:
        raise InvalidArgument(
            f"Unknown reduction {reduction!r}, available: {', '.join(AGGREGATIONS)}"
        )
    return field, AGGREGATIONS[reduction]


def wrangle(view: View, args: argparse.Namespace) -> View:
    """Apply the operations requested on the command line to a view."""
    for condition in args.where or ():
        view = view.filter(parse_condition(view, condition))
    if args.group_by or args.agg:
        aggregations = [cls(field) for field, cls in map(parse_aggregation, args.agg or ())]
        view = view.aggregate(args.group_by or [], aggregations)
    if args.select:
        view = view.select(args.select)
    if args.sort:
        view = view.sort_by(args.sort, descending=args.desc)
    return view


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Preview and wrangle the content of a CSV file.")
    parser.add_argument("filename", type=str, help="The CSV file to load.")
    parser.add_argument("--select", nargs="+", help="The fields to show, in order.")
    parser.add_argument(
        "--where",
        action="append",
        help="Only keep rows matching a field<op>value condition. Can be provided multiple times.",
    )
    parser.add_argument("--group-by", nargs="+", help="The fields to group rows by.")
    parser.add_argument(
        "--agg",
        action="append",
        help="An aggregation to compute as field:reduction. Can be provided multiple times.",
    )
    parser.add_argument("--sort", nargs="+", help="The fields to sort by.")
    parser.add_argument("--desc", action="store_true", help="Sort in descending order.")
    parser.add_argument("--rows", type=int, default=20, help="How many rows to show.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Parse the command line arguments and print the wrangled data."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    source = CSVDataSource(args.filename)
    try:
        view = wrangle(source.view(), args)
    except (WranglerError, OSError) as e:
        log.debug("Failed to process %s", source, exc_info=True)
        print(f"Error: {e}")
        return 1

    print(tabulate.tabulate(view, max_rows=args.rows))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
