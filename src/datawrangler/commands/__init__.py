"""Shell commands exposing datawrangler functionalities.

This module contains the shell commands that can be used to interact with datawrangler.

Preview
=======

``wrangle-preview`` loads a CSV file, optionally transforms it and prints the result::

    wrangle-preview sales.csv --where "Quantity>=8" --select Product Quantity --sort Quantity

It can also group the rows and compute aggregations, each aggregation
is provided as ``field:reduction``::

    wrangle-preview sales.csv --group-by Product --agg Quantity:sum --agg Price:mean
"""
