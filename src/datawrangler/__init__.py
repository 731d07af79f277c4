"""datawrangler

A typed, columnar data wrangling engine.

Data is loaded into stores, which own typed columns where any value
can be missing, and is then transformed through views: lightweight
projections that select fields and rows of one or more stores
without copying their data.

The engine is constituted by multiple components, each isolated within its own
package and each self documented in literate programming style.

The primary components are:

* The Store, in charge of owning the data, see :mod:`datawrangler.store`.
* The Compute Engine, providing views, joins and aggregations on the data,
  see :mod:`datawrangler.compute`.

For the user guide and code documentation of each component, refer to the
component itself.

The library logs through the standard :mod:`logging` module under the
``datawrangler`` logger and doesn't configure any handler on its own.
"""

import logging

from . import compute, errors, store

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = ("compute", "errors", "store")
