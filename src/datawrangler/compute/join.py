"""Alignment of two views on key fields.

The join operations are implemented with a hash join:
a hash table is built from the keys of the smaller of the two views
and then probed with the keys of the other view to find matching rows.

Inner Join
==========

Only the rows that have a match on both sides are kept,
each left row followed by its matches in the order of the right view:

>>> from datawrangler.store import Store
>>> left = Store.from_columns({"id": [1, 2, 3], "name": ["Alice", "Bob", "Charlie"]}).view()
>>> right = Store.from_columns({"id": [3, 2], "age": [25, 30]}).view()
>>> join(left, right, "id").to_pydict()
{'id': [2, 3], 'name': ['Bob', 'Charlie'], 'age': [30, 25]}

Outer Joins
===========

Left, right and outer joins also keep the rows that have no
match on the other side, whose fields will read as missing.
Outer joins emit the left rows first and then the
right rows that had no match:

>>> join(left, right, "id", how="outer").to_pydict()
{'id': [1, 2, 3], 'name': ['Alice', 'Bob', 'Charlie'], 'age': [None, 30, 25]}

Comparison Joins
================

Inner joins can also match rows whose keys compare in a given way,
``<``, ``<=``, ``>`` or ``>=``, instead of being equal.
Both sides are sorted by key and merged, like in a sort-merge join,
so the rows of the result come in key order:

>>> starts = Store.from_columns({"start": [5, 1]}).view()
>>> ends = Store.from_columns({"end": [6, 3]}).view()
>>> join(starts, ends, ("start", "end"), op="<").to_pydict()
{'start': [1, 1, 5], 'end': [3, 6, 6]}

The joined data is not copied into a single table, each side
is stored in its own registry together with the rows of the
result where it has data, and the store fills in the gaps.
When both sides have a key with the same label, the key is emitted
only once, while any other field present on both sides
is qualified with the name of its side, ``left.<label>`` and ``right.<label>``.
"""

import bisect
import enum
import logging
from typing import Any, Sequence

from ..errors import KeyTypeMismatch
from ..store import Column, FieldIdent, FieldRegistry, FieldType, Store
from . import sorting
from .view import FieldRef, View

log = logging.getLogger(__name__)

_KEY_COERCIONS: dict[frozenset[FieldType], FieldType] = {}


def register_key_coercion(a: FieldType, b: FieldType, common: FieldType | None = None) -> None:
    """Allow joining keys of type ``a`` with keys of type ``b``.

    The two types must have the same Python representation
    for their values, so that equal values compare equal.

    When the key is emitted only once in the result,
    it's stored as ``common``, which defaults to ``a``.
    """
    _KEY_COERCIONS[frozenset((a, b))] = common or a


def keys_compatible(a: FieldType, b: FieldType) -> bool:
    return a == b or frozenset((a, b)) in _KEY_COERCIONS


def key_type(a: FieldType, b: FieldType) -> FieldType:
    """The type able to store the keys of both sides.

    >>> key_type(FieldType.UNSIGNED, FieldType.INTEGER)
    <FieldType.INTEGER: 'integer'>
    """
    if a == b:
        return a
    try:
        return _KEY_COERCIONS[frozenset((a, b))]
    except KeyError:
        raise KeyTypeMismatch(f"Can't join {a.value} keys with {b.value} keys") from None


register_key_coercion(FieldType.INTEGER, FieldType.UNSIGNED)
register_key_coercion(FieldType.TEXT, FieldType.CATEGORICAL)

OPERATORS = ("==", "<", "<=", ">", ">=")


class JoinKind(enum.Enum):
    """Which rows without a match are kept."""

    INNER = "inner"
    LEFT = "left"
    RIGHT = "right"
    OUTER = "outer"


class Join:
    """Join two views on one or more key fields.

    Supposing we have two views::

        left:                   right:
        +----+--------+         +----+-----+
        | id | name   |         | id | age |
        +----+--------+         +----+-----+
        | 1  | Alice  |         | 3  | 25  |
        | 2  | Bob    |         | 2  | 30  |
        | 3  | Charlie|         +----+-----+
        +----+--------+

    We would perform the following steps:

    1. Build a hash table from the keys of the smaller view,
       right in this case, pointing to the positions with that key::

        {3: [0], 2: [1]}

    2. Probe the hash table with the keys of the other view to find,
       for each left row, the matching right rows::

        1 -> []
        2 -> [1]
        3 -> [0]

    3. Depending on the kind of join, emit the ``(left, right)`` pairs
       of positions, with ``None`` on the side that has no match::

        inner: (1, 1), (2, 0)
        left:  (0, None), (1, 1), (2, 0)

    4. Gather the fields of each side at the positions of the pairs
       and store them in a new store, one registry per side.

    Keys where any of the fields is missing never match,
    and keys that appear multiple times produce all the combinations
    of the matching rows.
    """

    QUALIFIERS = ("left", "right")

    def __init__(
        self,
        left: View,
        right: View,
        on: str | tuple[str, str] | Sequence[str | tuple[str, str]],
        how: JoinKind | str = JoinKind.INNER,
        qualifiers: tuple[str, str] | None = None,
        op: str = "==",
    ) -> None:
        """
        :param left: The left view to join.
        :param right: The right view to join.
        :param on: The keys to join on, a label present on both sides,
                   a ``(left_label, right_label)`` pair or a list of them.
        :param how: The kind of join, see :class:`JoinKind`.
        :param qualifiers: Prefixes for the fields present on both sides,
                           defaults to :attr:`QUALIFIERS`.
        :param op: How the left key compares to the right key for
                   two rows to match, one of :data:`OPERATORS`.
                   Comparisons other than ``==`` require a single key
                   and an inner join.
        """
        self.left = left
        self.right = right
        self.how = JoinKind(how)
        self.qualifiers = qualifiers or self.QUALIFIERS
        if op not in OPERATORS:
            raise ValueError(f"Unsupported join operator {op!r}, expected one of {OPERATORS}")
        self.op = op

        if isinstance(on, (str, tuple)):
            on = [on]
        self.on: list[tuple[FieldRef, FieldRef]] = []
        for key in on:
            left_key, right_key = (key, key) if isinstance(key, str) else key
            lref, rref = left.ref(left_key), right.ref(right_key)
            if not keys_compatible(lref.ident.dtype, rref.ident.dtype):
                raise KeyTypeMismatch(
                    f"Can't join {lref.label} of type {lref.ident.dtype.value} "
                    f"with {rref.label} of type {rref.ident.dtype.value}"
                )
            self.on.append((lref, rref))
        if not self.on:
            raise ValueError("At least one join key is required")
        if op != "==" and (len(self.on) != 1 or self.how is not JoinKind.INNER):
            raise ValueError(f"Joins on {op} support a single key and inner joins only")

    def __str__(self) -> str:
        keys = [(lref.label, rref.label) for lref, rref in self.on]
        return f"Join(how={self.how.value}, on={keys}, op={self.op}, left={self.left}, right={self.right})"

    @staticmethod
    def _keys(view: View, refs: list[FieldRef]) -> list[tuple | None]:
        """The key of each row, ``None`` when any of its fields is missing."""
        columns = [view.values(ref.label) for ref in refs]
        return [None if None in key else key for key in zip(*columns)]

    @staticmethod
    def _sorted_keys(view: View, ref: FieldRef) -> tuple[list[int], list[Any]]:
        """Positions with a present key, sorted by key, and their keys."""
        values = view.values(ref.label)
        positions = [pos for pos in sorting.sort_positions(view, [ref.label]) if values[pos] is not None]
        return positions, [values[pos] for pos in positions]

    def _match_ordered(self) -> list[tuple[int | None, int | None]]:
        """Match the rows comparing their keys in order, like a sort-merge join.

        Both sides are sorted by key, rows with a missing key never match.
        For ``<`` and ``<=`` each left row, in key order, is followed
        by the right rows it matches, in key order.
        For ``>`` each right row, in key order, is followed by the
        left rows it matches. For ``>=`` the right rows sharing
        the same key are emitted together for each matching left row.
        """
        ((lref, rref),) = self.on
        lorder, lkeys = self._sorted_keys(self.left, lref)
        rorder, rkeys = self._sorted_keys(self.right, rref)

        pairs: list[tuple[int | None, int | None]] = []
        if self.op in ("<", "<="):
            search = bisect.bisect_right if self.op == "<" else bisect.bisect_left
            for lpos, key in zip(lorder, lkeys):
                pairs.extend((lpos, rpos) for rpos in rorder[search(rkeys, key):])
        elif self.op == ">":
            for rpos, key in zip(rorder, rkeys):
                pairs.extend((lpos, rpos) for lpos in lorder[bisect.bisect_right(lkeys, key):])
        else:
            start = 0
            while start < len(rorder):
                end = bisect.bisect_right(rkeys, rkeys[start], start)
                group = rorder[start:end]
                for lpos in lorder[bisect.bisect_left(lkeys, rkeys[start]):]:
                    pairs.extend((lpos, rpos) for rpos in group)
                start = end
        return pairs

    def match(self) -> list[tuple[int | None, int | None]]:
        """Compute the ``(left, right)`` positions of the rows of the result."""
        if self.op != "==":
            return self._match_ordered()

        left_keys = self._keys(self.left, [lref for lref, _ in self.on])
        right_keys = self._keys(self.right, [rref for _, rref in self.on])

        # For each left position, the matching right positions in right order.
        matches: list[list[int]]
        if len(left_keys) <= len(right_keys):
            table: dict[tuple, list[int]] = {}
            for lpos, key in enumerate(left_keys):
                if key is not None:
                    table.setdefault(key, []).append(lpos)
            matches = [[] for _ in left_keys]
            for rpos, key in enumerate(right_keys):
                for lpos in table.get(key, ()) if key is not None else ():
                    matches[lpos].append(rpos)
        else:
            table = {}
            for rpos, key in enumerate(right_keys):
                if key is not None:
                    table.setdefault(key, []).append(rpos)
            matches = [table.get(key, []) if key is not None else [] for key in left_keys]

        pairs: list[tuple[int | None, int | None]] = []
        if self.how is JoinKind.RIGHT:
            right_matches: list[list[int]] = [[] for _ in right_keys]
            for lpos, rpositions in enumerate(matches):
                for rpos in rpositions:
                    right_matches[rpos].append(lpos)
            for rpos, lpositions in enumerate(right_matches):
                if lpositions:
                    pairs.extend((lpos, rpos) for lpos in lpositions)
                else:
                    pairs.append((None, rpos))
            return pairs

        keep_unmatched = self.how in (JoinKind.LEFT, JoinKind.OUTER)
        for lpos, rpositions in enumerate(matches):
            if rpositions:
                pairs.extend((lpos, rpos) for rpos in rpositions)
            elif keep_unmatched:
                pairs.append((lpos, None))

        if self.how is JoinKind.OUTER:
            matched = {rpos for rpositions in matches for rpos in rpositions}
            pairs.extend((None, rpos) for rpos in range(len(right_keys)) if rpos not in matched)
        return pairs

    def execute(self) -> View:
        """Perform the join and return a view over the resulting store."""
        pairs = self.match()
        log.debug(
            "%s join of %d and %d rows produced %d rows",
            self.how.value, self.left.nrows, self.right.nrows, len(pairs),
        )

        # Keys with the same label on both sides are emitted only once.
        coalesced = {
            lref.label: rref for lref, rref in self.on
            if lref.label == rref.label and self.op == "=="
        }
        right_fields = [ref for ref in self.right.fields if ref.label not in coalesced]
        collisions = {ref.label for ref in self.left.fields} & {ref.label for ref in right_fields}
        left_qualifier, right_qualifier = self.qualifiers

        def output_label(ref: FieldRef, qualifier: str) -> str:
            if ref.label in collisions:
                return f"{qualifier}.{ref.label}"
            return ref.label

        store = Store(nrows=len(pairs))
        fields: list[FieldRef] = []

        keys = FieldRegistry()
        for label, rref in coalesced.items():
            lref = self.left.ref(label)
            lvalues = self.left._take(lref, [lpos for lpos, _ in pairs])
            rvalues = self.right._take(rref, [rpos for _, rpos in pairs])
            values = [
                rvalues.get(idx) if lpos is None else lvalues.get(idx)
                for idx, (lpos, _) in enumerate(pairs)
            ]
            dtype = key_type(lref.ident.dtype, rref.ident.dtype)
            keys.add_field(FieldIdent(label, dtype), Column(dtype, values))
        if len(keys):
            store.insert_registry(keys, tag="keys")
        key_refs = {ident.name: FieldRef(store, ident, ident.name) for ident in keys}

        for side, view, side_fields, qualifier in (
            (0, self.left, self.left.fields, left_qualifier),
            (1, self.right, right_fields, right_qualifier),
        ):
            remap = [idx for idx, pair in enumerate(pairs) if pair[side] is not None]
            positions = [pairs[idx][side] for idx in remap]
            registry = FieldRegistry()
            for ref in side_fields:
                if ref.label in key_refs and side == 0:
                    fields.append(key_refs[ref.label])
                    continue
                ident = FieldIdent(output_label(ref, qualifier), ref.ident.dtype)
                registry.add_field(ident, view._take(ref, positions))
                fields.append(FieldRef(store, ident, ident.name))
            if len(registry):
                store.insert_registry(registry, tag=qualifier, remap=remap)

        return View(fields, range(len(pairs)))


def join(
    left: View,
    right: View,
    on: Any,
    how: JoinKind | str = JoinKind.INNER,
    qualifiers: tuple[str, str] | None = None,
    op: str = "==",
) -> View:
    """Join two views, see :class:`Join` for the details."""
    return Join(left, right, on, how=how, qualifiers=qualifiers, op=op).execute()
