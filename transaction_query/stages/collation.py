"""
Case folding and customer-name collation shared by both backends.

Text is folded in Python only. The store persists `fold_text(customer_name)`
and `name_sort_key(customer_name)` when rows are written and searches and
orders on those columns, so PostgreSQL's `lower()`, its ctype and its
collations never decide a match or an order.

Names order by the Unicode Collation Algorithm (root collation, via pyuca) on
the case-folded name: accented letters sort next to their base letters and
case never affects the order.
"""

from __future__ import annotations

import unicodedata
from functools import lru_cache
from typing import Optional

from pyuca import Collator

# Fixed-width big-endian weights keep bytes order equal to weight-tuple order,
# in Python and for PostgreSQL bytea alike.
_WEIGHT_BYTES = 3


@lru_cache(maxsize=1)
def _collator() -> Collator:
    return Collator()


def fold_text(value: Optional[str]) -> str:
    """Case-fold and NFC-normalize `value`; None and '' fold to ''."""
    if not value:
        return ""
    return unicodedata.normalize("NFC", value.casefold())


@lru_cache(maxsize=65536)
def name_sort_key(value: Optional[str]) -> bytes:
    """Collation key of a customer name; equal keys mean equal rank."""
    weights = _collator().sort_key(fold_text(value))
    return b"".join(weight.to_bytes(_WEIGHT_BYTES, "big") for weight in weights)


__all__ = ["fold_text", "name_sort_key"]
