"""
Sort stage: stable ordering by date, quantity or customer name.

Python's sort is stable in both directions (`reverse=True` keeps equal keys in
input order), so records with equal keys keep their snapshot order. The store
backend reproduces this with a trailing `seq ASC` tie-break.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List

from transaction_query.domain.models import Transaction
from transaction_query.domain.request import DEFAULT_SORT_ORDERS, SortField, SortOrder
from transaction_query.stages.collation import name_sort_key


def _date_key(record: Transaction) -> datetime:
    return record.date


def _quantity_key(record: Transaction) -> int:
    return record.quantity or 0


def _name_key(record: Transaction) -> bytes:
    # The store orders by the same key, persisted as customer_name_sort_key.
    return name_sort_key(record.customer_name)


SORT_KEYS: Dict[SortField, Callable[[Transaction], Any]] = {
    SortField.DATE: _date_key,
    SortField.QUANTITY: _quantity_key,
    SortField.CUSTOMER_NAME: _name_key,
}


def sort_records(
    records: Iterable[Transaction],
    field: Any = SortField.DATE,
    order: Any = None,
) -> List[Transaction]:
    """
    Return a new list of `records` ordered by `field`.

    An unsupported field keeps input order. A missing or unknown order falls
    back to the field's default (date: newest first, others ascending).
    """
    try:
        sort_field = SortField(field)
    except ValueError:
        return list(records)
    try:
        sort_order = SortOrder(order)
    except ValueError:
        sort_order = DEFAULT_SORT_ORDERS[sort_field]
    return sorted(
        records,
        key=SORT_KEYS[sort_field],
        reverse=sort_order is SortOrder.DESC,
    )


__all__ = ["SORT_KEYS", "sort_records"]
