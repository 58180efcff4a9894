"""
Aggregate stage: statistics over a whole filtered population.

Runs on the output of search + filter, never on a sorted or paginated slice,
so the figures do not depend on page size.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Sequence

from transaction_query.domain.models import AggregateStats, StatisticsSummary, Transaction

CENT = Decimal("0.01")
ZERO = Decimal(0)


def gross_amount(record: Transaction) -> Decimal:
    """totalAmount, falling back to finalAmount, falling back to zero."""
    if record.total_amount is not None:
        return record.total_amount
    return record.final_amount if record.final_amount is not None else ZERO


def net_amount(record: Transaction) -> Decimal:
    """finalAmount, falling back to totalAmount, falling back to zero."""
    if record.final_amount is not None:
        return record.final_amount
    return record.total_amount if record.total_amount is not None else ZERO


def aggregate_records(records: Iterable[Transaction]) -> AggregateStats:
    """
    Sum units, gross amount and discount, and count records.

    A record missing one of the amounts contributes no discount.
    """
    units = 0
    gross = ZERO
    discount = ZERO
    count = 0
    for record in records:
        units += record.quantity
        gross += gross_amount(record)
        discount += gross_amount(record) - net_amount(record)
        count += 1
    return AggregateStats(
        total_units=units,
        total_amount=gross,
        total_discount=discount,
        record_count=count,
    )


def average_order_value(revenue: Decimal, count: int) -> Decimal:
    if count == 0:
        return ZERO
    return (revenue / count).quantize(CENT)


def summarize_records(records: Sequence[Transaction]) -> StatisticsSummary:
    """Dataset-wide statistics: counts, distinct customers/products, order values."""
    if not records:
        return StatisticsSummary()
    order_values = [net_amount(record) for record in records]
    revenue = sum(order_values, ZERO)
    customers = {record.customer_id for record in records if record.customer_id is not None}
    products = {record.product_id for record in records if record.product_id is not None}
    lowest = min(order_values)
    highest = max(order_values)
    return StatisticsSummary(
        total_transactions=len(records),
        unique_customers=len(customers),
        unique_products=len(products),
        total_revenue=revenue,
        average_order_value=average_order_value(revenue, len(records)),
        min_order_value=lowest,
        max_order_value=highest,
    )


__all__ = [
    "gross_amount",
    "net_amount",
    "aggregate_records",
    "average_order_value",
    "summarize_records",
]
