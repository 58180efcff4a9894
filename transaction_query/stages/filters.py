"""
Filter stage: structured multi-select and range constraints.

Each present criterion is applied independently; a record survives only if it
satisfies all of them. Within a multi-select field any listed value matches.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, List, Optional, Union

from transaction_query.domain.models import AgeBounds, FilterOptions, Transaction
from transaction_query.domain.request import AgeRange, DateRange, FilterCriteria

Predicate = Callable[[Transaction], bool]

# Multi-select criteria share their attribute name with Transaction.
MULTI_SELECT_FIELDS = ("customer_region", "gender", "product_category", "payment_method")


def _member_of(attribute: str, allowed: frozenset) -> Predicate:
    return lambda record: getattr(record, attribute) in allowed


def _shares_tag(wanted: frozenset) -> Predicate:
    return lambda record: not wanted.isdisjoint(record.tags)


def _age_within(age_range: AgeRange) -> Predicate:
    low, high = age_range.minimum, age_range.maximum

    def predicate(record: Transaction) -> bool:
        if record.age is None:
            return False
        if low is not None and record.age < low:
            return False
        return high is None or record.age <= high

    return predicate


def _date_within(date_range: DateRange) -> Predicate:
    start, end = date_range.start, date_range.end

    def predicate(record: Transaction) -> bool:
        if start is not None and record.date < start:
            return False
        return end is None or record.date <= end

    return predicate


def build_predicates(criteria: FilterCriteria) -> List[Predicate]:
    """Translate criteria into one predicate per active constraint."""
    predicates: List[Predicate] = []
    for attribute in MULTI_SELECT_FIELDS:
        allowed = getattr(criteria, attribute)
        if allowed:
            predicates.append(_member_of(attribute, allowed))
    if criteria.tags:
        predicates.append(_shares_tag(criteria.tags))
    if criteria.age_range is not None and not criteria.age_range.is_empty:
        predicates.append(_age_within(criteria.age_range))
    if criteria.date_range is not None and not criteria.date_range.is_empty:
        predicates.append(_date_within(criteria.date_range))
    return predicates


def filter_records(
    records: Iterable[Transaction], criteria: Any
) -> Union[Iterable[Transaction], List[Transaction]]:
    """
    Keep records satisfying every constraint in `criteria`.

    Anything other than a FilterCriteria, or criteria with no active
    constraint, returns `records` unchanged.
    """
    if not isinstance(criteria, FilterCriteria):
        return records
    predicates = build_predicates(criteria)
    if not predicates:
        return records
    return [record for record in records if all(check(record) for check in predicates)]


def collect_filter_options(records: Iterable[Transaction]) -> FilterOptions:
    """Distinct non-empty values per filterable field, plus the observed age bounds."""
    values: dict[str, set] = {name: set() for name in (*MULTI_SELECT_FIELDS, "tags")}
    youngest: Optional[int] = None
    oldest: Optional[int] = None
    for record in records:
        for attribute in MULTI_SELECT_FIELDS:
            value = getattr(record, attribute)
            if value:
                values[attribute].add(value)
        values["tags"].update(record.tags)
        if record.age is not None:
            youngest = record.age if youngest is None else min(youngest, record.age)
            oldest = record.age if oldest is None else max(oldest, record.age)

    age_range = AgeBounds()
    if youngest is not None:
        age_range = AgeBounds(minimum=youngest, maximum=oldest)
    return FilterOptions(
        **{name: sorted(found) for name, found in values.items()},
        age_range=age_range,
    )


__all__ = [
    "MULTI_SELECT_FIELDS",
    "build_predicates",
    "filter_records",
    "collect_filter_options",
]
