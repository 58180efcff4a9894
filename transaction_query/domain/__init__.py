"""
Domain package for the transaction query engine.

Exports the transaction record, result models and request models. Keep this
package focused on data definitions and validation concerns.
"""

from transaction_query.domain.models import (
    UNPARSABLE_DATE,
    AgeBounds,
    AggregateStats,
    FilterOptions,
    Page,
    PageResult,
    Pagination,
    StatisticsSummary,
    Transaction,
)
from transaction_query.domain.request import (
    AgeRange,
    DateRange,
    FilterCriteria,
    FilterRequest,
    QueryRequest,
    SortField,
    SortOrder,
    parse_filter_request,
    parse_request,
    sort_options,
)

__all__ = [
    "UNPARSABLE_DATE",
    "AgeBounds",
    "AggregateStats",
    "FilterOptions",
    "Page",
    "PageResult",
    "Pagination",
    "StatisticsSummary",
    "Transaction",
    "AgeRange",
    "DateRange",
    "FilterCriteria",
    "FilterRequest",
    "QueryRequest",
    "SortField",
    "SortOrder",
    "parse_filter_request",
    "parse_request",
    "sort_options",
]
