"""
Pipeline stages for the transaction query engine.

Each stage is a pure function over transactions; the array backend composes
them directly and the store backend mirrors their semantics in SQL.
"""

from transaction_query.stages.aggregate import aggregate_records, summarize_records
from transaction_query.stages.filters import collect_filter_options, filter_records
from transaction_query.stages.pagination import paginate, plan_page
from transaction_query.stages.search import normalize_term, search_records
from transaction_query.stages.sorting import sort_records

__all__ = [
    "aggregate_records",
    "collect_filter_options",
    "filter_records",
    "normalize_term",
    "paginate",
    "plan_page",
    "search_records",
    "sort_records",
    "summarize_records",
]
