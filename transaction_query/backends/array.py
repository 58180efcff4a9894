"""
Array backend: every stage as a linear in-memory pass over a snapshot.

Intended for datasets that fit in memory. Scans poll the request's
cancellation token every CHECK_INTERVAL records so a pathological search over
a large snapshot stops promptly.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generator, List, Optional, Tuple

from transaction_query.backends.abstract import AbstractQueryBackend
from transaction_query.cancellation import CancellationToken
from transaction_query.domain.models import (
    AggregateStats,
    FilterOptions,
    Pagination,
    StatisticsSummary,
    Transaction,
)
from transaction_query.domain.request import FilterCriteria, SortField, SortOrder
from transaction_query.infrastructure.snapshot import Snapshot, SnapshotSource
from transaction_query.stages.aggregate import aggregate_records, summarize_records
from transaction_query.stages.filters import collect_filter_options, filter_records
from transaction_query.stages.pagination import paginate
from transaction_query.stages.search import search_records
from transaction_query.stages.sorting import sort_records


@dataclass(frozen=True)
class ArraySelection:
    """Records surviving search + filter, in snapshot order."""

    records: Tuple[Transaction, ...]


class ArraySession:
    def __init__(self, snapshot: Snapshot, token: CancellationToken) -> None:
        self._snapshot = snapshot
        self._token = token

    def select(self, search: Optional[str], criteria: FilterCriteria) -> ArraySelection:
        scanned = self._token.guard(self._snapshot)
        matched = filter_records(search_records(scanned, search), criteria)
        return ArraySelection(records=tuple(matched))

    def aggregate(self, selection: ArraySelection) -> AggregateStats:
        return aggregate_records(self._token.guard(selection.records))

    def fetch_page(
        self,
        selection: ArraySelection,
        sort_by: SortField,
        sort_order: SortOrder,
        window: Pagination,
    ) -> List[Transaction]:
        if window.total_items == 0:
            return []
        self._token.raise_if_cancelled()
        ordered = sort_records(selection.records, sort_by, sort_order)
        self._token.raise_if_cancelled()
        return paginate(ordered, window.current_page, window.page_size).items

    def filter_options(self, selection: ArraySelection) -> FilterOptions:
        return collect_filter_options(self._token.guard(selection.records))

    def statistics(self) -> StatisticsSummary:
        self._token.raise_if_cancelled()
        return summarize_records(self._snapshot)


class ArrayBackend(AbstractQueryBackend):
    """
    Linear scan over an injected SnapshotSource.

    The snapshot is read once per session, so a concurrent `clear()` never
    changes the data seen by a request already in flight.
    """

    name: str = "array"
    description: str = "In-memory linear scan over a cached snapshot."

    def __init__(self, source: SnapshotSource) -> None:
        self.source = source

    @contextmanager
    def session(self, token: CancellationToken) -> Generator[ArraySession, None, None]:
        token.raise_if_cancelled()
        yield ArraySession(self.source.snapshot(), token)


__all__ = ["ArraySelection", "ArraySession", "ArrayBackend"]
