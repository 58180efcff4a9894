"""
Backend interfaces for the transaction query engine.

A backend opens a per-request BackendSession; the engine drives the session
through the fixed pipeline (select -> aggregate -> plan page -> fetch page).
The selection returned by `select` is backend-specific and opaque to the
engine: the array backend hands back materialized records, the store backend
a compiled WHERE clause.
"""

from __future__ import annotations

import abc
from typing import Any, ContextManager, List, Optional, Protocol, runtime_checkable

from transaction_query.cancellation import CancellationToken
from transaction_query.domain.models import (
    AggregateStats,
    FilterOptions,
    Pagination,
    StatisticsSummary,
    Transaction,
)
from transaction_query.domain.request import FilterCriteria, SortField, SortOrder


class BackendSession(Protocol):
    """
    Stage operations bound to one request and one consistent view of the data.
    """

    def select(self, search: Optional[str], criteria: FilterCriteria) -> Any:
        """Apply search then filters; return a selection handle."""
        ...

    def aggregate(self, selection: Any) -> AggregateStats:
        """Statistics over the entire selection."""
        ...

    def fetch_page(
        self,
        selection: Any,
        sort_by: SortField,
        sort_order: SortOrder,
        window: Pagination,
    ) -> List[Transaction]:
        """Order the selection and return the records inside `window`."""
        ...

    def filter_options(self, selection: Any) -> FilterOptions:
        """Distinct values per filterable field within the selection."""
        ...

    def statistics(self) -> StatisticsSummary:
        """Dataset-wide statistics, ignoring any search or filter."""
        ...


@runtime_checkable
class QueryBackend(Protocol):
    """
    Common interface both execution strategies implement.

    Attributes
    ----------
    name : str
        A short machine-friendly identifier.
    description : str
        A human-friendly summary of the approach.
    """

    name: str
    description: str

    def session(self, token: CancellationToken) -> ContextManager[BackendSession]:
        """
        Open a session for one request.

        Parameters
        ----------
        token : CancellationToken
            Checked during scans and propagated to running store queries.
        """
        ...

    def close(self) -> None:
        """Release any resources held by the backend."""
        ...


class AbstractQueryBackend(abc.ABC):
    """
    Optional ABC helper for class-based implementations.

    Subclasses should set `name` and `description` and implement `session`.
    """

    name: str
    description: str

    @abc.abstractmethod
    def session(
        self, token: CancellationToken
    ) -> ContextManager[BackendSession]:  # pragma: no cover - interface only
        raise NotImplementedError

    def close(self) -> None:
        return None


__all__ = [
    "BackendSession",
    "QueryBackend",
    "AbstractQueryBackend",
]
