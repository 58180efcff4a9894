"""
Query engine: the fixed search -> filter -> aggregate -> sort -> paginate pipeline.

Usage:
    from transaction_query.engine import build_engine

    engine = build_engine("array")
    page = engine.query({"search": "john", "sortBy": "quantity", "pageSize": 20})
    print(page.to_response())

The engine validates raw parameters once, opens one backend session per
request and drives it in the same order for every backend. The page window is
planned from the aggregate's record count, so statistics always describe every
match while `items` hold only the requested page.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from transaction_query.backends.abstract import QueryBackend
from transaction_query.backends.array import ArrayBackend
from transaction_query.backends.store import StoreBackend
from transaction_query.cancellation import CancellationToken
from transaction_query.config import Settings, get_settings
from transaction_query.domain.models import FilterOptions, PageResult, StatisticsSummary
from transaction_query.domain.request import parse_filter_request, parse_request
from transaction_query.infrastructure.db_factory import PoolManager, build_dsn
from transaction_query.infrastructure.snapshot import SnapshotSource, csv_loader
from transaction_query.stages.pagination import plan_page
from transaction_query.utils.logging import get_logger

log = get_logger(__name__)


class QueryEngine:
    """
    Backend-agnostic entry point for page queries, filter options and statistics.

    Parameters
    ----------
    backend : QueryBackend
        Execution strategy; any conforming backend yields identical results.
    default_timeout : float | None
        Time budget in seconds for requests that do not bring their own token.
    """

    def __init__(self, backend: QueryBackend, default_timeout: Optional[float] = None) -> None:
        self.backend = backend
        self.default_timeout = default_timeout

    def _token(self, token: Optional[CancellationToken]) -> CancellationToken:
        return token if token is not None else CancellationToken(self.default_timeout)

    def query(self, params: Any = None, token: Optional[CancellationToken] = None) -> PageResult:
        """
        Run one page query.

        Raises
        ------
        ValidationError
            Before any work when the parameters are malformed.
        NotLoadedError, StoreError, QueryCancelledError
            From the backend while the pipeline runs.
        """
        request = parse_request(params)
        token = self._token(token)
        start = time.perf_counter()
        with self.backend.session(token) as session:
            selection = session.select(request.search, request.filters)
            stats = session.aggregate(selection)
            window = plan_page(stats.record_count, request.page, request.page_size)
            items = session.fetch_page(
                selection, request.sort_by, request.effective_sort_order, window
            )
        result = PageResult(items=items, pagination=window, aggregate_stats=stats)
        log.info(
            "Query executed",
            extra={
                "backend": self.backend.name,
                "total_items": window.total_items,
                "page": window.current_page,
                "returned": len(items),
                "duration_seconds": round(time.perf_counter() - start, 4),
            },
        )
        return result

    def filter_options(
        self, params: Any = None, token: Optional[CancellationToken] = None
    ) -> FilterOptions:
        """Distinct filter values within the search + filter selection."""
        request = parse_filter_request(params)
        token = self._token(token)
        with self.backend.session(token) as session:
            selection = session.select(request.search, request.filters)
            options = session.filter_options(selection)
        log.debug("Filter options computed", extra={"backend": self.backend.name})
        return options

    def statistics(self, token: Optional[CancellationToken] = None) -> StatisticsSummary:
        """Dataset-wide statistics."""
        with self.backend.session(self._token(token)) as session:
            summary = session.statistics()
        log.debug(
            "Statistics computed",
            extra={"backend": self.backend.name, "transactions": summary.total_transactions},
        )
        return summary

    def close(self) -> None:
        self.backend.close()


def _array_backend(settings: Settings) -> ArrayBackend:
    path = Path(settings.dataset_path)
    source = SnapshotSource(csv_loader(path), label=str(path))
    source.load()
    return ArrayBackend(source)


def _store_backend(settings: Settings) -> StoreBackend:
    pool = PoolManager(
        dsn=build_dsn(settings),
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
    )
    return StoreBackend(pool, statement_timeout_ms=settings.db_statement_timeout_ms)


def _backend_factories(settings: Settings) -> Dict[str, Callable[[], QueryBackend]]:
    """Registry of available backends."""
    return {
        "array": lambda: _array_backend(settings),
        "store": lambda: _store_backend(settings),
    }


def available_backends() -> List[str]:
    """List available backend names."""
    return sorted(_backend_factories(get_settings()).keys())


def build_backend(name: Optional[str] = None, settings: Optional[Settings] = None) -> QueryBackend:
    """
    Construct a backend by name (default from settings).

    The array backend loads its snapshot from `settings.dataset_path` here, so
    a missing dataset fails at startup rather than on the first query.
    """
    settings = settings or get_settings()
    name = name or settings.query_backend
    factories = _backend_factories(settings)
    if name not in factories:
        raise ValueError(f"Unknown backend '{name}'. Available: {', '.join(sorted(factories))}")
    return factories[name]()


def build_engine(
    name: Optional[str] = None,
    settings: Optional[Settings] = None,
    backend: Optional[QueryBackend] = None,
) -> QueryEngine:
    settings = settings or get_settings()
    return QueryEngine(
        backend or build_backend(name, settings),
        default_timeout=settings.query_timeout_seconds,
    )


__all__ = [
    "QueryEngine",
    "available_backends",
    "build_backend",
    "build_engine",
]
