"""
Transaction Query Engine - search, filter, sort and paginate retail transactions.

One request pipeline (search -> filter -> aggregate -> sort -> paginate) runs
behind a single entry point over two interchangeable backends:

- an in-memory array scan over a cached snapshot
- an indexed PostgreSQL store

Both backends return identical pages and statistics for the same request.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from transaction_query.backends import ArrayBackend, QueryBackend, StoreBackend
from transaction_query.cancellation import CancellationToken
from transaction_query.config import Settings, get_settings
from transaction_query.domain import (
    FilterCriteria,
    FilterOptions,
    PageResult,
    QueryRequest,
    StatisticsSummary,
    Transaction,
    parse_request,
    sort_options,
)
from transaction_query.engine import QueryEngine, available_backends, build_backend, build_engine
from transaction_query.errors import (
    NotLoadedError,
    QueryCancelledError,
    QueryError,
    StoreError,
    ValidationError,
)
from transaction_query.infrastructure import SnapshotSource
from transaction_query.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Engine
    "QueryEngine",
    "available_backends",
    "build_backend",
    "build_engine",
    "CancellationToken",
    # Backends
    "QueryBackend",
    "ArrayBackend",
    "StoreBackend",
    "SnapshotSource",
    # Domain
    "Transaction",
    "FilterCriteria",
    "QueryRequest",
    "PageResult",
    "FilterOptions",
    "StatisticsSummary",
    "parse_request",
    "sort_options",
    # Errors
    "QueryError",
    "ValidationError",
    "NotLoadedError",
    "StoreError",
    "QueryCancelledError",
    # Logging
    "configure_logging",
    "get_logger",
]
