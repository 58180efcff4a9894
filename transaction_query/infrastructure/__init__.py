"""
Infrastructure package for the transaction query engine.

Centralizes I/O concerns: PostgreSQL connectivity (pooling, timeouts), the
store schema and bulk COPY, CSV ingestion, and the in-memory snapshot source.
Keep this layer decoupled from stage and engine logic.
"""

from transaction_query.infrastructure.db_factory import (
    PoolManager,
    apply_statement_timeout,
    build_dsn,
    get_sync_connection,
)
from transaction_query.infrastructure.ingest import read_transactions_csv
from transaction_query.infrastructure.schema import (
    ensure_schema,
    fetch_all_transactions,
    insert_transactions,
    truncate_transactions,
)
from transaction_query.infrastructure.snapshot import SnapshotSource, csv_loader, store_loader

__all__ = [
    "PoolManager",
    "apply_statement_timeout",
    "build_dsn",
    "get_sync_connection",
    "read_transactions_csv",
    "ensure_schema",
    "fetch_all_transactions",
    "insert_transactions",
    "truncate_transactions",
    "SnapshotSource",
    "csv_loader",
    "store_loader",
]
