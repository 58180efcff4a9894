"""
Store backend: the pipeline translated into PostgreSQL queries.

Search + filter compile into one parameterized conjunctive WHERE clause;
aggregate is a single SUM/COUNT; sort + paginate become ORDER BY / LIMIT /
OFFSET. Every statement of a request runs inside one REPEATABLE READ, READ
ONLY transaction so the count and the page come from the same snapshot.

The SQL mirrors the in-memory stages exactly:
- search: folded name LIKE '%term%' OR phone LIKE '%term%', wildcards escaped
- missing name/phone compare as '' (COALESCE), missing age never matches a bound
- names order by the collation key stored at insert time (bytea, memcmp order)
- both columns come from stages.collation, so PostgreSQL never folds case
- ties always break on seq ASC, the load order the snapshot preserves
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Generator, List, Optional, Sequence, Tuple

import psycopg
from psycopg import Cursor
from psycopg.rows import dict_row

from transaction_query.backends.abstract import AbstractQueryBackend
from transaction_query.cancellation import CancellationToken
from transaction_query.config import get_settings
from transaction_query.domain.models import (
    AgeBounds,
    AggregateStats,
    FilterOptions,
    Pagination,
    StatisticsSummary,
    Transaction,
)
from transaction_query.domain.request import FilterCriteria, SortField, SortOrder
from transaction_query.errors import QueryCancelledError, QueryError, StoreError
from transaction_query.infrastructure.db_factory import PoolManager, apply_statement_timeout
from transaction_query.infrastructure.schema import SELECT_COLUMNS, TABLE
from transaction_query.stages.aggregate import average_order_value
from transaction_query.stages.filters import MULTI_SELECT_FIELDS
from transaction_query.stages.search import normalize_term
from transaction_query.utils.logging import get_logger

log = get_logger(__name__)

SEARCH_CLAUSE = (
    "(customer_name_folded LIKE %s ESCAPE '\\'"
    " OR COALESCE(phone_number, '') LIKE %s ESCAPE '\\')"
)

ORDER_KEYS: Dict[SortField, str] = {
    SortField.DATE: "date",
    SortField.QUANTITY: "quantity",
    SortField.CUSTOMER_NAME: "customer_name_sort_key",
}

GROSS_AMOUNT = "COALESCE(total_amount, final_amount, 0)"
NET_AMOUNT = "COALESCE(final_amount, total_amount, 0)"


def like_pattern(needle: str) -> str:
    """Wrap `needle` for a substring LIKE match, escaping LIKE wildcards."""
    escaped = needle.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


@dataclass(frozen=True)
class StoreSelection:
    """A compiled search + filter predicate."""

    where: str
    params: Tuple[Any, ...]


def build_selection(search: Optional[str], criteria: Any) -> StoreSelection:
    """
    Compile the search term and filter criteria into one WHERE clause.

    Column names come from a fixed whitelist; every value is a bind parameter.
    """
    clauses: List[str] = []
    params: List[Any] = []

    needle = normalize_term(search)
    if needle is not None:
        pattern = like_pattern(needle)
        clauses.append(SEARCH_CLAUSE)
        params.extend([pattern, pattern])

    if isinstance(criteria, FilterCriteria):
        for attribute in MULTI_SELECT_FIELDS:
            allowed = getattr(criteria, attribute)
            if allowed:
                clauses.append(f"{attribute} = ANY(%s::text[])")
                params.append(sorted(allowed))
        if criteria.tags:
            clauses.append("tags && %s::text[]")
            params.append(sorted(criteria.tags))
        age_range = criteria.age_range
        if age_range is not None and not age_range.is_empty:
            if age_range.minimum is not None:
                clauses.append("age >= %s")
                params.append(age_range.minimum)
            if age_range.maximum is not None:
                clauses.append("age <= %s")
                params.append(age_range.maximum)
        date_range = criteria.date_range
        if date_range is not None and not date_range.is_empty:
            if date_range.start is not None:
                clauses.append("date >= %s")
                params.append(date_range.start)
            if date_range.end is not None:
                clauses.append("date <= %s")
                params.append(date_range.end)

    where = " AND ".join(clauses) if clauses else "TRUE"
    return StoreSelection(where=where, params=tuple(params))


def build_order_clause(sort_by: SortField, sort_order: SortOrder) -> str:
    direction = "DESC" if sort_order is SortOrder.DESC else "ASC"
    return f"{ORDER_KEYS[sort_by]} {direction}, seq ASC"


def _translate_error(exc: psycopg.Error, operation: str, token: CancellationToken) -> QueryError:
    if isinstance(exc, psycopg.errors.QueryCanceled) or token.cancelled:
        log.warning("Store query cancelled", extra={"operation": operation})
        return QueryCancelledError(f"Store {operation} was cancelled")
    log.exception(
        "Store query failed",
        extra={"operation": operation, "error": type(exc).__name__},
    )
    return StoreError(operation, type(exc).__name__)


class StoreSession:
    def __init__(self, cur: Cursor, token: CancellationToken) -> None:
        self._cur = cur
        self._token = token

    def _fetch(self, operation: str, query: str, params: Sequence[Any]) -> List[Dict[str, Any]]:
        self._token.raise_if_cancelled()
        try:
            self._cur.execute(query, params)
            return self._cur.fetchall()
        except psycopg.Error as exc:
            raise _translate_error(exc, operation, self._token) from exc

    def select(self, search: Optional[str], criteria: FilterCriteria) -> StoreSelection:
        return build_selection(search, criteria)

    def aggregate(self, selection: StoreSelection) -> AggregateStats:
        (row,) = self._fetch(
            "aggregate",
            f"""
            SELECT
                COUNT(*) AS record_count,
                COALESCE(SUM(quantity), 0) AS total_units,
                COALESCE(SUM({GROSS_AMOUNT}), 0) AS total_amount,
                COALESCE(SUM({GROSS_AMOUNT} - {NET_AMOUNT}), 0) AS total_discount
            FROM {TABLE}
            WHERE {selection.where}
            """,
            selection.params,
        )
        return AggregateStats.model_validate(row)

    def fetch_page(
        self,
        selection: StoreSelection,
        sort_by: SortField,
        sort_order: SortOrder,
        window: Pagination,
    ) -> List[Transaction]:
        if window.total_items == 0:
            return []
        rows = self._fetch(
            "page",
            f"""
            SELECT {SELECT_COLUMNS}
            FROM {TABLE}
            WHERE {selection.where}
            ORDER BY {build_order_clause(sort_by, sort_order)}
            LIMIT %s OFFSET %s
            """,
            (*selection.params, window.page_size, window.offset),
        )
        return [Transaction.model_validate(row) for row in rows]

    def _distinct(self, selection: StoreSelection, attribute: str) -> List[str]:
        rows = self._fetch(
            "filter options",
            f"""
            SELECT DISTINCT {attribute} COLLATE "C" AS value
            FROM {TABLE}
            WHERE {selection.where} AND {attribute} IS NOT NULL AND {attribute} <> ''
            ORDER BY value
            """,
            selection.params,
        )
        return [row["value"] for row in rows]

    def filter_options(self, selection: StoreSelection) -> FilterOptions:
        values = {attribute: self._distinct(selection, attribute) for attribute in MULTI_SELECT_FIELDS}
        tag_rows = self._fetch(
            "filter options",
            f"""
            SELECT DISTINCT tag COLLATE "C" AS value
            FROM {TABLE} CROSS JOIN LATERAL unnest(tags) AS u(tag)
            WHERE {selection.where} AND tag <> ''
            ORDER BY value
            """,
            selection.params,
        )
        (ages,) = self._fetch(
            "filter options",
            f"SELECT MIN(age) AS youngest, MAX(age) AS oldest FROM {TABLE} WHERE {selection.where}",
            selection.params,
        )
        age_range = AgeBounds()
        if ages["youngest"] is not None:
            age_range = AgeBounds(minimum=ages["youngest"], maximum=ages["oldest"])
        return FilterOptions(
            **values,
            tags=[row["value"] for row in tag_rows],
            age_range=age_range,
        )

    def statistics(self) -> StatisticsSummary:
        (row,) = self._fetch(
            "statistics",
            f"""
            SELECT
                COUNT(*) AS total_transactions,
                COUNT(DISTINCT customer_id) AS unique_customers,
                COUNT(DISTINCT product_id) AS unique_products,
                COALESCE(SUM({NET_AMOUNT}), 0) AS total_revenue,
                MIN({NET_AMOUNT}) AS min_order_value,
                MAX({NET_AMOUNT}) AS max_order_value
            FROM {TABLE}
            """,
            (),
        )
        if row["total_transactions"] == 0:
            return StatisticsSummary()
        return StatisticsSummary(
            **row,
            average_order_value=average_order_value(
                row["total_revenue"], row["total_transactions"]
            ),
        )


class StoreBackend(AbstractQueryBackend):
    """
    Indexed PostgreSQL execution through a pooled connection.

    Cancelling the request token cancels the statement running on the server;
    the remaining time budget caps the transaction's statement_timeout.
    """

    name: str = "store"
    description: str = "Single indexed PostgreSQL query per stage (ORDER BY/LIMIT/OFFSET)."

    def __init__(
        self,
        pool: PoolManager,
        statement_timeout_ms: Optional[int] = None,
    ) -> None:
        self.pool = pool
        if statement_timeout_ms is None:
            statement_timeout_ms = get_settings().db_statement_timeout_ms
        self.statement_timeout_ms = statement_timeout_ms

    def _timeout_ms(self, token: CancellationToken) -> int:
        remaining = token.remaining()
        if remaining is None:
            return self.statement_timeout_ms
        budget_ms = max(1, int(remaining * 1000))
        if self.statement_timeout_ms <= 0:
            return budget_ms
        return min(self.statement_timeout_ms, budget_ms)

    @contextmanager
    def session(self, token: CancellationToken) -> Generator[StoreSession, None, None]:
        token.raise_if_cancelled()
        try:
            with self.pool.connection() as conn:
                with conn.transaction():
                    with conn.cursor(row_factory=dict_row) as cur:
                        cur.execute("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ, READ ONLY")
                        apply_statement_timeout(cur, self._timeout_ms(token))
                        with token.on_cancel(conn.cancel_safe):
                            yield StoreSession(cur, token)
        except psycopg.Error as exc:
            raise _translate_error(exc, "session", token) from exc

    def close(self) -> None:
        self.pool.close()


__all__ = [
    "StoreSelection",
    "StoreSession",
    "StoreBackend",
    "build_selection",
    "build_order_clause",
    "like_pattern",
]
