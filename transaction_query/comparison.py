"""
Side-by-side execution of one request through several backends.

Usage (example from CLI):
    from transaction_query.comparison import compare_backends

    rows = compare_backends({"search": "john"}, [array_engine, store_engine])

Each backend runs under `profile_block`; the first successful backend is the
reference and every other result is checked against it on items (content and
order), aggregate statistics, total items and total pages.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from transaction_query.domain.models import PageResult
from transaction_query.domain.request import parse_request
from transaction_query.engine import QueryEngine
from transaction_query.errors import QueryError
from transaction_query.utils.logging import get_logger
from transaction_query.utils.profiler import ProfileStats, profile_block

log = get_logger(__name__)


def _dumped(items: Sequence[Any]) -> List[Dict[str, Any]]:
    # Field values only; which fields were explicitly set does not matter.
    return [item.model_dump() for item in items]


def divergences(reference: PageResult, candidate: PageResult) -> List[str]:
    """Names of the result parts where `candidate` differs from `reference`."""
    differences = []
    if _dumped(reference.items) != _dumped(candidate.items):
        differences.append("items")
    if reference.aggregate_stats != candidate.aggregate_stats:
        differences.append("aggregateStats")
    if reference.pagination.total_items != candidate.pagination.total_items:
        differences.append("totalItems")
    if reference.pagination.total_pages != candidate.pagination.total_pages:
        differences.append("totalPages")
    return differences


def _profiled_query(engine: QueryEngine, request: Any) -> tuple[Dict[str, Any], Optional[PageResult]]:
    name = engine.backend.name
    log.info(f"[BACKEND START] {name}", extra={"backend": name})
    result: Optional[PageResult] = None
    error: Optional[str] = None
    with profile_block(name) as stats:
        try:
            result = engine.query(request)
        except QueryError as exc:
            log.exception(f"[BACKEND FAILED] {name}", extra={"backend": name})
            error = str(exc)
    return _summarize(name, result, error, stats), result


def _summarize(
    name: str, result: Optional[PageResult], error: Optional[str], stats: ProfileStats
) -> Dict[str, Any]:
    return {
        "backend": name,
        "returned": len(result.items) if result is not None else 0,
        "total_items": result.pagination.total_items if result is not None else None,
        **stats.as_row(),
        "error": error,
    }


def compare_backends(params: Any, engines: Sequence[QueryEngine]) -> List[Dict[str, Any]]:
    """
    Run one request through every engine and report timings and agreement.

    Parameters
    ----------
    params : Mapping | QueryRequest
        The request, validated once up front.
    engines : sequence of QueryEngine
        Engines over the same dataset, one per backend.

    Returns
    -------
    List[dict]
        One row per backend. `matches` is None for the reference backend and
        for failed runs, otherwise whether the result equals the reference;
        `divergences` names the differing parts.
    """
    request = parse_request(params)
    rows: List[Dict[str, Any]] = []
    reference: Optional[PageResult] = None
    for engine in engines:
        row, result = _profiled_query(engine, request)
        row["matches"] = None
        row["divergences"] = []
        if result is not None:
            if reference is None:
                reference = result
            else:
                row["divergences"] = divergences(reference, result)
                row["matches"] = not row["divergences"]
        rows.append(row)
        log.info(
            f"[BACKEND COMPLETE] {row['backend']}",
            extra={
                "backend": row["backend"],
                "duration": row["duration_seconds"],
                "matches": row["matches"],
            },
        )
    return rows


def all_agree(rows: Sequence[Dict[str, Any]]) -> bool:
    """True when no backend failed and none diverged from the reference."""
    return all(row["error"] is None and row["matches"] is not False for row in rows)


__all__ = ["compare_backends", "divergences", "all_agree"]
