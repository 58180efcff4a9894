"""
Exception hierarchy for the transaction query engine.

All errors raised by the engine derive from QueryError so callers (CLI, HTTP
adapters) can map them to responses in one place.
"""

from __future__ import annotations

from typing import Iterable, List, Optional


class QueryError(Exception):
    """Base class for every failure surfaced by the query engine."""


class ValidationError(QueryError):
    """
    The request was rejected before the pipeline ran.

    Carries every violation found, not only the first one.
    """

    def __init__(self, message: str, errors: Optional[Iterable[str]] = None) -> None:
        self.errors: List[str] = list(errors or [])
        detail = f": {'; '.join(self.errors)}" if self.errors else ""
        super().__init__(f"{message}{detail}")
        self.message = message


class NotLoadedError(QueryError):
    """The array backend was queried before its snapshot was loaded."""


class StoreError(QueryError):
    """
    A query against the indexed store failed.

    The message names the operation and the driver error class only; the
    original driver exception is chained as ``__cause__``.
    """

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(f"Store {operation} failed ({reason})")
        self.operation = operation
        self.reason = reason


class QueryCancelledError(QueryError):
    """The request's cancellation token fired or its time budget ran out."""


__all__ = [
    "QueryError",
    "ValidationError",
    "NotLoadedError",
    "StoreError",
    "QueryCancelledError",
]
