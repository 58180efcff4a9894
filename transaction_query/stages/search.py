"""
Search stage: free-text substring match on customer name and phone number.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional, Union

from transaction_query.domain.models import Transaction
from transaction_query.stages.collation import fold_text


def normalize_term(term: Any) -> Optional[str]:
    """
    Trim and case-fold a search term.

    Returns None when the term is not a non-empty string after trimming, which
    callers treat as "no search".
    """
    if not isinstance(term, str):
        return None
    normalized = fold_text(term.strip())
    return normalized or None


def matches_term(record: Transaction, needle: str) -> bool:
    """Whether `record` matches an already-normalized search term."""
    if needle in fold_text(record.customer_name):
        return True
    return needle in (record.phone_number or "")


def search_records(
    records: Iterable[Transaction], term: Any
) -> Union[Iterable[Transaction], List[Transaction]]:
    """
    Keep records whose case-folded name or raw phone number contains `term`.

    A missing/blank/non-string term returns `records` itself, unchanged.
    """
    needle = normalize_term(term)
    if needle is None:
        return records
    return [record for record in records if matches_term(record, needle)]


__all__ = ["normalize_term", "matches_term", "search_records"]
