"""
Pagination stage: page normalization, clamping and slice metadata.

`plan_page` only needs the total number of matches, which lets the store
backend plan its LIMIT/OFFSET from an aggregate count; `paginate` applies the
same plan to an in-memory ordered sequence.
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional, Sequence

from transaction_query.domain.models import Page, Pagination, Transaction
from transaction_query.domain.request import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _parse_int(value: Any) -> Optional[int]:
    """Leading-integer parse; None for anything without one."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def normalize_page(page: Any) -> int:
    parsed = _parse_int(page)
    if parsed is None or parsed < 1:
        return 1
    return parsed


def normalize_page_size(page_size: Any) -> int:
    parsed = _parse_int(page_size)
    if parsed is None or parsed < 1:
        return DEFAULT_PAGE_SIZE
    return min(parsed, MAX_PAGE_SIZE)


def plan_page(total_items: int, page: Any = 1, page_size: Any = DEFAULT_PAGE_SIZE) -> Pagination:
    """
    Compute the page window for `total_items` matches.

    Out-of-range pages are clamped to the last page (or page 1 when empty).
    """
    size = normalize_page_size(page_size)
    total_pages = math.ceil(total_items / size) if total_items else 0
    current = max(1, min(normalize_page(page), max(total_pages, 1)))
    offset = (current - 1) * size
    return Pagination(
        current_page=current,
        page_size=size,
        total_items=total_items,
        total_pages=total_pages,
        has_next_page=current < total_pages,
        has_previous_page=current > 1,
        start_index=offset + 1 if total_items else 0,
        end_index=min(offset + size, total_items),
    )


def paginate(
    ordered: Sequence[Transaction], page: Any = 1, page_size: Any = DEFAULT_PAGE_SIZE
) -> Page:
    """Slice one page out of an already ordered sequence."""
    window = plan_page(len(ordered), page, page_size)
    items = list(ordered[window.offset : window.offset + window.page_size])
    return Page(items=items, pagination=window)


__all__ = [
    "normalize_page",
    "normalize_page_size",
    "plan_page",
    "paginate",
]
