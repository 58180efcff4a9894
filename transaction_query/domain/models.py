"""
Domain models for the transaction query engine.

Defines the transaction record schema (aligned with the `public.transactions`
table) and the read-only result types produced by the query pipeline. Every
model is frozen; field names are snake_case in Python and camelCase on the
wire (`model_dump(by_alias=True)`).
"""
from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

# Fixed ordering key for records whose date is missing or unparsable.
UNPARSABLE_DATE = datetime(1970, 1, 1, tzinfo=UTC)

_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d",
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%d-%m-%Y",
)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp from a datetime, date, or string.

    Returns None when the value cannot be interpreted.
    """
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    try:
        return as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=UTC)
        except ValueError:
            continue
    return None


def _to_number(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    text = str(value).strip()
    if not text or text.lower() in ("null", "nan", "none"):
        return None
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


class _FrozenModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class Transaction(_FrozenModel):
    """
    A single sales transaction.
    """

    model_config = ConfigDict(extra="ignore")

    transaction_id: str = Field(..., min_length=1, description="Unique transaction identifier.")

    customer_id: Optional[str] = Field(None, description="Customer identifier.")
    customer_name: Optional[str] = Field(None, description="Customer display name.")
    phone_number: Optional[str] = Field(None, description="Customer phone number, kept raw.")
    gender: Optional[str] = Field(None, description="Customer gender label.")
    age: Optional[int] = Field(None, ge=0, description="Customer age in years.")
    customer_region: Optional[str] = Field(None, description="Customer region.")

    product_id: Optional[str] = Field(None, description="Product identifier.")
    product_category: Optional[str] = Field(None, description="Product category.")
    tags: Tuple[str, ...] = Field((), description="Product tags, de-duplicated, source order.")

    quantity: int = Field(0, ge=0, description="Units sold.")
    total_amount: Optional[Decimal] = Field(None, ge=0, description="Amount before discount.")
    final_amount: Optional[Decimal] = Field(None, ge=0, description="Amount after discount.")

    date: datetime = Field(UNPARSABLE_DATE, description="Transaction timestamp (UTC).")
    payment_method: Optional[str] = Field(None, description="Payment method.")
    employee_name: Optional[str] = Field(None, description="Employee who handled the sale.")

    @field_validator("phone_number", "customer_id", "product_id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("age", mode="before")
    @classmethod
    def _parse_age(cls, value: Any) -> Optional[int]:
        number = _to_number(value)
        return int(number) if number is not None else None

    @field_validator("quantity", mode="before")
    @classmethod
    def _parse_quantity(cls, value: Any) -> int:
        number = _to_number(value)
        return int(number) if number is not None else 0

    @field_validator("total_amount", "final_amount", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> Optional[Decimal]:
        return _to_number(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, value: Any) -> Tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            raw = value.split(",")
        elif isinstance(value, (set, frozenset)):
            raw = sorted(value)
        else:
            raw = list(value)
        seen: Dict[str, None] = {}
        for tag in raw:
            cleaned = str(tag).strip()
            if cleaned:
                seen.setdefault(cleaned, None)
        return tuple(seen)

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value: Any) -> datetime:
        return parse_timestamp(value) or UNPARSABLE_DATE

    @field_serializer("total_amount", "final_amount", when_used="json")
    def _amount_to_float(self, value: Optional[Decimal]) -> Optional[float]:
        return float(value) if value is not None else None


class AggregateStats(_FrozenModel):
    """Sum/count statistics over an entire filtered population."""

    total_units: int = 0
    total_amount: Decimal = Decimal(0)
    total_discount: Decimal = Decimal(0)
    record_count: int = 0

    @field_serializer("total_amount", "total_discount", when_used="json")
    def _to_float(self, value: Decimal) -> float:
        return float(value)


class Pagination(_FrozenModel):
    """Navigation metadata for one page of an ordered result."""

    current_page: int
    page_size: int
    total_items: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool
    start_index: int
    end_index: int

    @property
    def offset(self) -> int:
        """Zero-based position of the first item on the page."""
        return (self.current_page - 1) * self.page_size


class Page(_FrozenModel):
    items: List[Transaction]
    pagination: Pagination


class PageResult(Page):
    """One page of matching transactions plus statistics over every match."""

    aggregate_stats: AggregateStats

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class AgeBounds(_FrozenModel):
    minimum: int = Field(0, alias="min")
    maximum: int = Field(100, alias="max")


class FilterOptions(_FrozenModel):
    """Distinct values available per filterable field for a search/filter context."""

    customer_region: List[str] = Field(default_factory=list)
    gender: List[str] = Field(default_factory=list)
    product_category: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    payment_method: List[str] = Field(default_factory=list)
    age_range: AgeBounds = Field(default_factory=AgeBounds)

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class StatisticsSummary(_FrozenModel):
    """Dataset-wide figures, independent of any search or filter."""

    total_transactions: int = 0
    unique_customers: int = 0
    unique_products: int = 0
    total_revenue: Decimal = Decimal(0)
    average_order_value: Decimal = Decimal(0)
    min_order_value: Decimal = Decimal(0)
    max_order_value: Decimal = Decimal(0)

    @field_serializer(
        "total_revenue",
        "average_order_value",
        "min_order_value",
        "max_order_value",
        when_used="json",
    )
    def _to_float(self, value: Decimal) -> float:
        return float(value)

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


__all__ = [
    "UNPARSABLE_DATE",
    "as_utc",
    "parse_timestamp",
    "Transaction",
    "AggregateStats",
    "Pagination",
    "Page",
    "PageResult",
    "AgeBounds",
    "FilterOptions",
    "StatisticsSummary",
]
