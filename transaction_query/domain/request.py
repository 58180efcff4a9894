"""
Request models and boundary validation.

Raw request parameters (query-string style mappings with camelCase keys) are
validated once here into frozen pydantic models. Absent filter fields are
explicit None, meaning "no constraint"; stages never re-check payload shape.
"""
from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Any, FrozenSet, List, Mapping, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from transaction_query.domain.models import as_utc
from transaction_query.errors import ValidationError

MAX_SEARCH_LENGTH = 100
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class SortField(str, Enum):
    DATE = "date"
    QUANTITY = "quantity"
    CUSTOMER_NAME = "customerName"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


DEFAULT_SORT_ORDERS = {
    SortField.DATE: SortOrder.DESC,
    SortField.QUANTITY: SortOrder.ASC,
    SortField.CUSTOMER_NAME: SortOrder.ASC,
}

SORT_LABELS = {
    SortField.DATE: "Date",
    SortField.QUANTITY: "Quantity",
    SortField.CUSTOMER_NAME: "Customer Name",
}


def sort_options() -> dict:
    """Catalogue of supported sort fields and orders, with per-field defaults."""
    return {
        "fields": [
            {
                "value": field.value,
                "label": SORT_LABELS[field],
                "defaultOrder": DEFAULT_SORT_ORDERS[field].value,
            }
            for field in SortField
        ],
        "orders": [
            {"value": SortOrder.ASC.value, "label": "Ascending"},
            {"value": SortOrder.DESC.value, "label": "Descending"},
        ],
    }


class _RequestModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )


class AgeRange(_RequestModel):
    minimum: Optional[int] = Field(None, ge=0, alias="min")
    maximum: Optional[int] = Field(None, ge=0, alias="max")

    @model_validator(mode="after")
    def _check_order(self) -> "AgeRange":
        if self.minimum is not None and self.maximum is not None and self.minimum > self.maximum:
            raise ValueError("age range min cannot be greater than max")
        return self

    @property
    def is_empty(self) -> bool:
        return self.minimum is None and self.maximum is None


class DateRange(_RequestModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @field_validator("start", "end", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("start", "end")
    @classmethod
    def _to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError("start date cannot be after end date")
        return self

    @property
    def is_empty(self) -> bool:
        return self.start is None and self.end is None


class FilterCriteria(_RequestModel):
    """
    Structured filter constraints; every field is optional.

    Multi-select fields are OR-matched within the field; fields combine with AND.
    Empty selections are normalized to None.
    """

    customer_region: Optional[FrozenSet[str]] = None
    gender: Optional[FrozenSet[str]] = None
    product_category: Optional[FrozenSet[str]] = None
    tags: Optional[FrozenSet[str]] = None
    payment_method: Optional[FrozenSet[str]] = None
    age_range: Optional[AgeRange] = None
    date_range: Optional[DateRange] = None

    @field_validator(
        "customer_region",
        "gender",
        "product_category",
        "tags",
        "payment_method",
        mode="before",
    )
    @classmethod
    def _coerce_selection(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            value = [value]
        if isinstance(value, (list, tuple, set, frozenset)):
            cleaned = [item for item in value if not (isinstance(item, str) and not item.strip())]
            return cleaned or None
        return value

    @field_validator("age_range", "date_range")
    @classmethod
    def _drop_empty_range(cls, value: Any) -> Any:
        if value is not None and value.is_empty:
            return None
        return value

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in type(self).model_fields)


class FilterRequest(_RequestModel):
    """Search term plus filters; the input of the filter-options operation."""

    search: Optional[str] = Field(
        None, validation_alias=AliasChoices("search", "searchTerm")
    )
    filters: FilterCriteria = Field(default_factory=FilterCriteria)

    @field_validator("search")
    @classmethod
    def _check_search(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        trimmed = value.strip()
        if len(trimmed) > MAX_SEARCH_LENGTH:
            raise ValueError(f"search term must be at most {MAX_SEARCH_LENGTH} characters")
        return trimmed or None

    @field_validator("filters", mode="before")
    @classmethod
    def _decode_filters(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, str):
            if not value.strip():
                return {}
            try:
                value = json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValueError("filters must be valid JSON") from exc
        if not isinstance(value, (Mapping, FilterCriteria)):
            raise ValueError("filters must be an object")
        return value


class QueryRequest(FilterRequest):
    """A full page query: search, filters, sort and page selection."""

    sort_by: SortField = SortField.DATE
    sort_order: Optional[SortOrder] = None
    page: int = Field(1, ge=1)
    page_size: int = Field(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @field_validator("sort_by", "sort_order", "page", "page_size", mode="before")
    @classmethod
    def _absent_is_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls.model_fields[info.field_name].default
        return value

    @property
    def effective_sort_order(self) -> SortOrder:
        return self.sort_order or DEFAULT_SORT_ORDERS[self.sort_by]


def _violations(exc: PydanticValidationError) -> List[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        message = error["msg"].removeprefix("Value error, ")
        messages.append(f"{location}: {message}" if location else message)
    return messages


def _validate(model: type[FilterRequest], params: Any) -> Any:
    if params is None:
        params = {}
    if isinstance(params, model):
        return params
    if not isinstance(params, Mapping):
        raise ValidationError("Invalid query parameters", ["request must be an object"])
    try:
        return model.model_validate(dict(params))
    except PydanticValidationError as exc:
        raise ValidationError("Invalid query parameters", _violations(exc)) from exc


def parse_request(params: Any) -> QueryRequest:
    """
    Validate raw query parameters into a QueryRequest.

    Raises
    ------
    ValidationError
        With every violation found when the parameters are malformed.
    """
    return _validate(QueryRequest, params)


def parse_filter_request(params: Any) -> FilterRequest:
    """Validate raw search/filter parameters for the filter-options operation."""
    return _validate(FilterRequest, params)


__all__ = [
    "MAX_SEARCH_LENGTH",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "SortField",
    "SortOrder",
    "DEFAULT_SORT_ORDERS",
    "sort_options",
    "AgeRange",
    "DateRange",
    "FilterCriteria",
    "FilterRequest",
    "QueryRequest",
    "parse_request",
    "parse_filter_request",
]
