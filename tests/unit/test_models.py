from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from transaction_query.domain.models import (
    UNPARSABLE_DATE,
    AgeBounds,
    Transaction,
    parse_timestamp,
)


def test_transaction_accepts_camel_and_snake_case() -> None:
    camel = Transaction.model_validate({"transactionId": "TX1", "customerName": "Ann"})
    snake = Transaction(transaction_id="TX1", customer_name="Ann")

    assert camel == snake


def test_transaction_is_frozen() -> None:
    record = Transaction(transaction_id="TX1")

    with pytest.raises(PydanticValidationError):
        record.quantity = 4


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, ()),
        ("", ()),
        ("a, b,,a", ("a", "b")),
        (["x", " y ", "x"], ("x", "y")),
        ({"b", "a"}, ("a", "b")),
    ],
)
def test_tags_are_cleaned_and_deduplicated(raw, expected) -> None:
    assert Transaction(transaction_id="TX1", tags=raw).tags == expected


def test_numeric_identifiers_are_kept_as_text() -> None:
    record = Transaction(transaction_id="TX1", phone_number=9876543210, customer_id=42)

    assert record.phone_number == "9876543210"
    assert record.customer_id == "42"


def test_negative_quantity_is_rejected() -> None:
    with pytest.raises(PydanticValidationError):
        Transaction(transaction_id="TX1", quantity=-1)


def test_blank_transaction_id_is_rejected() -> None:
    with pytest.raises(PydanticValidationError):
        Transaction(transaction_id="")


def test_amounts_serialize_as_numbers() -> None:
    record = Transaction(transaction_id="TX1", total_amount="19.99", final_amount=None)

    payload = record.model_dump(by_alias=True, mode="json")

    assert payload["totalAmount"] == 19.99
    assert payload["finalAmount"] is None
    assert record.total_amount == Decimal("19.99")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2023-03-15T10:00:00Z", datetime(2023, 3, 15, 10, tzinfo=UTC)),
        ("2023-03-15 10:00:00", datetime(2023, 3, 15, 10, tzinfo=UTC)),
        ("15/03/2023", datetime(2023, 3, 15, tzinfo=UTC)),
        (date(2023, 3, 15), datetime(2023, 3, 15, tzinfo=UTC)),
        (
            datetime(2023, 3, 15, 12, tzinfo=timezone(timedelta(hours=2))),
            datetime(2023, 3, 15, 10, tzinfo=UTC),
        ),
    ],
)
def test_parse_timestamp(raw, expected) -> None:
    assert parse_timestamp(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "yesterday", 12345])
def test_unparsable_timestamps(raw) -> None:
    assert parse_timestamp(raw) is None
    assert Transaction(transaction_id="TX1", date=raw).date == UNPARSABLE_DATE


def test_age_bounds_wire_names() -> None:
    assert AgeBounds(minimum=18, maximum=60).model_dump(by_alias=True) == {"min": 18, "max": 60}
