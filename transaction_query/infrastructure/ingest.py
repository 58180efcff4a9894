"""
CSV ingestion of transaction exports.

Accepts the header spellings seen in retail exports (camelCase, snake_case and
"Title Case" columns). Field-level parsing (tags lists, lenient numbers, date
fallback) lives on the Transaction model; rows the model still rejects are
skipped with a warning.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from transaction_query.domain.models import Transaction
from transaction_query.utils.logging import get_logger

log = get_logger(__name__)

HEADER_ALIASES: Dict[str, Tuple[str, ...]] = {
    "transaction_id": ("transactionId", "transaction_id", "Transaction ID"),
    "customer_id": ("customerId", "customer_id", "Customer ID"),
    "customer_name": ("customerName", "customer_name", "Customer Name"),
    "phone_number": ("phoneNumber", "phone_number", "Phone Number"),
    "gender": ("gender", "Gender"),
    "age": ("age", "Age"),
    "customer_region": ("customerRegion", "customer_region", "Customer Region"),
    "product_id": ("productId", "product_id", "Product ID"),
    "product_category": ("productCategory", "product_category", "Product Category"),
    "tags": ("tags", "Tags"),
    "quantity": ("quantity", "Quantity"),
    "total_amount": ("totalAmount", "total_amount", "Total Amount"),
    "final_amount": ("finalAmount", "final_amount", "Final Amount"),
    "date": ("date", "Date"),
    "payment_method": ("paymentMethod", "payment_method", "Payment Method"),
    "employee_name": ("employeeName", "employee_name", "Employee Name"),
}


def _first_present(row: Mapping[str, Optional[str]], names: Tuple[str, ...]) -> Optional[str]:
    for name in names:
        value = row.get(name)
        if value is not None and value != "":
            return value
    return None


def row_to_fields(row: Mapping[str, Optional[str]], row_number: int) -> Dict[str, Optional[str]]:
    """Map one raw CSV row onto Transaction field names."""
    fields = {field: _first_present(row, names) for field, names in HEADER_ALIASES.items()}
    if not fields["transaction_id"]:
        fields["transaction_id"] = f"TX{row_number:08d}"
    return fields


def read_transactions_csv(path: Path) -> List[Transaction]:
    """
    Parse every valid row of a transactions CSV, in file order.

    Raises
    ------
    FileNotFoundError
        If `path` does not exist.
    """
    records: List[Transaction] = []
    skipped = 0
    with path.open("r", newline="", encoding="utf-8-sig") as f:
        for row_number, row in enumerate(csv.DictReader(f), start=1):
            try:
                records.append(Transaction.model_validate(row_to_fields(row, row_number)))
            except PydanticValidationError as exc:
                skipped += 1
                log.warning(
                    "Skipping invalid CSV row",
                    extra={"row": row_number, "errors": exc.error_count()},
                )
    log.info(
        f"Parsed {len(records)} transactions from {path.name}",
        extra={"path": str(path), "records": len(records), "skipped": skipped},
    )
    return records


__all__ = ["HEADER_ALIASES", "row_to_fields", "read_transactions_csv"]
