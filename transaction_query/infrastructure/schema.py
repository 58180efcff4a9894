"""
Persistent layout of the transaction store and bulk I/O helpers.

`seq` records load order. Both backends treat it as the snapshot order: the
store backend breaks sort ties on it, and `fetch_all_transactions` reads rows
back in that order for the array backend.
"""

from __future__ import annotations

from typing import Iterable, List

import psycopg
from psycopg import Connection
from psycopg.rows import dict_row

from transaction_query.domain.models import Transaction
from transaction_query.stages.collation import fold_text, name_sort_key
from transaction_query.utils.logging import get_logger

log = get_logger(__name__)

TABLE = "public.transactions"

# Column names match Transaction field names one to one.
TRANSACTION_COLUMNS = (
    "transaction_id",
    "customer_id",
    "customer_name",
    "phone_number",
    "gender",
    "age",
    "customer_region",
    "product_id",
    "product_category",
    "tags",
    "quantity",
    "total_amount",
    "final_amount",
    "date",
    "payment_method",
    "employee_name",
)

SELECT_COLUMNS = ", ".join(TRANSACTION_COLUMNS)

# Written from customer_name at insert time with the same Python functions the
# array backend uses; search and name ordering read only these.
DERIVED_COLUMNS = ("customer_name_folded", "customer_name_sort_key")

COPY_COLUMNS = ", ".join(TRANSACTION_COLUMNS + DERIVED_COLUMNS)

SCHEMA_STATEMENTS = (
    f"""
    CREATE TABLE IF NOT EXISTS {TABLE} (
        seq BIGSERIAL PRIMARY KEY,
        transaction_id TEXT NOT NULL UNIQUE,
        customer_id TEXT,
        customer_name TEXT,
        phone_number TEXT,
        gender TEXT,
        age INTEGER CHECK (age >= 0),
        customer_region TEXT,
        product_id TEXT,
        product_category TEXT,
        tags TEXT[] NOT NULL DEFAULT '{{}}',
        quantity INTEGER NOT NULL DEFAULT 0 CHECK (quantity >= 0),
        total_amount NUMERIC CHECK (total_amount >= 0),
        final_amount NUMERIC CHECK (final_amount >= 0),
        date TIMESTAMPTZ NOT NULL,
        payment_method TEXT,
        employee_name TEXT,
        customer_name_folded TEXT NOT NULL DEFAULT '',
        customer_name_sort_key BYTEA NOT NULL DEFAULT ''::bytea
    )
    """,
    f"CREATE INDEX IF NOT EXISTS ix_transactions_customer_region ON {TABLE} (customer_region)",
    f"CREATE INDEX IF NOT EXISTS ix_transactions_gender ON {TABLE} (gender)",
    f"CREATE INDEX IF NOT EXISTS ix_transactions_age ON {TABLE} (age)",
    f"CREATE INDEX IF NOT EXISTS ix_transactions_product_category ON {TABLE} (product_category)",
    f"CREATE INDEX IF NOT EXISTS ix_transactions_payment_method ON {TABLE} (payment_method)",
    f"CREATE INDEX IF NOT EXISTS ix_transactions_tags ON {TABLE} USING GIN (tags)",
    f"CREATE INDEX IF NOT EXISTS ix_transactions_date ON {TABLE} (date, seq)",
    f"CREATE INDEX IF NOT EXISTS ix_transactions_quantity ON {TABLE} (quantity, seq)",
    f"""
    CREATE INDEX IF NOT EXISTS ix_transactions_customer_name
        ON {TABLE} (customer_name_sort_key, seq)
    """,
)

TRIGRAM_STATEMENTS = (
    "CREATE EXTENSION IF NOT EXISTS pg_trgm",
    f"""
    CREATE INDEX IF NOT EXISTS ix_transactions_customer_name_trgm
        ON {TABLE} USING GIN (customer_name_folded gin_trgm_ops)
    """,
    f"""
    CREATE INDEX IF NOT EXISTS ix_transactions_phone_number_trgm
        ON {TABLE} USING GIN (COALESCE(phone_number, '') gin_trgm_ops)
    """,
)


def ensure_schema(conn: Connection) -> None:
    """
    Create the transactions table and its indexes if missing.

    Substring-search (trigram) indexes need the pg_trgm extension; when the
    role may not create it they are skipped with a warning.
    """
    with conn.transaction():
        with conn.cursor() as cur:
            for statement in SCHEMA_STATEMENTS:
                cur.execute(statement)
    try:
        with conn.transaction():
            with conn.cursor() as cur:
                for statement in TRIGRAM_STATEMENTS:
                    cur.execute(statement)
    except (psycopg.errors.InsufficientPrivilege, psycopg.errors.UndefinedFile) as exc:
        log.warning(
            "pg_trgm unavailable; substring search runs without trigram indexes",
            extra={"error": type(exc).__name__},
        )


def truncate_transactions(conn: Connection) -> None:
    with conn.transaction():
        with conn.cursor() as cur:
            cur.execute(f"TRUNCATE TABLE {TABLE} RESTART IDENTITY")


def _row(record: Transaction) -> tuple:
    values = record.model_dump()
    values["tags"] = list(record.tags)
    return tuple(values[column] for column in TRANSACTION_COLUMNS) + (
        fold_text(record.customer_name),
        name_sort_key(record.customer_name),
    )


def insert_transactions(conn: Connection, records: Iterable[Transaction]) -> int:
    """
    COPY `records` into the store; `seq` follows iteration order.

    Returns the number of rows written.
    """
    written = 0
    with conn.transaction():
        with conn.cursor() as cur:
            with cur.copy(f"COPY {TABLE} ({COPY_COLUMNS}) FROM STDIN") as copy:
                for record in records:
                    copy.write_row(_row(record))
                    written += 1
    log.info("Transactions copied into store", extra={"rows": written})
    return written


def fetch_all_transactions(conn: Connection) -> List[Transaction]:
    """Read every stored transaction in load (`seq`) order."""
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(f"SELECT {SELECT_COLUMNS} FROM {TABLE} ORDER BY seq")
        return [Transaction.model_validate(row) for row in cur.fetchall()]


__all__ = [
    "TABLE",
    "TRANSACTION_COLUMNS",
    "SELECT_COLUMNS",
    "DERIVED_COLUMNS",
    "ensure_schema",
    "truncate_transactions",
    "insert_transactions",
    "fetch_all_transactions",
]
