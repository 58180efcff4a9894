"""
Synthetic transaction data generation and loading.

Implements deterministic pseudo-random transaction generation, CSV emission
with the camelCase export headers, and optional loading into the store via
COPY.
"""

from __future__ import annotations

import csv
import random
import sys
import tempfile
import time
from datetime import UTC, datetime, timedelta
from pathlib import Path

import psycopg
import typer

from transaction_query.infrastructure.db_factory import build_dsn, get_sync_connection
from transaction_query.infrastructure.ingest import read_transactions_csv
from transaction_query.infrastructure.schema import (
    ensure_schema,
    insert_transactions,
    truncate_transactions,
)

app = typer.Typer(help="Generate synthetic transactions (CSV) and load them into Postgres (COPY).")

CSV_HEADERS = [
    "transactionId",
    "customerId",
    "customerName",
    "phoneNumber",
    "gender",
    "age",
    "customerRegion",
    "productId",
    "productCategory",
    "tags",
    "quantity",
    "totalAmount",
    "finalAmount",
    "date",
    "paymentMethod",
    "employeeName",
]

FIRST_NAMES = ["John", "Alice", "Bob", "Priya", "Chen", "Maria", "Omar", "Sofia", "Liam", "Aisha"]
LAST_NAMES = ["Doe", "Johnson", "Smith", "Sharma", "Wei", "Garcia", "Haddad", "Rossi", "Brown", "Khan"]
REGIONS = ["North", "South", "East", "West", "Central"]
GENDERS = ["Male", "Female", "Other"]
CATEGORIES = ["Electronics", "Clothing", "Beauty", "Home", "Sports"]
TAGS = ["organic", "wireless", "gift", "sale", "premium", "eco", "new", "bundle"]
PAYMENT_METHODS = ["Cash", "Credit Card", "Debit Card", "UPI", "Wallet"]
EMPLOYEES = ["Ravi Kumar", "Emma Stone", "Lucas Meyer", "Nina Patel"]

EPOCH = datetime(2023, 1, 1, tzinfo=UTC)


def _generate_row(rng: random.Random, index: int, customers: int, products: int) -> list[str]:
    customer = rng.randrange(customers)
    name_rng = random.Random(customer)
    quantity = rng.randint(1, 10)
    unit_price = rng.randint(5_00, 500_00)
    total_cents = quantity * unit_price
    discount_pct = rng.choice([0, 0, 0, 5, 10, 15, 20])
    final_cents = total_cents - total_cents * discount_pct // 100
    timestamp = EPOCH + timedelta(seconds=rng.randrange(2 * 365 * 24 * 3600))
    tags = rng.sample(TAGS, rng.randint(0, 3))
    return [
        f"TX{index:08d}",
        f"CUST{customer:06d}",
        f"{name_rng.choice(FIRST_NAMES)} {name_rng.choice(LAST_NAMES)}",
        f"9{name_rng.randrange(10**9):09d}",
        name_rng.choice(GENDERS),
        str(name_rng.randint(18, 75)),
        name_rng.choice(REGIONS),
        f"PROD{rng.randrange(products):05d}",
        rng.choice(CATEGORIES),
        ",".join(tags),
        str(quantity),
        f"{total_cents / 100:.2f}",
        f"{final_cents / 100:.2f}",
        timestamp.isoformat(),
        rng.choice(PAYMENT_METHODS),
        rng.choice(EMPLOYEES),
    ]


def _generate_rows_csv(csv_path: Path, rows: int, batch_size: int, seed: int) -> None:
    rng = random.Random(seed)
    customers = max(1, rows // 4)
    products = max(1, rows // 10)

    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADERS)

        buffer: list[list[str]] = []
        for i in range(1, rows + 1):
            buffer.append(_generate_row(rng, i, customers, products))
            if len(buffer) >= batch_size:
                writer.writerows(buffer)
                buffer.clear()
        if buffer:
            writer.writerows(buffer)


def _copy_into_db(dsn: str, csv_path: Path, truncate: bool = True) -> int:
    records = read_transactions_csv(csv_path)
    with get_sync_connection(dsn) as conn:
        ensure_schema(conn)
        if truncate:
            truncate_transactions(conn)
        return insert_transactions(conn, records)


@app.command()
def main(
    rows: int = typer.Option(
        10_000,
        "--rows",
        "-r",
        help="Number of transactions to generate.",
    ),
    batch_size: int = typer.Option(
        5_000,
        "--batch-size",
        "-b",
        help="Batch size for CSV buffering during generation.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Optional CSV output path (if omitted, a temp file will be used).",
    ),
    dsn: str | None = typer.Option(
        None,
        "--dsn",
        help="Optional DSN override for Postgres.",
    ),
    no_load: bool = typer.Option(
        False,
        "--no-load",
        help="Only generate CSV; skip loading into Postgres.",
    ),
) -> None:
    """
    Generate synthetic transactions and optionally load them into Postgres using COPY.
    """
    start = time.perf_counter()
    if output:
        csv_path = output
        csv_path.parent.mkdir(parents=True, exist_ok=True)
    else:
        tmpdir = Path(tempfile.mkdtemp(prefix="transactions_csv_"))
        csv_path = tmpdir / "transactions.csv"

    typer.echo(f"Generating {rows:,} transactions -> {csv_path} (batch={batch_size}, seed={seed})")
    _generate_rows_csv(csv_path, rows=rows, batch_size=batch_size, seed=seed)
    gen_duration = time.perf_counter() - start
    typer.echo(f"CSV generation completed in {gen_duration:.2f}s")

    if no_load:
        typer.echo("Skipping load (no-load flag set).")
        return

    load_start = time.perf_counter()
    typer.echo("Loading CSV into Postgres via COPY...")
    try:
        written = _copy_into_db(dsn or build_dsn(), csv_path)
    except psycopg.Error as exc:
        typer.echo(f"Load failed: {exc}", err=True)
        raise typer.Exit(code=1)
    load_duration = time.perf_counter() - load_start

    typer.echo(
        f"Loaded {written:,} transactions in {load_duration:.2f}s. "
        f"Total time {time.perf_counter() - start:.2f}s."
    )


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
