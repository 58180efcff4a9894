from __future__ import annotations

import csv

from scripts import generate_data
from transaction_query.infrastructure.ingest import read_transactions_csv

ROWS = 50


def test_generated_csv_uses_export_headers(tmp_path) -> None:
    path = tmp_path / "out.csv"

    generate_data._generate_rows_csv(path, rows=ROWS, batch_size=7, seed=1)

    with path.open(newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == generate_data.CSV_HEADERS
    assert len(rows) == ROWS + 1


def test_generation_is_deterministic_per_seed(tmp_path) -> None:
    first, second, other = tmp_path / "a.csv", tmp_path / "b.csv", tmp_path / "c.csv"

    generate_data._generate_rows_csv(first, rows=ROWS, batch_size=10, seed=3)
    generate_data._generate_rows_csv(second, rows=ROWS, batch_size=25, seed=3)
    generate_data._generate_rows_csv(other, rows=ROWS, batch_size=10, seed=4)

    assert first.read_text() == second.read_text()
    assert first.read_text() != other.read_text()


def test_generated_rows_are_valid_transactions(tmp_path) -> None:
    path = tmp_path / "out.csv"
    generate_data._generate_rows_csv(path, rows=ROWS, batch_size=10, seed=9)

    records = read_transactions_csv(path)

    assert len(records) == ROWS
    assert len({record.transaction_id for record in records}) == ROWS
    for record in records:
        assert record.quantity >= 1
        assert record.final_amount <= record.total_amount
        assert record.date.year in (2023, 2024)
