from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Optional

import psycopg
import typer

from transaction_query.backends.array import ArrayBackend
from transaction_query.comparison import all_agree, compare_backends
from transaction_query.config import Settings, get_settings
from transaction_query.domain.request import sort_options
from transaction_query.engine import QueryEngine, available_backends, build_backend, build_engine
from transaction_query.errors import QueryError, ValidationError
from transaction_query.infrastructure.db_factory import get_sync_connection
from transaction_query.infrastructure.ingest import read_transactions_csv
from transaction_query.infrastructure.schema import (
    ensure_schema,
    insert_transactions,
    truncate_transactions,
)
from transaction_query.infrastructure.snapshot import SnapshotSource, store_loader
from transaction_query.reporter import print_comparison
from transaction_query.utils.logging import configure_logging

app = typer.Typer(help="Transaction query engine CLI.")

SEARCH_OPTION = typer.Option(None, "--search", "-q", help="Case-insensitive name/phone search.")
FILTERS_OPTION = typer.Option(
    None, "--filters", "-f", help='Filters as JSON, e.g. \'{"gender": ["Male"], "ageRange": {"min": 30}}\'.'
)
BACKEND_OPTION = typer.Option(None, "--backend", "-b", help="Backend: array or store (default from settings).")


def _setup() -> Settings:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    return settings


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2))


@contextmanager
def _handle_errors() -> Generator[None, None, None]:
    """Map engine errors to exit codes: 2 for invalid requests, 1 otherwise."""
    try:
        yield
    except ValidationError as exc:
        typer.echo(f"{exc.message}:", err=True)
        for error in exc.errors:
            typer.echo(f"  - {error}", err=True)
        raise typer.Exit(code=2)
    except QueryError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)
    except (OSError, psycopg.Error) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)


def _engine(backend: Optional[str], settings: Settings) -> QueryEngine:
    if backend is not None and backend not in available_backends():
        typer.echo(f"Unknown backend '{backend}'. Available: {', '.join(available_backends())}", err=True)
        raise typer.Exit(code=2)
    return build_engine(backend, settings)


def _request_params(
    search: Optional[str],
    filters: Optional[str],
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    page: Optional[int] = None,
    page_size: Optional[int] = None,
) -> Dict[str, Any]:
    params = {
        "search": search,
        "filters": filters,
        "sortBy": sort_by,
        "sortOrder": sort_order,
        "page": page,
        "pageSize": page_size,
    }
    return {key: value for key, value in params.items() if value is not None}


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"backend={settings.query_backend} dataset={settings.dataset_path} "
        f"timeout={settings.query_timeout_seconds}s statement_timeout={settings.db_statement_timeout_ms}ms"
    )
    typer.echo("Available backends: " + ", ".join(available_backends()))
    typer.echo(
        "Sort fields: "
        + ", ".join(f"{field['value']} ({field['defaultOrder']})" for field in sort_options()["fields"])
    )


@app.command()
def query(
    search: Optional[str] = SEARCH_OPTION,
    filters: Optional[str] = FILTERS_OPTION,
    sort_by: Optional[str] = typer.Option(None, "--sort-by", "-s", help="date, quantity or customerName."),
    sort_order: Optional[str] = typer.Option(None, "--sort-order", "-o", help="asc or desc."),
    page: Optional[int] = typer.Option(None, "--page", "-p"),
    page_size: Optional[int] = typer.Option(None, "--page-size", "-n"),
    backend: Optional[str] = BACKEND_OPTION,
) -> None:
    """
    Run one page query and print the response as JSON.
    """
    settings = _setup()
    with _handle_errors():
        engine = _engine(backend, settings)
        try:
            result = engine.query(
                _request_params(search, filters, sort_by, sort_order, page, page_size)
            )
        finally:
            engine.close()
    _echo_json(result.to_response())


@app.command()
def options(
    search: Optional[str] = SEARCH_OPTION,
    filters: Optional[str] = FILTERS_OPTION,
    backend: Optional[str] = BACKEND_OPTION,
) -> None:
    """
    Print the filter values available within a search/filter context.
    """
    settings = _setup()
    with _handle_errors():
        engine = _engine(backend, settings)
        try:
            result = engine.filter_options(_request_params(search, filters))
        finally:
            engine.close()
    _echo_json(result.to_response())


@app.command()
def stats(backend: Optional[str] = BACKEND_OPTION) -> None:
    """
    Print dataset-wide statistics.
    """
    settings = _setup()
    with _handle_errors():
        engine = _engine(backend, settings)
        try:
            summary = engine.statistics()
        finally:
            engine.close()
    _echo_json(summary.to_response())


@app.command("init-db")
def init_db() -> None:
    """
    Create the transactions table and its indexes.
    """
    _setup()
    with _handle_errors():
        with get_sync_connection() as conn:
            ensure_schema(conn)
    typer.echo("Schema ready.")


@app.command()
def load(
    path: Optional[Path] = typer.Argument(None, help="CSV file (default: DATASET_PATH)."),
    truncate: bool = typer.Option(True, "--truncate/--append", help="Replace existing rows."),
) -> None:
    """
    Import a transactions CSV into the store.
    """
    settings = _setup()
    source = path or Path(settings.dataset_path)
    with _handle_errors():
        records = read_transactions_csv(source)
        with get_sync_connection() as conn:
            ensure_schema(conn)
            if truncate:
                truncate_transactions(conn)
            written = insert_transactions(conn, records)
    typer.echo(f"Loaded {written} transactions from {source}.")


@app.command()
def compare(
    search: Optional[str] = SEARCH_OPTION,
    filters: Optional[str] = FILTERS_OPTION,
    sort_by: Optional[str] = typer.Option(None, "--sort-by", "-s"),
    sort_order: Optional[str] = typer.Option(None, "--sort-order", "-o"),
    page: Optional[int] = typer.Option(None, "--page", "-p"),
    page_size: Optional[int] = typer.Option(None, "--page-size", "-n"),
) -> None:
    """
    Run one request through both backends and report timings and agreement.

    The array snapshot is read from the store so both backends see the same rows.
    """
    settings = _setup()
    params = _request_params(search, filters, sort_by, sort_order, page, page_size)
    with _handle_errors():
        store = build_backend("store", settings)
        try:
            source = SnapshotSource(store_loader(store.pool), label="store snapshot")
            source.load()
            engines = [
                QueryEngine(ArrayBackend(source), settings.query_timeout_seconds),
                QueryEngine(store, settings.query_timeout_seconds),
            ]
            rows = compare_backends(params, engines)
        finally:
            store.close()
    print_comparison(rows)
    if not all_agree(rows):
        raise typer.Exit(code=1)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
