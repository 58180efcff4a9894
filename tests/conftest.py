"""
Pytest configuration for the transaction query engine.

Provides fixtures for:
- The five-record sample dataset and array-backed engines over it
- Database connection management for store-backed tests
- Schema setup and table cleanup between store tests
"""

from __future__ import annotations

import os
from typing import Generator, List

import psycopg
import pytest

from transaction_query.backends.array import ArrayBackend
from transaction_query.backends.store import StoreBackend
from transaction_query.config import Settings
from transaction_query.domain.models import Transaction
from transaction_query.engine import QueryEngine
from transaction_query.infrastructure.db_factory import PoolManager, build_dsn
from transaction_query.infrastructure.schema import ensure_schema, truncate_transactions
from transaction_query.infrastructure.snapshot import SnapshotSource

SAMPLE_ROWS = [
    {
        "transactionId": "TX001",
        "customerId": "C001",
        "customerName": "John Doe",
        "phoneNumber": "9876543210",
        "gender": "Male",
        "age": 35,
        "customerRegion": "North",
        "productId": "P001",
        "productCategory": "Electronics",
        "tags": "wireless,gift",
        "quantity": 3,
        "totalAmount": "300.00",
        "finalAmount": "270.00",
        "date": "2023-03-15T10:00:00Z",
        "paymentMethod": "Credit Card",
        "employeeName": "Emma Stone",
    },
    {
        "transactionId": "TX002",
        "customerId": "C002",
        "customerName": "Alice Johnson",
        "phoneNumber": "9123456780",
        "gender": "Female",
        "age": 28,
        "customerRegion": "South",
        "productId": "P002",
        "productCategory": "Beauty",
        "tags": "organic",
        "quantity": 1,
        "totalAmount": "50.00",
        "finalAmount": "50.00",
        "date": "2023-05-01T09:30:00Z",
        "paymentMethod": "UPI",
        "employeeName": "Lucas Meyer",
    },
    {
        "transactionId": "TX003",
        "customerId": "C003",
        "customerName": "Bob Smith",
        "phoneNumber": "9000011111",
        "gender": "Male",
        "age": 42,
        "customerRegion": "East",
        "productId": "P001",
        "productCategory": "Electronics",
        "tags": "premium,gift",
        "quantity": 5,
        "totalAmount": "500.00",
        "finalAmount": "450.00",
        "date": "2023-01-20T15:45:00Z",
        "paymentMethod": "Cash",
        "employeeName": "Emma Stone",
    },
    {
        "transactionId": "TX004",
        "customerId": "C004",
        "customerName": "Priya Sharma",
        "phoneNumber": "9555500000",
        "gender": "Female",
        "age": 51,
        "customerRegion": "West",
        "productId": "P003",
        "productCategory": "Clothing",
        "tags": "",
        "quantity": 2,
        "totalAmount": "120.00",
        "finalAmount": "120.00",
        "date": "2023-07-04T12:00:00Z",
        "paymentMethod": "Debit Card",
        "employeeName": "Nina Patel",
    },
    {
        "transactionId": "TX005",
        "customerId": "C005",
        "customerName": "Chen Wei",
        "phoneNumber": "9777700000",
        "gender": "Male",
        "age": 23,
        "customerRegion": "North",
        "productId": "P004",
        "productCategory": "Sports",
        "tags": "sale",
        "quantity": 4,
        "totalAmount": "80.00",
        "finalAmount": None,
        "date": "2023-02-11T08:15:00Z",
        "paymentMethod": "Cash",
        "employeeName": "Ravi Kumar",
    },
]


@pytest.fixture
def sample_records() -> List[Transaction]:
    """The five-record dataset, in load order."""
    return [Transaction.model_validate(row) for row in SAMPLE_ROWS]


@pytest.fixture
def array_source(sample_records: List[Transaction]) -> SnapshotSource:
    return SnapshotSource.from_records(sample_records, label="sample")


@pytest.fixture
def array_engine(array_source: SnapshotSource) -> QueryEngine:
    return QueryEngine(ArrayBackend(array_source))


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "transactions"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return build_dsn(test_settings)


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped autocommit connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn, autocommit=True, options="-c timezone=UTC")
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="session")
def db_schema_initialized(db_connection: psycopg.Connection) -> bool:
    """
    Ensure the transactions table and its indexes exist.
    """
    ensure_schema(db_connection)
    return True


@pytest.fixture(scope="function")
def clean_transactions_table(db_connection: psycopg.Connection, db_schema_initialized: bool):
    """
    Empty the transactions table before and after each test function.
    """
    truncate_transactions(db_connection)
    yield
    truncate_transactions(db_connection)


@pytest.fixture(scope="session")
def store_pool(
    test_dsn: str, db_connection_available: bool
) -> Generator[PoolManager, None, None]:
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    pool = PoolManager(dsn=test_dsn, min_size=1, max_size=4)
    try:
        yield pool
    finally:
        pool.close()


@pytest.fixture
def store_backend(store_pool: PoolManager, clean_transactions_table) -> StoreBackend:
    """Store backend over an empty table; the pool outlives the backend."""
    return StoreBackend(store_pool, statement_timeout_ms=10_000)
