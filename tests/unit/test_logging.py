from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal

from transaction_query.utils.logging import JsonFormatter, _json_formatter, configure_logging

EXPECTED_TOTAL_ITEMS = 12
EXPECTED_ROWS = 1000


def _record(msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_json_formatter_promotes_standard_extra_fields() -> None:
    record = _record()
    record.total_items = EXPECTED_TOTAL_ITEMS
    record.backend = "array"

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "hello"
    assert payload["total_items"] == EXPECTED_TOTAL_ITEMS
    assert payload["backend"] == "array"
    assert "pathname" not in payload


def test_json_formatter_encodes_query_values() -> None:
    record = _record()
    record.total_amount = Decimal("1050.00")
    record.regions = frozenset({"South", "North"})
    record.start = datetime(2023, 3, 1, tzinfo=timezone.utc)
    record.rows = EXPECTED_ROWS

    payload = json.loads(_json_formatter(record))

    assert payload["total_amount"] == 1050.0
    assert payload["regions"] == ["North", "South"]
    assert payload["start"] == "2023-03-01T00:00:00+00:00"
    assert payload["rows"] == EXPECTED_ROWS
    assert "time" in payload


def test_json_formatter_stringifies_unserializable_values() -> None:
    record = _record()
    record.path = object()

    payload = json.loads(JsonFormatter().format(record))

    assert payload["path"].startswith("<object object")


def test_json_formatter_includes_exception_text() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord(
            "test.logger", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
        )

    payload = json.loads(_json_formatter(record))

    assert "RuntimeError: boom" in payload["exc_info"]


def test_configure_logging_installs_json_handler() -> None:
    root = logging.getLogger()
    previous_handlers, previous_level = root.handlers[:], root.level
    try:
        configure_logging(level="WARNING", json_logs=True)

        assert root.level == logging.WARNING
        assert any(isinstance(h.formatter, JsonFormatter) for h in root.handlers)
    finally:
        root.handlers = previous_handlers
        root.setLevel(previous_level)


def test_configure_logging_quiets_driver_loggers() -> None:
    root = logging.getLogger()
    pool_logger = logging.getLogger("psycopg.pool")
    previous_handlers, previous_level = root.handlers[:], root.level
    previous_pool_level = pool_logger.level
    try:
        configure_logging(level="info")
        assert pool_logger.level == logging.WARNING
        assert root.handlers[0].stream is sys.stderr

        configure_logging(level="DEBUG")
        assert pool_logger.level == logging.DEBUG
    finally:
        root.handlers = previous_handlers
        root.setLevel(previous_level)
        pool_logger.setLevel(previous_pool_level)
