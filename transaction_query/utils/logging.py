"""
Structured logging utilities for the transaction query engine.

Human-readable lines by default, one JSON object per line when `LOG_JSON` is
set. Log output always goes to stderr: the CLI prints query results as JSON
on stdout and the two streams must not mix.

Usage:
    from transaction_query.utils.logging import configure_logging, get_logger

    configure_logging(level="INFO", json_logs=False)
    log = get_logger(__name__)
    log.info("Query executed", extra={"backend": "array", "total_items": 12})
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel

# Attributes every LogRecord carries; anything else came in through `extra=`.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime"}

# Pool and driver chatter (connection opened/returned) stays out of INFO output.
_DRIVER_LOGGERS = ("psycopg", "psycopg.pool")


def _jsonable(value: Any) -> Any:
    """Fallback encoder for values engine extras commonly carry."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    return str(value)


def _json_formatter(record: logging.LogRecord) -> str:
    """Render a log record as JSON string."""
    payload: Dict[str, Any] = {
        "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    if record.stack_info:
        payload["stack_info"] = record.stack_info
    for key, value in vars(record).items():
        if key not in _STANDARD_ATTRS and not key.startswith("_"):
            payload[key] = value
    return json.dumps(payload, default=_jsonable)


class JsonFormatter(logging.Formatter):
    """One JSON object per record, `extra=` fields promoted to top-level keys."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure root logging for a CLI run.

    Parameters
    ----------
    level : str
        Logging level name (e.g., "DEBUG", "INFO", "WARNING").
    json_logs : bool
        Emit JSON lines instead of the pipe-separated console format.

    psycopg loggers are held at WARNING unless `level` is DEBUG.
    """
    level = level.upper()
    driver_level = "DEBUG" if level == "DEBUG" else "WARNING"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {
                    "()": JsonFormatter,
                },
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "json" if json_logs else "console",
                    "level": level,
                }
            },
            "loggers": {name: {"level": driver_level} for name in _DRIVER_LOGGERS},
            "root": {
                "handlers": ["stderr"],
                "level": level,
            },
        }
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "JsonFormatter"]
