"""
Utilities package for the transaction query engine.

Exports shared helpers for logging and profiling. Keep this package
lightweight and free of domain-specific logic.
"""

from transaction_query.utils.logging import configure_logging, get_logger
from transaction_query.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
