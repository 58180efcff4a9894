"""
Execution backends for the transaction query engine.

Exports the backend protocol and the two conforming implementations.
"""

from transaction_query.backends.abstract import AbstractQueryBackend, BackendSession, QueryBackend
from transaction_query.backends.array import ArrayBackend
from transaction_query.backends.store import StoreBackend

__all__ = [
    "AbstractQueryBackend",
    "BackendSession",
    "QueryBackend",
    "ArrayBackend",
    "StoreBackend",
]
