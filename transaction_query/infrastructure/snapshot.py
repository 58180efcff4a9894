"""
In-memory transaction snapshot with a single-flight loader.

The array backend reads from a SnapshotSource injected at construction time
rather than from process-global state, so tests can build isolated instances.
The first `load()` runs the loader; callers arriving while it runs wait on the
same in-flight future and get its result (or its exception). A completed
snapshot is immutable until `clear()` drops it. A load still running when
`clear()` is called answers the callers already waiting on it but is not kept.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from transaction_query.domain.models import Transaction
from transaction_query.errors import NotLoadedError
from transaction_query.infrastructure.db_factory import PoolManager
from transaction_query.infrastructure.ingest import read_transactions_csv
from transaction_query.infrastructure.schema import fetch_all_transactions
from transaction_query.utils.logging import get_logger

log = get_logger(__name__)

Loader = Callable[[], Iterable[Transaction]]
Snapshot = Tuple[Transaction, ...]


class SnapshotSource:
    """
    Holds one immutable tuple of transactions with load/clear lifecycle.
    """

    def __init__(self, loader: Loader, label: str = "snapshot") -> None:
        self._loader = loader
        self.label = label
        self._lock = threading.Lock()
        self._records: Optional[Snapshot] = None
        self._inflight: Optional[Future] = None
        # Bumped by clear(); a load started under an older generation
        # returns its records to its callers but does not publish them.
        self._generation = 0
        self.load_count = 0

    @classmethod
    def from_records(cls, records: Iterable[Transaction], label: str = "static") -> "SnapshotSource":
        """Build an already-loaded source, mostly useful in tests."""
        frozen = tuple(records)
        source = cls(lambda: frozen, label=label)
        source.load()
        return source

    @property
    def is_loaded(self) -> bool:
        return self._records is not None

    def snapshot(self) -> Snapshot:
        """
        Return the loaded records.

        Raises
        ------
        NotLoadedError
            If `load()` has not completed yet.
        """
        records = self._records
        if records is None:
            raise NotLoadedError(f"Transaction {self.label} has not been loaded")
        return records

    def load(self) -> Snapshot:
        """Load the snapshot once; concurrent callers share the in-flight load."""
        with self._lock:
            if self._records is not None:
                return self._records
            future = self._inflight
            is_owner = future is None
            if future is None:
                future = Future()
                self._inflight = future
            generation = self._generation

        if not is_owner:
            return future.result()

        start = time.perf_counter()
        try:
            records = tuple(self._loader())
        except BaseException as exc:
            with self._lock:
                if self._inflight is future:
                    self._inflight = None
            future.set_exception(exc)
            log.exception("Snapshot load failed", extra={"source": self.label})
            raise

        with self._lock:
            stale = generation != self._generation
            if not stale:
                self._records = records
                self._inflight = None
                self.load_count += 1
        future.set_result(records)
        if stale:
            log.info("Snapshot load superseded by clear(); not kept", extra={"source": self.label})
            return records
        log.info(
            f"Loaded {len(records)} transactions",
            extra={
                "source": self.label,
                "records": len(records),
                "duration_seconds": round(time.perf_counter() - start, 3),
            },
        )
        return records

    def clear(self) -> None:
        """Invalidate the loaded snapshot; the next `load()` reads again."""
        with self._lock:
            self._records = None
            self._inflight = None
            self._generation += 1
        log.info("Snapshot cleared", extra={"source": self.label})

    def reload(self) -> Snapshot:
        self.clear()
        return self.load()


def csv_loader(path: Path | str) -> Loader:
    """Loader reading transactions from a CSV export."""
    return lambda: read_transactions_csv(Path(path))


def store_loader(pool: PoolManager) -> Loader:
    """Loader reading every stored transaction in load order."""

    def load() -> List[Transaction]:
        with pool.connection() as conn:
            return fetch_all_transactions(conn)

    return load


__all__ = ["Loader", "Snapshot", "SnapshotSource", "csv_loader", "store_loader"]
