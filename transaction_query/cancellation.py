"""
Cooperative cancellation for query execution.

A CancellationToken is handed to every backend session. In-memory scans poll
it periodically through `guard`; store sessions register a callback that
cancels the running statement on the server, and derive their statement
timeout from `remaining()`.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Callable, Generator, Iterable, Iterator, List, Optional, TypeVar

from transaction_query.errors import QueryCancelledError

T = TypeVar("T")

CHECK_INTERVAL = 1024


class CancellationToken:
    """
    Signals that a request should stop.

    Fires either when `cancel()` is called (from any thread) or once the
    optional timeout has elapsed since construction.
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    @classmethod
    def none(cls) -> "CancellationToken":
        """A token that only fires on explicit cancel()."""
        return cls(timeout=None)

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise QueryCancelledError("Query was cancelled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise QueryCancelledError("Query exceeded its time budget")

    @contextmanager
    def on_cancel(self, callback: Callable[[], None]) -> Generator[None, None, None]:
        """
        Register `callback` to run when cancel() is called while the block is active.

        If the token is already cancelled the callback is not registered and
        QueryCancelledError is raised immediately.
        """
        with self._lock:
            if self._event.is_set():
                raise QueryCancelledError("Query was cancelled")
            self._callbacks.append(callback)
        try:
            yield
        finally:
            with self._lock:
                self._callbacks.remove(callback)

    def guard(self, items: Iterable[T], every: int = CHECK_INTERVAL) -> Iterator[T]:
        """Yield from `items`, checking for cancellation every `every` elements."""
        self.raise_if_cancelled()
        for index, item in enumerate(items, start=1):
            if index % every == 0:
                self.raise_if_cancelled()
            yield item


__all__ = ["CancellationToken", "CHECK_INTERVAL"]
