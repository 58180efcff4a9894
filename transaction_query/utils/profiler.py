"""
Resource measurements for backend comparison runs.

`profile_block` times one backend call and records what it cost the process:
peak RSS from a psutil sampling thread, peak Python heap from tracemalloc and
a CPU percent reading. The array backend's work shows up in both memory
figures; most of the store backend's work happens in the database server and
only its result decoding is visible here.

Usage:
    from transaction_query.utils.profiler import profile_block

    with profile_block("store") as stats:
        engine.query(params)

    print(stats.duration_ms, stats.peak_traced_bytes)
"""

from __future__ import annotations

import contextlib
import threading
import time
import tracemalloc
from dataclasses import dataclass
from typing import Any, Dict, Generator, Optional

import psutil


@dataclass
class ProfileStats:
    """
    Measurements for one profiled backend call.
    """

    label: str
    duration_seconds: float = 0.0
    peak_rss_bytes: Optional[int] = None
    peak_traced_bytes: Optional[int] = None
    cpu_percent: Optional[float] = None

    @property
    def duration_ms(self) -> float:
        return self.duration_seconds * 1000

    def as_row(self) -> Dict[str, Any]:
        """Rounded figures for comparison rows and log extras."""
        return {
            "duration_seconds": round(self.duration_seconds, 4),
            "peak_rss_bytes": self.peak_rss_bytes,
            "peak_traced_bytes": self.peak_traced_bytes,
            "cpu_percent": round(self.cpu_percent, 1) if self.cpu_percent is not None else None,
        }


class _RssSampler(threading.Thread):
    """Polls the process RSS until stopped and keeps the highest reading."""

    def __init__(self, process: psutil.Process, interval_seconds: float) -> None:
        super().__init__(name="rss-sampler", daemon=True)
        self._process = process
        self._interval = interval_seconds
        self._halt = threading.Event()
        self.peak = process.memory_info().rss

    def _sample(self) -> bool:
        try:
            self.peak = max(self.peak, self._process.memory_info().rss)
        except psutil.Error:
            return False
        return True

    def run(self) -> None:
        while not self._halt.wait(self._interval):
            if not self._sample():
                return

    def stop(self) -> int:
        self._halt.set()
        self.join(timeout=1.0)
        self._sample()
        return self.peak


@contextlib.contextmanager
def profile_block(
    label: str, sample_interval_ms: int = 50, trace_allocations: bool = True
) -> Generator[ProfileStats, None, None]:
    """
    Profile the enclosed block.

    Parameters
    ----------
    label : str
        Name recorded on the stats, usually the backend name.
    sample_interval_ms : int
        RSS polling interval. Short queries finish between samples; a final
        sample is always taken on exit.
    trace_allocations : bool
        Record the peak traced Python heap. When tracemalloc is already
        running its peak is reset so each block reports its own.
    """
    stats = ProfileStats(label=label)
    process = psutil.Process()

    started_tracing = trace_allocations and not tracemalloc.is_tracing()
    if started_tracing:
        tracemalloc.start()
    elif trace_allocations:
        tracemalloc.reset_peak()

    # The first cpu_percent call only primes the counter.
    process.cpu_percent(interval=None)
    sampler = _RssSampler(process, sample_interval_ms / 1000.0)
    sampler.start()

    started = time.perf_counter()
    try:
        yield stats
    finally:
        stats.duration_seconds = time.perf_counter() - started
        stats.peak_rss_bytes = sampler.stop()
        stats.cpu_percent = process.cpu_percent(interval=None)
        if trace_allocations:
            stats.peak_traced_bytes = tracemalloc.get_traced_memory()[1]
            if started_tracing:
                tracemalloc.stop()


__all__ = ["ProfileStats", "profile_block"]
