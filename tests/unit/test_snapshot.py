from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from transaction_query.domain.models import Transaction
from transaction_query.errors import NotLoadedError
from transaction_query.infrastructure.snapshot import SnapshotSource, csv_loader

CONCURRENT_CALLERS = 8


class _CountingLoader:
    def __init__(self, records=None, release: threading.Event | None = None) -> None:
        self.records = records or [Transaction(transaction_id="TX1")]
        self.release = release
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.release is not None:
            self.release.wait(timeout=5)
        return list(self.records)


def test_snapshot_before_load_raises_not_loaded() -> None:
    source = SnapshotSource(_CountingLoader(), label="pending")

    assert not source.is_loaded
    with pytest.raises(NotLoadedError, match="pending"):
        source.snapshot()


def test_load_runs_loader_once_and_freezes_records() -> None:
    loader = _CountingLoader()
    source = SnapshotSource(loader)

    first = source.load()
    second = source.load()

    assert first is second is source.snapshot()
    assert isinstance(first, tuple)
    assert loader.calls == 1
    assert source.load_count == 1


def test_concurrent_callers_share_one_in_flight_load() -> None:
    release = threading.Event()
    loader = _CountingLoader(release=release)
    source = SnapshotSource(loader)

    with ThreadPoolExecutor(max_workers=CONCURRENT_CALLERS) as pool:
        futures = [pool.submit(source.load) for _ in range(CONCURRENT_CALLERS)]
        release.set()
        results = [future.result(timeout=10) for future in futures]

    assert loader.calls == 1
    assert all(result is results[0] for result in results)


def test_failed_load_is_not_cached() -> None:
    attempts = []

    def flaky_loader():
        attempts.append(1)
        if len(attempts) == 1:
            raise OSError("disk unavailable")
        return [Transaction(transaction_id="TX1")]

    source = SnapshotSource(flaky_loader)

    with pytest.raises(OSError):
        source.load()
    assert not source.is_loaded

    assert len(source.load()) == 1
    assert len(attempts) == 2


def test_clear_invalidates_and_reload_reads_again() -> None:
    loader = _CountingLoader()
    source = SnapshotSource(loader)
    source.load()

    source.clear()
    with pytest.raises(NotLoadedError):
        source.snapshot()

    source.reload()
    assert source.is_loaded
    assert loader.calls == 2
    assert source.load_count == 2


def test_from_records_is_preloaded(sample_records) -> None:
    source = SnapshotSource.from_records(sample_records)

    assert source.snapshot() == tuple(sample_records)


def test_csv_loader_reads_lazily(tmp_path) -> None:
    path = tmp_path / "transactions.csv"
    loader = csv_loader(path)
    path.write_text("transactionId,customerName\nTX1,Ada\n", encoding="utf-8")

    records = SnapshotSource(loader).load()

    assert [record.customer_name for record in records] == ["Ada"]


def test_clear_during_in_flight_load_is_not_lost() -> None:
    release = threading.Event()
    started = threading.Event()
    generations = iter([[Transaction(transaction_id="OLD")], [Transaction(transaction_id="NEW")]])

    def blocking_loader():
        batch = next(generations)
        if batch[0].transaction_id == "OLD":
            started.set()
            release.wait(timeout=5)
        return batch

    source = SnapshotSource(blocking_loader)
    with ThreadPoolExecutor(max_workers=1) as pool:
        pending = pool.submit(source.load)
        assert started.wait(timeout=5)
        source.clear()
        release.set()
        stale = pending.result(timeout=10)

    assert [record.transaction_id for record in stale] == ["OLD"]
    assert not source.is_loaded
    assert source.load_count == 0

    fresh = source.load()
    assert [record.transaction_id for record in fresh] == ["NEW"]
    assert source.snapshot() is fresh
    assert source.load_count == 1


def test_load_after_clear_does_not_join_the_superseded_load() -> None:
    release = threading.Event()
    started = threading.Event()
    calls = []

    def loader():
        calls.append(1)
        if len(calls) == 1:
            started.set()
            release.wait(timeout=5)
        return [Transaction(transaction_id=f"TX{len(calls)}")]

    source = SnapshotSource(loader)
    with ThreadPoolExecutor(max_workers=1) as pool:
        pending = pool.submit(source.load)
        assert started.wait(timeout=5)
        source.clear()
        fresh = source.load()
        release.set()
        pending.result(timeout=10)

    assert [record.transaction_id for record in fresh] == ["TX2"]
    assert source.snapshot() is fresh
    assert len(calls) == 2
