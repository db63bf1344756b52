"""Tests for the bounded per-cluster history store."""

from __future__ import annotations

import threading
from datetime import timedelta

import pytest
from fakes import T0
from hypothesis import given, settings
from hypothesis import strategies as st

from klaw.models.metrics import ClusterSample
from klaw.monitoring.history import HistoryStore, ReadWriteLock


def _sample(cluster: str, seq: int) -> ClusterSample:
    return ClusterSample(cluster_name=cluster, timestamp=T0 + timedelta(seconds=seq))


class TestHistoryStore:
    def test_empty_cluster(self) -> None:
        store = HistoryStore()
        assert store.latest("a") is None
        assert store.snapshot("a") == []
        assert store.size("a") == 0
        assert store.clusters() == []

    def test_ring_overflow_drops_oldest(self) -> None:
        store = HistoryStore(100)
        samples = [_sample("a", i) for i in range(105)]
        for s in samples:
            store.append("a", s)

        snapshot = store.snapshot("a")
        assert len(snapshot) == 100
        assert snapshot[0] == samples[5]
        assert all(s not in snapshot for s in samples[:5])
        assert store.latest("a") == samples[104]

    def test_clusters_are_independent(self) -> None:
        store = HistoryStore(3)
        for i in range(5):
            store.append("a", _sample("a", i))
        store.append("b", _sample("b", 0))
        assert store.size("a") == 3
        assert store.size("b") == 1
        assert sorted(store.clusters()) == ["a", "b"]

    def test_snapshot_is_a_copy(self) -> None:
        store = HistoryStore()
        store.append("a", _sample("a", 0))
        snapshot = store.snapshot("a")
        snapshot.clear()
        assert store.size("a") == 1

    def test_non_positive_size_rejected(self) -> None:
        with pytest.raises(ValueError):
            HistoryStore(0)

    def test_size_never_exceeds_cap(self) -> None:
        store = HistoryStore(500)
        for i in range(150):
            store.append("a", _sample("a", i))
        assert store.maxlen == 100
        assert store.size("a") == 100
        assert store.snapshot("a")[0].timestamp == T0 + timedelta(seconds=50)

    @settings(max_examples=50)
    @given(
        maxlen=st.integers(min_value=1, max_value=20),
        appends=st.lists(st.sampled_from(["a", "b", "c"]), max_size=80),
    )
    def test_bound_and_fifo_hold_for_any_ordering(self, maxlen: int, appends: list[str]) -> None:
        store = HistoryStore(maxlen)
        for seq, cluster in enumerate(appends):
            store.append(cluster, _sample(cluster, seq))
            assert store.size(cluster) <= maxlen

        for cluster in ("a", "b", "c"):
            snapshot = store.snapshot(cluster)
            expected = [seq for seq, c in enumerate(appends) if c == cluster][-maxlen:]
            assert [int((s.timestamp - T0).total_seconds()) for s in snapshot] == expected


class TestReadWriteLock:
    def test_readers_share(self) -> None:
        lock = ReadWriteLock()
        with lock.read(), lock.read():
            pass

    def test_writer_excludes_readers(self) -> None:
        lock = ReadWriteLock()
        events: list[str] = []
        writer_holding = threading.Event()
        release_writer = threading.Event()

        def writer() -> None:
            with lock.write():
                events.append("write-start")
                writer_holding.set()
                release_writer.wait(timeout=5)
                events.append("write-end")

        def reader() -> None:
            with lock.read():
                events.append("read")

        w = threading.Thread(target=writer)
        w.start()
        writer_holding.wait(timeout=5)
        r = threading.Thread(target=reader)
        r.start()
        release_writer.set()
        w.join(timeout=5)
        r.join(timeout=5)

        assert events == ["write-start", "write-end", "read"]
