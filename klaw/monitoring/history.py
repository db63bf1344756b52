"""Bounded per-cluster sample history.

Each cluster gets a ring of at most ``maxlen`` samples, oldest first. The
store is shared by the metrics loop (the only writer), the chart and alert
loops and the API handlers (readers). Reads run concurrently; appends are
serialized and exclusive, so a reader never sees a half-published ring.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager

from klaw.models.config import MAX_HISTORY_SIZE
from klaw.models.metrics import ClusterSample

DEFAULT_HISTORY_SIZE = MAX_HISTORY_SIZE


class ReadWriteLock:
    """Many concurrent readers or a single writer.

    Waiting writers block new readers so a steady stream of API reads
    cannot starve the metrics loop. Not reentrant.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class HistoryStore:
    """Per-cluster ring of ClusterSamples."""

    def __init__(self, maxlen: int = DEFAULT_HISTORY_SIZE) -> None:
        if maxlen <= 0:
            raise ValueError("history size must be positive")
        self._maxlen = min(maxlen, MAX_HISTORY_SIZE)
        self._rings: dict[str, deque[ClusterSample]] = {}
        self._lock = ReadWriteLock()

    @property
    def maxlen(self) -> int:
        return self._maxlen

    def append(self, cluster: str, sample: ClusterSample) -> None:
        """Append *sample*, dropping the oldest entry when the ring is full."""
        with self._lock.write():
            ring = self._rings.get(cluster)
            if ring is None:
                ring = self._rings[cluster] = deque(maxlen=self._maxlen)
            ring.append(sample)

    def latest(self, cluster: str) -> ClusterSample | None:
        with self._lock.read():
            ring = self._rings.get(cluster)
            return ring[-1] if ring else None

    def snapshot(self, cluster: str) -> list[ClusterSample]:
        """Copy of the ring, oldest first. Empty for unknown clusters."""
        with self._lock.read():
            return list(self._rings.get(cluster, ()))

    def size(self, cluster: str) -> int:
        with self._lock.read():
            return len(self._rings.get(cluster, ()))

    def clusters(self) -> list[str]:
        """Clusters with at least one sample."""
        with self._lock.read():
            return [name for name, ring in self._rings.items() if ring]
