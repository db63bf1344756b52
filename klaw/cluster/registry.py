"""Cluster registry: the static cluster list plus one query handle per cluster."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable

from klaw.cluster.query import ClusterQuery, connect_cluster
from klaw.errors import ClusterConnectionError, ClusterNotFoundError
from klaw.models.config import ClusterConfig
from klaw.observability.logging import get_logger

_log = get_logger("cluster.registry")

HandleFactory = Callable[[ClusterConfig], Awaitable[ClusterQuery]]


class ClusterRegistry:
    """Holds cluster descriptors and their ready-to-use ClusterQuery handles.

    Descriptors never change after construction, so reads need no locking.
    ``refresh`` builds the replacement handle first and then swaps the dict
    entry in a single assignment, so concurrent readers see either the old
    or the new handle.
    """

    def __init__(
        self,
        clusters: Iterable[ClusterConfig],
        handle_factory: HandleFactory | None = None,
        request_timeout: float = 10.0,
    ) -> None:
        self._clusters: tuple[ClusterConfig, ...] = tuple(clusters)
        self._by_name = {c.name: c for c in self._clusters}
        self._handles: dict[str, ClusterQuery] = {}
        self._timeout = request_timeout
        self._factory = handle_factory or self._default_factory

    async def _default_factory(self, cluster: ClusterConfig) -> ClusterQuery:
        return await connect_cluster(cluster, timeout=self._timeout)

    async def connect(self) -> None:
        """Build a handle for every cluster. Any failure aborts startup."""
        for cluster in self._clusters:
            try:
                self._handles[cluster.name] = await self._factory(cluster)
            except ClusterConnectionError:
                raise
            except Exception as exc:
                raise ClusterConnectionError(cluster.name, exc) from exc
            _log.info("cluster_connected", cluster=cluster.name, context=cluster.context)

    def clusters(self) -> list[ClusterConfig]:
        return list(self._clusters)

    def names(self) -> list[str]:
        return [c.name for c in self._clusters]

    def has(self, name: str) -> bool:
        return name in self._by_name

    def get_cluster(self, name: str) -> ClusterConfig:
        try:
            return self._by_name[name]
        except KeyError:
            raise ClusterNotFoundError(name) from None

    def get(self, name: str) -> ClusterQuery:
        """Return the query handle for *name*.

        Raises ClusterNotFoundError for unregistered names and
        ClusterConnectionError when the cluster has no live handle.
        """
        cluster = self.get_cluster(name)
        handle = self._handles.get(cluster.name)
        if handle is None:
            raise ClusterConnectionError(name, "no client available")
        return handle

    async def refresh(self, name: str) -> None:
        """Rebuild the handle for *name* and swap it in atomically."""
        cluster = self.get_cluster(name)
        try:
            handle = await self._factory(cluster)
        except ClusterConnectionError:
            raise
        except Exception as exc:
            raise ClusterConnectionError(name, exc) from exc
        old = self._handles.get(name)
        self._handles[name] = handle
        _log.info("cluster_refreshed", cluster=name)
        if old is not None and old is not handle:
            await self._close_handle(name, old)

    async def close(self) -> None:
        handles, self._handles = self._handles, {}
        for name, handle in handles.items():
            await self._close_handle(name, handle)

    async def _close_handle(self, name: str, handle: ClusterQuery) -> None:
        try:
            await handle.close()
        except Exception as exc:
            _log.debug("cluster_client_close_failed", cluster=name, error=str(exc))
