"""ClusterQuery: the read/delete surface klaw needs from a Kubernetes cluster.

Objects come back as JSON-shaped dicts (Kubernetes camelCase field names),
which is what the REST API serves and what the sampler scans. Tests replace
the whole capability with an in-memory fake.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from pathlib import Path
from typing import Any, TypeVar

from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio import config as k8s_config  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from klaw.errors import ClusterConnectionError, ClusterQueryError, ResourceNotFoundError
from klaw.models.config import ClusterConfig
from klaw.observability.logging import get_logger

_log = get_logger("cluster.query")

_T = TypeVar("_T")

DEFAULT_TAIL_LINES = 100


class ClusterQuery(ABC):
    """Capability handle for one cluster."""

    @abstractmethod
    async def list_nodes(self) -> list[dict[str, Any]]: ...

    @abstractmethod
    async def list_pods(self, namespace: str | None = None) -> list[dict[str, Any]]:
        """List pods in *namespace*, or across all namespaces when None/empty."""

    @abstractmethod
    async def list_events(self, namespace: str | None = None, limit: int | None = None) -> list[dict[str, Any]]: ...

    @abstractmethod
    async def pod_logs(self, namespace: str, name: str, tail_lines: int = DEFAULT_TAIL_LINES) -> str: ...

    @abstractmethod
    async def delete_pod(self, namespace: str, name: str) -> None: ...

    @abstractmethod
    async def get_pod(self, namespace: str, name: str) -> dict[str, Any]: ...

    @abstractmethod
    async def get_node(self, name: str) -> dict[str, Any]: ...

    @abstractmethod
    async def list_namespaces(self) -> list[dict[str, Any]]: ...

    async def close(self) -> None:
        """Release connections held by the handle."""
        return None


class KubeClusterQuery(ClusterQuery):
    """ClusterQuery backed by a kubernetes-asyncio ApiClient.

    Every call carries a deadline: ``_request_timeout`` for the HTTP layer
    and an ``asyncio.wait_for`` around the whole call so a stuck connection
    cannot block shutdown.
    """

    def __init__(self, api_client: Any, timeout: float = 10.0) -> None:
        self._api_client = api_client
        self._v1 = k8s_client.CoreV1Api(api_client)
        self._timeout = timeout

    async def _call(
        self,
        operation: str,
        call: Awaitable[_T],
        *,
        kind: str = "",
        name: str = "",
        namespace: str = "",
    ) -> _T:
        """Await *call* under the deadline. A 404 on a named *kind* is ResourceNotFoundError."""
        try:
            return await asyncio.wait_for(call, timeout=self._timeout)
        except TimeoutError as exc:
            raise ClusterQueryError(operation, f"timed out after {self._timeout}s") from exc
        except ApiException as exc:
            if kind and exc.status == 404:
                raise ResourceNotFoundError(kind, name, namespace) from exc
            raise ClusterQueryError(operation, f"{exc.status} {exc.reason}") from exc
        except Exception as exc:
            raise ClusterQueryError(operation, exc) from exc

    def _items(self, result: Any) -> list[dict[str, Any]]:
        data = self._api_client.sanitize_for_serialization(result)
        return list(data.get("items") or [])

    async def list_nodes(self) -> list[dict[str, Any]]:
        result = await self._call("list nodes", self._v1.list_node(_request_timeout=self._timeout))
        return self._items(result)

    async def list_pods(self, namespace: str | None = None) -> list[dict[str, Any]]:
        if namespace:
            call = self._v1.list_namespaced_pod(namespace, _request_timeout=self._timeout)
        else:
            call = self._v1.list_pod_for_all_namespaces(_request_timeout=self._timeout)
        return self._items(await self._call("list pods", call))

    async def list_events(self, namespace: str | None = None, limit: int | None = None) -> list[dict[str, Any]]:
        kwargs: dict[str, Any] = {"_request_timeout": self._timeout}
        if limit is not None:
            kwargs["limit"] = limit
        if namespace:
            call = self._v1.list_namespaced_event(namespace, **kwargs)
        else:
            call = self._v1.list_event_for_all_namespaces(**kwargs)
        return self._items(await self._call("list events", call))

    async def pod_logs(self, namespace: str, name: str, tail_lines: int = DEFAULT_TAIL_LINES) -> str:
        call = self._v1.read_namespaced_pod_log(
            name,
            namespace,
            tail_lines=tail_lines,
            _request_timeout=self._timeout,
        )
        logs = await self._call("get pod logs", call, kind="Pod", name=name, namespace=namespace)
        return logs if isinstance(logs, str) else str(logs)

    async def delete_pod(self, namespace: str, name: str) -> None:
        call = self._v1.delete_namespaced_pod(name, namespace, _request_timeout=self._timeout)
        await self._call("delete pod", call, kind="Pod", name=name, namespace=namespace)

    async def get_pod(self, namespace: str, name: str) -> dict[str, Any]:
        call = self._v1.read_namespaced_pod(name, namespace, _request_timeout=self._timeout)
        pod = await self._call("get pod", call, kind="Pod", name=name, namespace=namespace)
        return self._api_client.sanitize_for_serialization(pod)

    async def get_node(self, name: str) -> dict[str, Any]:
        call = self._v1.read_node(name, _request_timeout=self._timeout)
        node = await self._call("get node", call, kind="Node", name=name)
        return self._api_client.sanitize_for_serialization(node)

    async def list_namespaces(self) -> list[dict[str, Any]]:
        result = await self._call("list namespaces", self._v1.list_namespace(_request_timeout=self._timeout))
        return self._items(result)

    async def close(self) -> None:
        await self._api_client.close()


def resolve_kubeconfig(cluster: ClusterConfig) -> Path:
    """Return the kubeconfig path for *cluster*; empty means ``~/.kube/config``."""
    if cluster.kubeconfig:
        return Path(cluster.kubeconfig).expanduser()
    return Path.home() / ".kube" / "config"


async def connect_cluster(cluster: ClusterConfig, timeout: float = 10.0) -> ClusterQuery:
    """Build a KubeClusterQuery from the cluster's kubeconfig and context."""
    path = resolve_kubeconfig(cluster)
    if not path.is_file():
        raise ClusterConnectionError(cluster.name, f"kubeconfig file not found: {path}")
    try:
        api_client = await k8s_config.new_client_from_config(
            config_file=str(path),
            context=cluster.context or None,
            persist_config=False,
        )
    except Exception as exc:
        raise ClusterConnectionError(cluster.name, exc) from exc
    _log.debug("cluster_client_built", cluster=cluster.name, kubeconfig=str(path), context=cluster.context)
    return KubeClusterQuery(api_client, timeout=timeout)
