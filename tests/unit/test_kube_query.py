"""Tests for the kubernetes-asyncio backed ClusterQuery."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import pytest
from kubernetes_asyncio.client import (  # type: ignore[import-untyped]
    ApiClient,
    V1Namespace,
    V1NamespaceList,
    V1ObjectMeta,
    V1Pod,
    V1PodStatus,
)
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from klaw.cluster.query import KubeClusterQuery
from klaw.errors import ClusterQueryError, ResourceNotFoundError


class _StubCoreV1:
    """Stands in for CoreV1Api; records the kwargs of every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []

    def _record(self, method: str, *args: Any, **kwargs: Any) -> None:
        self.calls.append((method, args, kwargs))

    async def list_namespace(self, **kwargs: Any) -> V1NamespaceList:
        self._record("list_namespace", **kwargs)
        return V1NamespaceList(
            items=[
                V1Namespace(metadata=V1ObjectMeta(name="default")),
                V1Namespace(metadata=V1ObjectMeta(name="kube-system")),
            ]
        )

    async def list_node(self, **kwargs: Any) -> Any:
        self._record("list_node", **kwargs)
        await asyncio.sleep(5)

    async def read_namespaced_pod(self, name: str, namespace: str, **kwargs: Any) -> V1Pod:
        self._record("read_namespaced_pod", name, namespace, **kwargs)
        if name == "web-0":
            return V1Pod(metadata=V1ObjectMeta(name=name, namespace=namespace), status=V1PodStatus(phase="Running"))
        raise ApiException(status=404, reason="Not Found")

    async def delete_namespaced_pod(self, name: str, namespace: str, **kwargs: Any) -> None:
        self._record("delete_namespaced_pod", name, namespace, **kwargs)
        raise ApiException(status=403, reason="Forbidden")

    async def list_namespaced_event(self, namespace: str, **kwargs: Any) -> V1NamespaceList:
        self._record("list_namespaced_event", namespace, **kwargs)
        return V1NamespaceList(items=[])

    async def read_namespaced_pod_log(self, name: str, namespace: str, **kwargs: Any) -> str:
        self._record("read_namespaced_pod_log", name, namespace, **kwargs)
        return "line 1\nline 2\n"


@pytest.fixture()
def stub() -> _StubCoreV1:
    return _StubCoreV1()


@pytest.fixture()
async def query(stub: _StubCoreV1) -> AsyncIterator[KubeClusterQuery]:
    q = KubeClusterQuery(ApiClient(), timeout=0.05)
    q._v1 = stub
    yield q
    await q.close()


class TestKubeClusterQuery:
    async def test_list_unwraps_items(self, query: KubeClusterQuery, stub: _StubCoreV1) -> None:
        namespaces = await query.list_namespaces()

        assert [ns["metadata"]["name"] for ns in namespaces] == ["default", "kube-system"]
        assert stub.calls[0][2]["_request_timeout"] == 0.05

    async def test_get_returns_camel_case_dict(self, query: KubeClusterQuery) -> None:
        pod = await query.get_pod("default", "web-0")
        assert pod["metadata"] == {"name": "web-0", "namespace": "default"}
        assert pod["status"]["phase"] == "Running"

    async def test_not_found_maps_to_resource_error(self, query: KubeClusterQuery) -> None:
        with pytest.raises(ResourceNotFoundError) as excinfo:
            await query.get_pod("default", "ghost")

        assert excinfo.value.kind == "Pod"
        assert excinfo.value.namespace == "default"
        assert str(excinfo.value) == "failed to get pod: Pod default/ghost not found"

    async def test_other_api_errors_keep_operation_name(self, query: KubeClusterQuery) -> None:
        with pytest.raises(ClusterQueryError) as excinfo:
            await query.delete_pod("default", "web-0")

        assert not isinstance(excinfo.value, ResourceNotFoundError)
        assert str(excinfo.value).startswith("failed to delete pod: 403")

    async def test_hanging_call_hits_deadline(self, query: KubeClusterQuery) -> None:
        with pytest.raises(ClusterQueryError, match=r"^failed to list nodes: timed out after 0\.05s$"):
            await asyncio.wait_for(query.list_nodes(), timeout=2)

    async def test_event_limit_and_namespace_forwarded(self, query: KubeClusterQuery, stub: _StubCoreV1) -> None:
        assert await query.list_events("prod", limit=20) == []
        method, args, kwargs = stub.calls[-1]
        assert (method, args) == ("list_namespaced_event", ("prod",))
        assert kwargs["limit"] == 20

    async def test_pod_logs_pass_tail_lines(self, query: KubeClusterQuery, stub: _StubCoreV1) -> None:
        assert await query.pod_logs("default", "web-0", tail_lines=5) == "line 1\nline 2\n"
        assert stub.calls[-1][2]["tail_lines"] == 5
