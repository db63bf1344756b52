"""In-memory stand-ins shared by the unit and integration tests.

FakeClusterQuery  -- ClusterQuery over plain lists of Kubernetes-shaped dicts.
RecordingNotifier -- Notifier that records what it was asked to send.
FailingNotifier   -- Notifier that always raises NotificationError.
MutableClock      -- Frozen wall clock tests can advance.
build_pipeline    -- MonitoringService wired around the fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from klaw.cluster.query import DEFAULT_TAIL_LINES, ClusterQuery
from klaw.cluster.registry import ClusterRegistry
from klaw.errors import ClusterQueryError, NotificationError, ResourceNotFoundError
from klaw.metrics.sampler import Sampler
from klaw.models.config import ClusterConfig
from klaw.monitoring.service import MonitoringService
from klaw.notifications.base import NotificationDispatcher, Notifier

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Kubernetes object builders
# ---------------------------------------------------------------------------


def make_node(name: str, ready: bool = True, cpu: str = "4", memory: str = "16Gi") -> dict[str, Any]:
    return {
        "metadata": {"name": name},
        "status": {
            "capacity": {"cpu": cpu, "memory": memory},
            "conditions": [
                {"type": "MemoryPressure", "status": "False"},
                {"type": "Ready", "status": "True" if ready else "False", "reason": "KubeletReady"},
            ],
        },
    }


def make_pod(
    name: str,
    phase: str = "Running",
    namespace: str = "default",
    restarts: int = 0,
    created: datetime | None = None,
    node: str = "node-1",
) -> dict[str, Any]:
    return {
        "metadata": {
            "name": name,
            "namespace": namespace,
            "creationTimestamp": (created or T0 - timedelta(hours=1)).isoformat(),
        },
        "spec": {"nodeName": node},
        "status": {
            "phase": phase,
            "containerStatuses": [{"name": "app", "restartCount": restarts}],
        },
    }


def make_event(reason: str = "BackOff", message: str = "Back-off restarting", count: int = 1) -> dict[str, Any]:
    return {
        "type": "Warning",
        "reason": reason,
        "message": message,
        "count": count,
        "firstTimestamp": (T0 - timedelta(minutes=5)).isoformat(),
        "lastTimestamp": T0.isoformat(),
    }


def make_pods(phase: str, count: int, prefix: str = "") -> list[dict[str, Any]]:
    prefix = prefix or phase.lower()
    return [make_pod(f"{prefix}-{i}", phase=phase) for i in range(count)]


# ---------------------------------------------------------------------------
# ClusterQuery fake
# ---------------------------------------------------------------------------


class FakeClusterQuery(ClusterQuery):
    """Serves fixed lists; set ``fail`` to make every list call raise."""

    def __init__(
        self,
        nodes: list[dict[str, Any]] | None = None,
        pods: list[dict[str, Any]] | None = None,
        events: list[dict[str, Any]] | None = None,
        namespaces: list[str] | None = None,
        logs: str = "",
    ) -> None:
        self.nodes = list(nodes or [])
        self.pods = list(pods or [])
        self.events = list(events or [])
        self.namespaces = list(namespaces or ["default"])
        self.logs = logs
        self.fail: str | None = None
        self.deleted: list[tuple[str, str]] = []
        self.log_requests: list[tuple[str, str, int]] = []
        self.closed = False

    def _check(self, operation: str) -> None:
        if self.fail is not None:
            raise ClusterQueryError(operation, self.fail)

    async def list_nodes(self) -> list[dict[str, Any]]:
        self._check("list nodes")
        return list(self.nodes)

    async def list_pods(self, namespace: str | None = None) -> list[dict[str, Any]]:
        self._check("list pods")
        if namespace:
            return [p for p in self.pods if p["metadata"]["namespace"] == namespace]
        return list(self.pods)

    async def list_events(self, namespace: str | None = None, limit: int | None = None) -> list[dict[str, Any]]:
        self._check("list events")
        return list(self.events if limit is None else self.events[:limit])

    async def pod_logs(self, namespace: str, name: str, tail_lines: int = DEFAULT_TAIL_LINES) -> str:
        self._check("get pod logs")
        await self.get_pod(namespace, name)
        self.log_requests.append((namespace, name, tail_lines))
        return self.logs

    async def delete_pod(self, namespace: str, name: str) -> None:
        self._check("delete pod")
        await self.get_pod(namespace, name)
        self.deleted.append((namespace, name))

    async def get_pod(self, namespace: str, name: str) -> dict[str, Any]:
        for pod in self.pods:
            if pod["metadata"]["name"] == name and pod["metadata"]["namespace"] == namespace:
                return pod
        raise ResourceNotFoundError("Pod", name, namespace)

    async def get_node(self, name: str) -> dict[str, Any]:
        for node in self.nodes:
            if node["metadata"]["name"] == name:
                return node
        raise ResourceNotFoundError("Node", name)

    async def list_namespaces(self) -> list[dict[str, Any]]:
        self._check("list namespaces")
        return [{"metadata": {"name": ns}} for ns in self.namespaces]

    async def close(self) -> None:
        self.closed = True


async def make_registry(handles: dict[str, ClusterQuery]) -> ClusterRegistry:
    """A connected registry whose handles are the given fakes."""

    async def factory(cluster: ClusterConfig) -> ClusterQuery:
        return handles[cluster.name]

    registry = ClusterRegistry([ClusterConfig(name=name) for name in handles], handle_factory=factory)
    await registry.connect()
    return registry


# ---------------------------------------------------------------------------
# Notifiers and clock
# ---------------------------------------------------------------------------


class RecordingNotifier(Notifier):
    def __init__(self, name: str = "recording") -> None:
        super().__init__()
        self._name = name
        self.texts: list[str] = []
        self.charts: list[tuple[bytes, str]] = []

    @property
    def name(self) -> str:
        return self._name

    async def send_text(self, message: str) -> None:
        self.texts.append(message)

    async def send_chart(self, chart: bytes, title: str) -> None:
        self.charts.append((chart, title))


class FailingNotifier(RecordingNotifier):
    """Records the attempt, then fails like an HTTP 500 from the platform."""

    def __init__(self, name: str = "failing") -> None:
        super().__init__(name)
        self.attempts = 0

    async def send_text(self, message: str) -> None:
        self.attempts += 1
        raise NotificationError(self.name, "status code 500: internal error")

    async def send_chart(self, chart: bytes, title: str) -> None:
        self.attempts += 1
        raise NotificationError(self.name, "status code 500: internal error")


class MutableClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


# ---------------------------------------------------------------------------
# Monitoring pipeline
# ---------------------------------------------------------------------------


@dataclass
class Pipeline:
    registry: ClusterRegistry
    service: MonitoringService
    clock: MutableClock
    queries: dict[str, FakeClusterQuery]


async def build_pipeline(
    queries: dict[str, FakeClusterQuery],
    notifiers: list[Notifier],
    **service_kwargs: Any,
) -> Pipeline:
    """Real sampler, stores and dispatcher around the given fakes, on a frozen clock."""
    registry = await make_registry(dict(queries))
    clock = MutableClock()
    service = MonitoringService(
        registry,
        Sampler(registry, clock=clock),
        NotificationDispatcher(notifiers),
        clock=clock,
        **service_kwargs,
    )
    return Pipeline(registry=registry, service=service, clock=clock, queries=queries)


def healthy_cluster() -> FakeClusterQuery:
    return FakeClusterQuery(
        nodes=[make_node("node-1"), make_node("node-2")],
        pods=make_pods("Running", 5),
    )
