"""Cluster sample data structures.

A ClusterSample is one point in a cluster's history ring. Samples are
frozen: once the sampler publishes one, no component mutates it, so
readers of the history store can share them without copying.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

MAX_SAMPLE_EVENTS = 50


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class NodeCondition:
    """One entry of ``node.status.conditions``."""

    type: str
    status: str
    reason: str = ""
    message: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "status": self.status, "reason": self.reason, "message": self.message}


@dataclass(frozen=True)
class NodeDetail:
    """Per-node capacity and conditions."""

    name: str
    capacity_cpu: str
    capacity_memory: str
    conditions: tuple[NodeCondition, ...] = ()

    @property
    def ready(self) -> bool:
        return any(c.type == "Ready" and c.status == "True" for c in self.conditions)

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "capacityCPU": self.capacity_cpu,
            "capacityMemory": self.capacity_memory,
            "conditions": [c.to_dict() for c in self.conditions],
        }


@dataclass(frozen=True)
class NodeSummary:
    """Node counts. ``ready + not_ready == total``."""

    total: int = 0
    ready: int = 0
    not_ready: int = 0
    details: tuple[NodeDetail, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "total": self.total,
            "ready": self.ready,
            "notReady": self.not_ready,
            "details": [d.to_dict() for d in self.details],
        }


@dataclass(frozen=True)
class PodDetail:
    """Per-pod phase, restart count and age."""

    name: str
    namespace: str
    phase: str
    restart_count: int = 0
    age_seconds: float = 0.0

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "namespace": self.namespace,
            "phase": self.phase,
            "restartCount": self.restart_count,
            "ageSeconds": self.age_seconds,
        }


@dataclass(frozen=True)
class PodSummary:
    """Pod counts by phase. Pods in an unknown phase count only toward total."""

    total: int = 0
    running: int = 0
    pending: int = 0
    failed: int = 0
    succeeded: int = 0
    details: tuple[PodDetail, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "total": self.total,
            "running": self.running,
            "pending": self.pending,
            "failed": self.failed,
            "succeeded": self.succeeded,
            "details": [d.to_dict() for d in self.details],
        }


@dataclass(frozen=True)
class ResourceSummary:
    """Capacity aggregate across nodes.

    ``used`` and ``available`` are half of total: there is no utilisation
    source yet (metrics-server is not consulted).
    """

    total_cpu_milli: int = 0
    total_memory_bytes: int = 0

    @property
    def used_cpu_milli(self) -> int:
        return self.total_cpu_milli // 2

    @property
    def used_memory_bytes(self) -> int:
        return self.total_memory_bytes // 2

    @property
    def available_cpu_milli(self) -> int:
        return self.total_cpu_milli // 2

    @property
    def available_memory_bytes(self) -> int:
        return self.total_memory_bytes // 2

    def to_dict(self) -> dict[str, object]:
        from klaw.metrics.quantity import format_cpu, format_memory

        return {
            "totalCPU": format_cpu(self.total_cpu_milli),
            "totalMemory": format_memory(self.total_memory_bytes),
            "usedCPU": format_cpu(self.used_cpu_milli),
            "usedMemory": format_memory(self.used_memory_bytes),
            "availableCPU": format_cpu(self.available_cpu_milli),
            "availableMemory": format_memory(self.available_memory_bytes),
            "totalCPUMilli": self.total_cpu_milli,
            "totalMemoryBytes": self.total_memory_bytes,
        }


@dataclass(frozen=True)
class EventSummary:
    """One cluster event as carried in a sample."""

    type: str
    reason: str
    message: str
    count: int = 0
    first_seen: datetime | None = None
    last_seen: datetime | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "type": self.type,
            "reason": self.reason,
            "message": self.message,
            "count": self.count,
            "firstSeen": _iso(self.first_seen),
            "lastSeen": _iso(self.last_seen),
        }


@dataclass(frozen=True)
class ClusterSample:
    """Snapshot of one cluster's node/pod/event/resource state."""

    cluster_name: str
    timestamp: datetime
    nodes: NodeSummary = field(default_factory=NodeSummary)
    pods: PodSummary = field(default_factory=PodSummary)
    resources: ResourceSummary = field(default_factory=ResourceSummary)
    events: tuple[EventSummary, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "clusterName": self.cluster_name,
            "timestamp": self.timestamp.isoformat(),
            "nodes": self.nodes.to_dict(),
            "pods": self.pods.to_dict(),
            "resources": self.resources.to_dict(),
            "events": [e.to_dict() for e in self.events],
        }
