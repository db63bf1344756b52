"""Sampler: builds one ClusterSample from a cluster's nodes, pods and events.

The sampler holds no state of its own. It asks the registry for the
cluster's ClusterQuery handle, issues the three list calls concurrently
and scans each result exactly once. A failure in any sub-query fails the
whole sample; partial samples are never returned.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from klaw.clock import Clock, utc_now
from klaw.cluster.registry import ClusterRegistry
from klaw.errors import SampleError
from klaw.metrics.quantity import cpu_milli, memory_bytes
from klaw.models.metrics import (
    MAX_SAMPLE_EVENTS,
    ClusterSample,
    EventSummary,
    NodeCondition,
    NodeDetail,
    NodeSummary,
    PodDetail,
    PodSummary,
    ResourceSummary,
)
from klaw.observability.logging import get_logger

_log = get_logger("metrics.sampler")


def parse_time(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _conditions(node: dict[str, Any]) -> tuple[NodeCondition, ...]:
    raw = (node.get("status") or {}).get("conditions") or []
    return tuple(
        NodeCondition(
            type=str(c.get("type", "")),
            status=str(c.get("status", "")),
            reason=str(c.get("reason") or ""),
            message=str(c.get("message") or ""),
        )
        for c in raw
    )


def summarize_nodes(nodes: Iterable[dict[str, Any]]) -> tuple[NodeSummary, ResourceSummary]:
    """Node readiness counts and the capacity aggregate, in a single pass."""
    details: list[NodeDetail] = []
    ready = 0
    total_cpu = 0
    total_memory = 0
    for node in nodes:
        capacity = (node.get("status") or {}).get("capacity") or {}
        detail = NodeDetail(
            name=str((node.get("metadata") or {}).get("name", "")),
            capacity_cpu=str(capacity.get("cpu", "")),
            capacity_memory=str(capacity.get("memory", "")),
            conditions=_conditions(node),
        )
        if detail.ready:
            ready += 1
        total_cpu += cpu_milli(capacity.get("cpu"))
        total_memory += memory_bytes(capacity.get("memory"))
        details.append(detail)

    summary = NodeSummary(
        total=len(details),
        ready=ready,
        not_ready=len(details) - ready,
        details=tuple(details),
    )
    return summary, ResourceSummary(total_cpu_milli=total_cpu, total_memory_bytes=total_memory)


def summarize_pods(pods: Iterable[dict[str, Any]], now: datetime) -> PodSummary:
    """Pod counts by phase plus per-pod restart totals and age."""
    counts = {"Running": 0, "Pending": 0, "Failed": 0, "Succeeded": 0}
    details: list[PodDetail] = []
    for pod in pods:
        metadata = pod.get("metadata") or {}
        status = pod.get("status") or {}
        phase = str(status.get("phase") or "")
        if phase in counts:
            counts[phase] += 1
        restarts = sum(int(cs.get("restartCount") or 0) for cs in status.get("containerStatuses") or [])
        created = parse_time(metadata.get("creationTimestamp"))
        age = (now - created).total_seconds() if created is not None else 0.0
        details.append(
            PodDetail(
                name=str(metadata.get("name", "")),
                namespace=str(metadata.get("namespace", "")),
                phase=phase,
                restart_count=restarts,
                age_seconds=max(age, 0.0),
            )
        )
    return PodSummary(
        total=len(details),
        running=counts["Running"],
        pending=counts["Pending"],
        failed=counts["Failed"],
        succeeded=counts["Succeeded"],
        details=tuple(details),
    )


def summarize_events(events: Iterable[dict[str, Any]], limit: int = MAX_SAMPLE_EVENTS) -> tuple[EventSummary, ...]:
    result: list[EventSummary] = []
    for event in events:
        if len(result) >= limit:
            break
        result.append(
            EventSummary(
                type=str(event.get("type") or ""),
                reason=str(event.get("reason") or ""),
                message=str(event.get("message") or ""),
                count=int(event.get("count") or 0),
                first_seen=parse_time(event.get("firstTimestamp")),
                last_seen=parse_time(event.get("lastTimestamp")),
            )
        )
    return tuple(result)


def summarize_status(
    cluster: str, nodes: list[dict[str, Any]], pods: list[dict[str, Any]], now: datetime
) -> dict[str, Any]:
    """The compact ``/status`` view: node readiness and pod phase counts."""
    node_summary, _ = summarize_nodes(nodes)
    pod_summary = summarize_pods(pods, now)
    return {
        "cluster": cluster,
        "nodes": {
            "total": node_summary.total,
            "ready": node_summary.ready,
            "notReady": node_summary.not_ready,
        },
        "pods": {
            "total": pod_summary.total,
            "running": pod_summary.running,
            "pending": pod_summary.pending,
            "failed": pod_summary.failed,
        },
        "timestamp": now.isoformat(),
    }


def node_metrics(nodes: Iterable[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """Map node name to its capacity and conditions."""
    result: dict[str, dict[str, Any]] = {}
    for node in nodes:
        name = str((node.get("metadata") or {}).get("name", ""))
        status = node.get("status") or {}
        capacity = status.get("capacity") or {}
        result[name] = {
            "CPU": str(capacity.get("cpu", "")),
            "Memory": str(capacity.get("memory", "")),
            "Conditions": list(status.get("conditions") or []),
        }
    return result


class Sampler:
    """Produces ClusterSamples on demand.

    Args:
        registry:    Source of per-cluster ClusterQuery handles.
        clock:       Wall clock; the sample timestamp is taken at sample start.
        event_limit: Maximum number of events carried in a sample.
    """

    def __init__(
        self,
        registry: ClusterRegistry,
        clock: Clock = utc_now,
        event_limit: int = MAX_SAMPLE_EVENTS,
    ) -> None:
        self._registry = registry
        self._clock = clock
        self._event_limit = event_limit

    async def sample(self, cluster: str) -> ClusterSample:
        """Sample *cluster*.

        Raises:
            ClusterNotFoundError:   *cluster* is not registered.
            ClusterConnectionError: the cluster has no usable handle.
            SampleError:            a sub-query failed; ``operation`` names it.
        """
        query = self._registry.get(cluster)
        timestamp = self._clock()

        results = await asyncio.gather(
            query.list_nodes(),
            query.list_pods(),
            query.list_events(limit=self._event_limit),
            return_exceptions=True,
        )
        for operation, result in zip(("nodes", "pods", "events"), results, strict=True):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                raise SampleError(cluster, operation, result) from result

        raw_nodes, raw_pods, raw_events = results
        nodes, resources = self._scan(cluster, "nodes", summarize_nodes, raw_nodes)
        pods = self._scan(cluster, "pods", summarize_pods, raw_pods, timestamp)
        events = self._scan(cluster, "events", summarize_events, raw_events, self._event_limit)

        sample = ClusterSample(
            cluster_name=cluster,
            timestamp=timestamp,
            nodes=nodes,
            pods=pods,
            resources=resources,
            events=events,
        )
        _log.debug(
            "cluster_sampled",
            cluster=cluster,
            nodes=nodes.total,
            pods=pods.total,
            events=len(events),
        )
        return sample

    @staticmethod
    def _scan(cluster: str, operation: str, fn: Any, *args: Any) -> Any:
        try:
            return fn(*args)
        except (ValueError, TypeError, AttributeError) as exc:
            raise SampleError(cluster, operation, exc) from exc
