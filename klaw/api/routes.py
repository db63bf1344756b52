"""Route handlers for the klaw REST API.

Handlers pull the registry, sampler and monitoring service from
``request.app.state``. Errors are raised as klaw exceptions and mapped to
``{"error": ...}`` bodies by the handlers registered in ``klaw.api.app``.

Route order matters where a literal segment shares a position with a path
parameter: ``nodes/metrics`` is declared before ``nodes/{name}``.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query, Request

from klaw.api.schemas import LogsResponse, MessageResponse, MonitorStatusResponse
from klaw.clock import utc_now
from klaw.cluster.query import DEFAULT_TAIL_LINES, ClusterQuery
from klaw.cluster.registry import ClusterRegistry
from klaw.metrics.sampler import Sampler, node_metrics, summarize_status
from klaw.monitoring.service import MonitoringService
from klaw.observability.logging import get_logger

_log = get_logger("api.routes")

router = APIRouter()


def _registry(request: Request) -> ClusterRegistry:
    return request.app.state.registry


def _sampler(request: Request) -> Sampler:
    return request.app.state.sampler


def _monitoring(request: Request) -> MonitoringService:
    return request.app.state.monitoring


def _handle(request: Request, cluster: str) -> ClusterQuery:
    return _registry(request).get(cluster)


def parse_tail_lines(raw: str | None) -> int:
    """Positive integer from the query string, else the default of 100."""
    if raw is None:
        return DEFAULT_TAIL_LINES
    try:
        value = int(raw)
    except ValueError:
        return DEFAULT_TAIL_LINES
    return value if value > 0 else DEFAULT_TAIL_LINES


# ---------------------------------------------------------------------------
# Clusters
# ---------------------------------------------------------------------------


@router.get("/clusters")
async def list_clusters(request: Request) -> list[dict[str, str]]:
    return [c.to_dict() for c in _registry(request).clusters()]


@router.get("/clusters/{name}")
async def get_cluster(request: Request, name: str) -> dict[str, str]:
    return _registry(request).get_cluster(name).to_dict()


@router.get("/clusters/{name}/status")
async def get_cluster_status(request: Request, name: str) -> dict[str, Any]:
    handle = _handle(request, name)
    nodes = await handle.list_nodes()
    pods = await handle.list_pods()
    return summarize_status(name, nodes, pods, utc_now())


@router.get("/clusters/{name}/metrics")
async def get_cluster_metrics(request: Request, name: str) -> dict[str, Any]:
    sample = await _sampler(request).sample(name)
    return sample.to_dict()


@router.get("/clusters/{name}/namespaces")
async def list_namespaces(request: Request, name: str) -> list[dict[str, Any]]:
    return await _handle(request, name).list_namespaces()


# ---------------------------------------------------------------------------
# Pods
# ---------------------------------------------------------------------------


@router.get("/clusters/{cluster}/pods")
async def list_pods(request: Request, cluster: str, namespace: str | None = None) -> list[dict[str, Any]]:
    return await _handle(request, cluster).list_pods(namespace)


@router.get("/clusters/{cluster}/namespaces/{namespace}/pods")
async def list_namespaced_pods(request: Request, cluster: str, namespace: str) -> list[dict[str, Any]]:
    return await _handle(request, cluster).list_pods(namespace)


@router.get("/clusters/{cluster}/namespaces/{namespace}/pods/{name}")
async def get_pod(request: Request, cluster: str, namespace: str, name: str) -> dict[str, Any]:
    return await _handle(request, cluster).get_pod(namespace, name)


@router.get("/clusters/{cluster}/namespaces/{namespace}/pods/{name}/logs")
async def get_pod_logs(
    request: Request,
    cluster: str,
    namespace: str,
    name: str,
    tail_lines: str | None = Query(default=None, alias="tailLines"),
) -> LogsResponse:
    logs = await _handle(request, cluster).pod_logs(namespace, name, parse_tail_lines(tail_lines))
    return LogsResponse(logs=logs)


@router.delete("/clusters/{cluster}/namespaces/{namespace}/pods/{name}")
async def delete_pod(request: Request, cluster: str, namespace: str, name: str) -> MessageResponse:
    await _handle(request, cluster).delete_pod(namespace, name)
    _log.info("pod_deleted", cluster=cluster, namespace=namespace, pod=name)
    return MessageResponse(message="Pod deleted successfully")


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


@router.get("/clusters/{cluster}/nodes")
async def list_nodes(request: Request, cluster: str) -> list[dict[str, Any]]:
    return await _handle(request, cluster).list_nodes()


@router.get("/clusters/{cluster}/nodes/metrics")
async def get_node_metrics(request: Request, cluster: str) -> dict[str, dict[str, Any]]:
    return node_metrics(await _handle(request, cluster).list_nodes())


@router.get("/clusters/{cluster}/nodes/{name}")
async def get_node(request: Request, cluster: str, name: str) -> dict[str, Any]:
    return await _handle(request, cluster).get_node(name)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@router.get("/clusters/{cluster}/events")
async def list_events(request: Request, cluster: str, namespace: str | None = None) -> list[dict[str, Any]]:
    return await _handle(request, cluster).list_events(namespace)


@router.get("/clusters/{cluster}/namespaces/{namespace}/events")
async def list_namespaced_events(request: Request, cluster: str, namespace: str) -> list[dict[str, Any]]:
    return await _handle(request, cluster).list_events(namespace)


# ---------------------------------------------------------------------------
# Monitoring
# ---------------------------------------------------------------------------


@router.get("/monitoring/alerts")
async def list_all_alerts(request: Request) -> list[dict[str, Any]]:
    return [a.to_dict() for a in _monitoring(request).alerts()]


@router.post("/monitoring/alerts/{alert_id}/resolve")
async def resolve_alert(request: Request, alert_id: str) -> dict[str, Any]:
    alert = await _monitoring(request).resolve_alert(alert_id)
    return alert.to_dict()


@router.get("/monitoring/{cluster}/status")
async def get_monitor_status(request: Request, cluster: str) -> MonitorStatusResponse:
    _registry(request).get_cluster(cluster)
    monitoring = _monitoring(request)
    return MonitorStatusResponse(
        cluster=cluster,
        active=monitoring.is_active(cluster),
        dataPoints=monitoring.data_points(cluster),
    )


@router.get("/monitoring/{cluster}/alerts")
async def list_cluster_alerts(request: Request, cluster: str) -> list[dict[str, Any]]:
    _registry(request).get_cluster(cluster)
    return [a.to_dict() for a in _monitoring(request).alerts(cluster)]


@router.get("/monitoring/{cluster}/history")
async def get_history(request: Request, cluster: str) -> list[dict[str, Any]]:
    _registry(request).get_cluster(cluster)
    return [s.to_dict() for s in _monitoring(request).history(cluster)]
