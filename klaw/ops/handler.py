"""Chat-ops command surface.

Commands are whitespace-separated, verb first::

    cluster {status|metrics|chart} <cluster>
    pod {list|describe|logs|delete} <cluster> <namespace> [<pod>]
    node {list|describe|metrics} <cluster> [<node>]
    monitor {status|alerts|chart} <cluster>
    help

Usage errors raise CommandError; failures of the underlying query or
notifier calls propagate as their own klaw exceptions.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from klaw.clock import Clock, utc_now
from klaw.cluster.query import DEFAULT_TAIL_LINES
from klaw.cluster.registry import ClusterRegistry
from klaw.errors import CommandError, NoHistoryError
from klaw.metrics.quantity import format_cpu, format_memory
from klaw.metrics.sampler import Sampler, node_metrics, parse_time, summarize_nodes, summarize_status
from klaw.monitoring.service import MonitoringService
from klaw.observability.logging import get_logger

_log = get_logger("ops.handler")

_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

HELP_TEXT = """Available commands:

Cluster commands:
  cluster status <cluster-name>                        - Get cluster status
  cluster metrics <cluster-name>                       - Get cluster metrics
  cluster chart <cluster-name>                         - Send monitoring chart

Pod commands:
  pod list <cluster-name> <namespace>                  - List pods
  pod describe <cluster-name> <namespace> <pod-name>   - Describe pod
  pod logs <cluster-name> <namespace> <pod-name>       - Get pod logs
  pod delete <cluster-name> <namespace> <pod-name>     - Delete pod

Node commands:
  node list <cluster-name>                             - List nodes
  node describe <cluster-name> <node-name>             - Describe node
  node metrics <cluster-name>                          - Get node metrics

Monitor commands:
  monitor status <cluster-name>                        - Get monitoring status
  monitor alerts <cluster-name>                        - Get monitoring alerts
  monitor chart <cluster-name>                         - Send monitoring chart

Help:
  help                                                 - Show this help message
"""

# (group, subcommand) -> (argument names, handler method name)
_COMMANDS: dict[tuple[str, str], tuple[tuple[str, ...], str]] = {
    ("cluster", "status"): (("cluster name",), "_cluster_status"),
    ("cluster", "metrics"): (("cluster name",), "_cluster_metrics"),
    ("cluster", "chart"): (("cluster name",), "_send_chart"),
    ("pod", "list"): (("cluster name", "namespace"), "_pod_list"),
    ("pod", "describe"): (("cluster name", "namespace", "pod name"), "_pod_describe"),
    ("pod", "logs"): (("cluster name", "namespace", "pod name"), "_pod_logs"),
    ("pod", "delete"): (("cluster name", "namespace", "pod name"), "_pod_delete"),
    ("node", "list"): (("cluster name",), "_node_list"),
    ("node", "describe"): (("cluster name", "node name"), "_node_describe"),
    ("node", "metrics"): (("cluster name",), "_node_metrics"),
    ("monitor", "status"): (("cluster name",), "_monitor_status"),
    ("monitor", "alerts"): (("cluster name",), "_monitor_alerts"),
    ("monitor", "chart"): (("cluster name",), "_send_chart"),
}

_GROUPS = ("cluster", "pod", "node", "monitor")


def _requires(args: tuple[str, ...]) -> str:
    if len(args) == 1:
        return args[0]
    return ", ".join(args[:-1]) + " and " + args[-1]


class CommandHandler:
    """Parses a command line and answers with a plain-text reply."""

    def __init__(
        self,
        registry: ClusterRegistry,
        sampler: Sampler,
        monitoring: MonitoringService,
        clock: Clock = utc_now,
    ) -> None:
        self._registry = registry
        self._sampler = sampler
        self._monitoring = monitoring
        self._clock = clock

    async def handle(self, text: str) -> str:
        parts = text.split()
        if not parts:
            raise CommandError("empty command")
        verb = parts[0]
        if verb == "help":
            return HELP_TEXT
        if verb not in _GROUPS:
            raise CommandError(f"unknown command: {verb}")
        if len(parts) < 2:
            raise CommandError(f"{verb} command requires subcommand")
        sub = parts[1]
        try:
            arg_names, method = _COMMANDS[(verb, sub)]
        except KeyError:
            raise CommandError(f"unknown {verb} subcommand: {sub}") from None
        args = parts[2:]
        if len(args) < len(arg_names):
            raise CommandError(f"{verb} {sub} command requires {_requires(arg_names)}")
        handler: Callable[..., Awaitable[str]] = getattr(self, method)
        _log.info("command_received", command=f"{verb} {sub}", args=args[: len(arg_names)])
        return await handler(*args[: len(arg_names)])

    # -- cluster ----------------------------------------------------------

    async def _cluster_status(self, cluster: str) -> str:
        handle = self._registry.get(cluster)
        status = summarize_status(cluster, await handle.list_nodes(), await handle.list_pods(), self._clock())
        nodes, pods = status["nodes"], status["pods"]
        return (
            f"Cluster: {cluster}\n"
            f"Nodes: {nodes['total']} (Ready: {nodes['ready']}, NotReady: {nodes['notReady']})\n"
            f"Pods: {pods['total']} (Running: {pods['running']}, "
            f"Pending: {pods['pending']}, Failed: {pods['failed']})\n"
        )

    async def _cluster_metrics(self, cluster: str) -> str:
        sample = await self._sampler.sample(cluster)
        return (
            f"Cluster Metrics: {cluster}\n"
            f"Timestamp: {sample.timestamp.strftime(_TIME_FORMAT)}\n"
            f"Nodes: {sample.nodes.total} (Ready: {sample.nodes.ready}, NotReady: {sample.nodes.not_ready})\n"
            f"Pods: {sample.pods.total} (Running: {sample.pods.running}, "
            f"Pending: {sample.pods.pending}, Failed: {sample.pods.failed})\n"
            f"Total CPU: {format_cpu(sample.resources.total_cpu_milli)}, "
            f"Total Memory: {format_memory(sample.resources.total_memory_bytes)}\n"
        )

    async def _send_chart(self, cluster: str) -> str:
        try:
            delivered = await self._monitoring.send_chart(cluster)
        except NoHistoryError as exc:
            raise CommandError(str(exc)) from exc
        return f"Sent monitoring chart for cluster {cluster} to {delivered} notifier(s)"

    # -- pod --------------------------------------------------------------

    async def _pod_list(self, cluster: str, namespace: str) -> str:
        pods = await self._registry.get(cluster).list_pods(namespace)
        lines = [f"Pods in namespace {namespace}:"]
        for pod in pods:
            name = (pod.get("metadata") or {}).get("name", "")
            phase = (pod.get("status") or {}).get("phase", "Unknown")
            lines.append(f"- {name} ({phase})")
        return "\n".join(lines) + "\n"

    async def _pod_describe(self, cluster: str, namespace: str, name: str) -> str:
        pod = await self._registry.get(cluster).get_pod(namespace, name)
        meta: dict[str, Any] = pod.get("metadata") or {}
        created = parse_time(meta.get("creationTimestamp"))
        return (
            f"Pod: {meta.get('name', name)}\n"
            f"Namespace: {meta.get('namespace', namespace)}\n"
            f"Status: {(pod.get('status') or {}).get('phase', 'Unknown')}\n"
            f"Node: {(pod.get('spec') or {}).get('nodeName', '')}\n"
            f"Created: {created.strftime(_TIME_FORMAT) if created else ''}\n"
        )

    async def _pod_logs(self, cluster: str, namespace: str, name: str) -> str:
        logs = await self._registry.get(cluster).pod_logs(namespace, name, DEFAULT_TAIL_LINES)
        return f"Logs from pod {name}:\n{logs}"

    async def _pod_delete(self, cluster: str, namespace: str, name: str) -> str:
        await self._registry.get(cluster).delete_pod(namespace, name)
        _log.info("pod_deleted", cluster=cluster, namespace=namespace, pod=name)
        return f"Deleted pod {name} in namespace {namespace}"

    # -- node -------------------------------------------------------------

    async def _node_list(self, cluster: str) -> str:
        nodes = await self._registry.get(cluster).list_nodes()
        lines = [f"Nodes in cluster {cluster}:"]
        lines.extend(f"- {(n.get('metadata') or {}).get('name', '')}" for n in nodes)
        return "\n".join(lines) + "\n"

    async def _node_describe(self, cluster: str, name: str) -> str:
        node = await self._registry.get(cluster).get_node(name)
        summary, _ = summarize_nodes([node])
        detail = summary.details[0]
        return (
            f"Node: {detail.name or name}\n"
            f"Status: {'Ready' if detail.ready else 'NotReady'}\n"
            f"CPU: {detail.capacity_cpu}\n"
            f"Memory: {detail.capacity_memory}\n"
        )

    async def _node_metrics(self, cluster: str) -> str:
        metrics = node_metrics(await self._registry.get(cluster).list_nodes())
        lines = [f"Node Metrics for cluster {cluster}:"]
        lines.extend(f"- {name}: CPU={m['CPU']}, Memory={m['Memory']}" for name, m in metrics.items())
        return "\n".join(lines) + "\n"

    # -- monitor ----------------------------------------------------------

    async def _monitor_status(self, cluster: str) -> str:
        self._registry.get_cluster(cluster)
        points = self._monitoring.data_points(cluster)
        if not points:
            return f"No monitoring data for cluster {cluster}"
        return f"Monitoring status for cluster {cluster}: Active ({points} data points)"

    async def _monitor_alerts(self, cluster: str) -> str:
        self._registry.get_cluster(cluster)
        alerts = self._monitoring.alerts(cluster)
        if not alerts:
            return f"No alerts for cluster {cluster}"
        lines = [f"Alerts for cluster {cluster}:"]
        for alert in alerts:
            state = " (resolved)" if alert.resolved else ""
            lines.append(f"- [{alert.level}] {alert.type}: {alert.message}{state}")
        return "\n".join(lines) + "\n"
