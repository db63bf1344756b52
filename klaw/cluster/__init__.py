"""Cluster access for klaw.

Submodules:
    query     -- ClusterQuery capability and its kubernetes-asyncio implementation.
    registry  -- ClusterRegistry: static cluster list and per-cluster handles.
"""

from klaw.cluster.query import DEFAULT_TAIL_LINES, ClusterQuery, KubeClusterQuery, connect_cluster
from klaw.cluster.registry import ClusterRegistry

__all__ = [
    "DEFAULT_TAIL_LINES",
    "ClusterQuery",
    "ClusterRegistry",
    "KubeClusterQuery",
    "connect_cluster",
]
