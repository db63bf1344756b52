"""Cluster sampling and resource-quantity helpers."""

from klaw.metrics.quantity import cpu_milli, format_cpu, format_memory, memory_bytes, parse_quantity
from klaw.metrics.sampler import (
    Sampler,
    node_metrics,
    summarize_events,
    summarize_nodes,
    summarize_pods,
    summarize_status,
)

__all__ = [
    "Sampler",
    "cpu_milli",
    "format_cpu",
    "format_memory",
    "memory_bytes",
    "node_metrics",
    "parse_quantity",
    "summarize_events",
    "summarize_nodes",
    "summarize_pods",
    "summarize_status",
]
