"""Text chart rendering.

Charts are plain text: title, separator, legend, one bar per data point
drawn with Unicode full blocks, and an x-axis of ten ``HH:MM`` labels at
one-minute spacing ending at *now*. The output is deterministic for a
given (title, sample, now) and is carried to notifiers as UTF-8 bytes.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from klaw.models.metrics import ClusterSample

BLOCK = "█"
MAX_BAR_WIDTH = 20
TIME_LABEL_COUNT = 10

ChartRenderer = Callable[[ClusterSample, str, datetime], bytes]


@dataclass(frozen=True)
class Dataset:
    """One series: named points, a legend color and a percent scale."""

    label: str
    points: tuple[tuple[str, float], ...]
    color: str


@dataclass(frozen=True)
class ChartData:
    title: str
    y_label: str
    x_labels: tuple[str, ...]
    datasets: tuple[Dataset, ...] = field(default_factory=tuple)
    show_legend: bool = True


def time_labels(now: datetime, count: int = TIME_LABEL_COUNT) -> tuple[str, ...]:
    """``count`` labels one minute apart, the last one being *now*."""
    return tuple((now - timedelta(minutes=count - 1 - i)).strftime("%H:%M") for i in range(count))


def _bar(value: float) -> str:
    width = int(value / (100 / MAX_BAR_WIDTH))
    return BLOCK * max(0, min(width, MAX_BAR_WIDTH))


def render_chart(data: ChartData) -> bytes:
    lines = ["", data.title, "=" * len(data.title)]
    if data.show_legend:
        lines += ["", "Legend:"]
        lines += [f"  {ds.label}: {ds.color}" for ds in data.datasets]
        lines.append("")
    lines += [data.y_label, "=" * MAX_BAR_WIDTH]
    for ds in data.datasets:
        lines += ["", f"{ds.label}:"]
        lines += [f"  {name:<10} {value:5.1f} {_bar(value)}".rstrip() for name, value in ds.points]
    lines += ["", "".join(f"{label:<10}" for label in data.x_labels).rstrip(), ""]
    return "\n".join(lines).encode("utf-8")


def _percent(part: int, whole: int) -> float:
    return 100.0 * part / whole if whole else 0.0


def cluster_chart_data(sample: ClusterSample, title: str, now: datetime) -> ChartData:
    nodes, pods, res = sample.nodes, sample.pods, sample.resources
    return ChartData(
        title=title,
        y_label="Share (%)",
        x_labels=time_labels(now),
        datasets=(
            Dataset(
                label="Nodes",
                points=(
                    ("ready", _percent(nodes.ready, nodes.total)),
                    ("notReady", _percent(nodes.not_ready, nodes.total)),
                ),
                color="#4ECDC4",
            ),
            Dataset(
                label="Pods",
                points=(
                    ("running", _percent(pods.running, pods.total)),
                    ("pending", _percent(pods.pending, pods.total)),
                    ("failed", _percent(pods.failed, pods.total)),
                    ("succeeded", _percent(pods.succeeded, pods.total)),
                ),
                color="#FF6B6B",
            ),
            Dataset(
                label="Capacity used",
                points=(
                    ("cpu", _percent(res.used_cpu_milli, res.total_cpu_milli)),
                    ("memory", _percent(res.used_memory_bytes, res.total_memory_bytes)),
                ),
                color="#FFD166",
            ),
        ),
    )


def chart_title(cluster: str) -> str:
    return f"Cluster Monitoring - {cluster}"


def render_cluster_chart(sample: ClusterSample, title: str, now: datetime) -> bytes:
    """Render the monitoring chart for one sample."""
    return render_chart(cluster_chart_data(sample, title, now))
