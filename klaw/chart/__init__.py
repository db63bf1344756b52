"""Text chart rendering for monitoring dispatch."""

from klaw.chart.renderer import (
    ChartData,
    ChartRenderer,
    Dataset,
    chart_title,
    render_chart,
    render_cluster_chart,
    time_labels,
)

__all__ = [
    "ChartData",
    "ChartRenderer",
    "Dataset",
    "chart_title",
    "render_chart",
    "render_cluster_chart",
    "time_labels",
]
