"""Tests for the sampler and the shared node/pod summaries."""

from __future__ import annotations

from datetime import timedelta

import pytest
from fakes import T0, FakeClusterQuery, MutableClock, make_event, make_node, make_pod, make_pods, make_registry

from klaw.errors import ClusterNotFoundError, SampleError
from klaw.metrics.sampler import Sampler, node_metrics, summarize_nodes, summarize_pods, summarize_status


class TestSummaries:
    def test_summarize_nodes_counts_and_capacity(self) -> None:
        summary, resources = summarize_nodes(
            [make_node("n1", cpu="4", memory="16Gi"), make_node("n2", ready=False, cpu="3500m", memory="8Gi")]
        )
        assert (summary.total, summary.ready, summary.not_ready) == (2, 1, 1)
        assert resources.total_cpu_milli == 7500
        assert resources.total_memory_bytes == 24 * 2**30
        assert resources.used_cpu_milli == 3750
        assert [d.name for d in summary.details] == ["n1", "n2"]

    def test_node_without_ready_condition_is_not_ready(self) -> None:
        summary, _ = summarize_nodes([{"metadata": {"name": "n"}, "status": {}}])
        assert summary.not_ready == 1

    def test_summarize_pods_phases_restarts_and_age(self) -> None:
        pods = [
            make_pod("a", "Running", restarts=2, created=T0 - timedelta(minutes=10)),
            make_pod("b", "Pending"),
            make_pod("c", "Failed"),
            make_pod("d", "Succeeded"),
            make_pod("e", "Unknown"),
        ]
        summary = summarize_pods(pods, T0)
        assert (summary.total, summary.running, summary.pending, summary.failed, summary.succeeded) == (5, 1, 1, 1, 1)
        assert summary.details[0].restart_count == 2
        assert summary.details[0].age_seconds == 600.0

    def test_summarize_status_shape(self) -> None:
        status = summarize_status("a", [make_node("n1"), make_node("n2", ready=False)], make_pods("Failed", 2), T0)
        assert status == {
            "cluster": "a",
            "nodes": {"total": 2, "ready": 1, "notReady": 1},
            "pods": {"total": 2, "running": 0, "pending": 0, "failed": 2},
            "timestamp": T0.isoformat(),
        }

    def test_node_metrics_view(self) -> None:
        metrics = node_metrics([make_node("n1", cpu="8", memory="32Gi")])
        assert metrics["n1"]["CPU"] == "8"
        assert metrics["n1"]["Memory"] == "32Gi"
        assert {"type": "Ready", "status": "True", "reason": "KubeletReady"} in metrics["n1"]["Conditions"]


class TestSampler:
    async def test_sample_builds_full_snapshot(self) -> None:
        query = FakeClusterQuery(
            nodes=[make_node("n1"), make_node("n2", ready=False)],
            pods=make_pods("Running", 3) + make_pods("Pending", 1),
            events=[make_event()],
        )
        sampler = Sampler(await make_registry({"a": query}), clock=MutableClock())

        sample = await sampler.sample("a")

        assert sample.cluster_name == "a"
        assert sample.timestamp == T0
        assert sample.nodes.not_ready == 1
        assert sample.pods.running == 3
        assert sample.pods.pending == 1
        assert sample.events[0].reason == "BackOff"
        assert sample.resources.total_cpu_milli == 8000

    async def test_events_capped_at_limit(self) -> None:
        query = FakeClusterQuery(events=[make_event(reason=f"r{i}") for i in range(80)])
        sampler = Sampler(await make_registry({"a": query}))
        sample = await sampler.sample("a")
        assert len(sample.events) == 50

    async def test_failed_sub_query_fails_the_sample(self) -> None:
        query = FakeClusterQuery(nodes=[make_node("n1")])
        query.fail = "connection refused"
        sampler = Sampler(await make_registry({"a": query}))

        with pytest.raises(SampleError) as exc_info:
            await sampler.sample("a")
        assert exc_info.value.operation == "nodes"
        assert "connection refused" in str(exc_info.value)

    async def test_unknown_cluster(self) -> None:
        sampler = Sampler(await make_registry({"a": FakeClusterQuery()}))
        with pytest.raises(ClusterNotFoundError):
            await sampler.sample("missing")

    async def test_malformed_capacity_is_a_sample_error(self) -> None:
        query = FakeClusterQuery(nodes=[make_node("n1", cpu="lots")])
        sampler = Sampler(await make_registry({"a": query}))
        with pytest.raises(SampleError) as exc_info:
            await sampler.sample("a")
        assert exc_info.value.operation == "nodes"

    async def test_sample_to_dict_is_camel_case(self) -> None:
        sampler = Sampler(await make_registry({"a": FakeClusterQuery(nodes=[make_node("n1")])}), clock=MutableClock())
        data = (await sampler.sample("a")).to_dict()
        assert data["clusterName"] == "a"
        assert data["nodes"]["notReady"] == 0
        assert data["resources"]["totalCPU"] == "4.0"
        assert data["resources"]["totalMemory"] == "16.00Gi"
