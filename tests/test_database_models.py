"""
Tests for the nodes and pods row models.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError

import pytest
from conftest import make_node, make_pod

from metrics_scraper.database import NodeMetricRow, PodMetricRow
from metrics_scraper.snapshot import ContainerMetrics, NodeMetrics, ResourceUsage


class TestNodeMetricRow:
    """Tests for NodeMetricRow."""

    def test_from_metrics(self) -> None:
        """Test converting node usage to stored integers."""
        row = NodeMetricRow.from_metrics(
            make_node(uid="n1", name="worker", cpu="250m", memory="1Gi", storage="10Gi")
        )

        assert row == NodeMetricRow(
            uid="n1",
            name="worker",
            cpu=250,
            memory=2**30,
            storage=10 * 2**30,
        )
        assert row.time is None

    def test_memory_is_truncated(self) -> None:
        """Test that fractional bytes are dropped."""
        node = NodeMetrics(
            uid="n1",
            name="worker",
            usage=ResourceUsage(cpu="1n", memory="1500m", ephemeral_storage="999m"),
        )

        row = NodeMetricRow.from_metrics(node)

        assert row.cpu == 1
        assert row.memory == 1
        assert row.storage == 0

    def test_missing_usage_is_zero(self) -> None:
        """Test a node without usage values."""
        row = NodeMetricRow.from_metrics(NodeMetrics(uid="n1", name="worker"))

        assert (row.cpu, row.memory, row.storage) == (0, 0, 0)

    def test_to_params(self) -> None:
        """Test insert parameters follow column order."""
        row = NodeMetricRow(uid="n1", name="worker", cpu=1, memory=2, storage=3)
        assert row.to_params() == ("n1", "worker", 1, 2, 3)

    def test_time_is_unset_before_insertion(self) -> None:
        """Test that the insertion time is left to the store."""
        row = NodeMetricRow.from_metrics(make_node())

        assert row.time is None
        assert len(row.to_params()) == 5


class TestPodMetricRow:
    """Tests for PodMetricRow."""

    def test_from_metrics(self) -> None:
        """Test converting container usage to stored integers."""
        pod = make_pod(uid="p1", name="web-0", namespace="shop", containers=["app"])

        row = PodMetricRow.from_metrics(pod, pod.containers[0])

        assert row == PodMetricRow(
            uid="p1",
            name="web-0",
            namespace="shop",
            container="app",
            cpu=10,
            memory=64 * 2**20,
            storage=2**20,
        )

    def test_container_identity(self) -> None:
        """Test that pod identity is copied onto every container row."""
        pod = make_pod(uid="p1", containers=["a", "b"])

        rows = [PodMetricRow.from_metrics(pod, c) for c in pod.containers]

        assert [r.container for r in rows] == ["a", "b"]
        assert {r.uid for r in rows} == {"p1"}

    def test_to_params(self) -> None:
        """Test insert parameters follow column order."""
        pod = make_pod(uid="p1", name="web-0", namespace="shop")
        row = PodMetricRow.from_metrics(pod, ContainerMetrics(name="idle"))

        assert row.to_params() == ("p1", "web-0", "shop", "idle", 0, 0, 0)

    def test_rows_are_frozen(self) -> None:
        """Test that stored rows cannot be mutated."""
        row = PodMetricRow.from_metrics(make_pod(), ContainerMetrics(name="app"))

        with pytest.raises(FrozenInstanceError):
            row.cpu = 1  # type: ignore[misc]
