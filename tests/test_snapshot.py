"""
Tests for the input snapshot models and metrics API list parsing.
"""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from metrics_scraper.errors import InvalidArgumentError
from metrics_scraper.quantity import Quantity
from metrics_scraper.snapshot import (
    ContainerMetrics,
    NodeMetrics,
    PodMetrics,
    ResourceUsage,
    parse_node_metrics_list,
    parse_pod_metrics_list,
)


@pytest.fixture
def node_metrics_list() -> dict[str, Any]:
    """A NodeMetricsList as served by metrics.k8s.io/v1beta1."""
    return {
        "kind": "NodeMetricsList",
        "apiVersion": "metrics.k8s.io/v1beta1",
        "metadata": {},
        "items": [
            {
                "metadata": {"name": "kind-control-plane", "uid": "5d2c"},
                "timestamp": "2024-03-01T12:00:00Z",
                "window": "10.06s",
                "usage": {"cpu": "156340515n", "memory": "1532452Ki"},
            },
            {
                "metadata": {"name": "kind-worker", "uid": "77aa"},
                "timestamp": "2024-03-01T12:00:00Z",
                "window": "10.06s",
                "usage": {
                    "cpu": "42m",
                    "memory": "812Mi",
                    "ephemeral-storage": "3Gi",
                },
            },
        ],
    }


@pytest.fixture
def pod_metrics_list() -> dict[str, Any]:
    """A PodMetricsList as served by metrics.k8s.io/v1beta1."""
    return {
        "kind": "PodMetricsList",
        "apiVersion": "metrics.k8s.io/v1beta1",
        "metadata": {},
        "items": [
            {
                "metadata": {
                    "name": "coredns-5d78c9869d-4xk2p",
                    "namespace": "kube-system",
                    "uid": "a1b2",
                },
                "containers": [
                    {"name": "coredns", "usage": {"cpu": "1950297n", "memory": "13240Ki"}}
                ],
            },
            {
                "metadata": {"name": "web-0", "namespace": "default", "uid": "c3d4"},
                "containers": [
                    {"name": "nginx", "usage": {"cpu": "0", "memory": "3Mi"}},
                    {"name": "exporter", "usage": {"cpu": "1m", "memory": "9Mi"}},
                ],
            },
        ],
    }


# =============================================================================
# Tests for Models
# =============================================================================


class TestResourceUsage:
    """Tests for ResourceUsage."""

    def test_defaults_to_zero(self) -> None:
        """Test that omitted resources are zero."""
        usage = ResourceUsage()
        assert usage.cpu == Quantity.zero()
        assert usage.memory == Quantity.zero()
        assert usage.ephemeral_storage == Quantity.zero()

    def test_accepts_api_key_and_field_name(self) -> None:
        """Test both spellings of ephemeral storage."""
        by_alias = ResourceUsage.model_validate({"ephemeral-storage": "1Gi"})
        by_name = ResourceUsage(ephemeral_storage="1Gi")
        assert by_alias.ephemeral_storage == by_name.ephemeral_storage

    def test_invalid_quantity(self) -> None:
        """Test that unparseable quantities fail validation."""
        with pytest.raises(ValidationError, match="Invalid quantity"):
            ResourceUsage(cpu="lots")

    def test_serializes_quantities_as_strings(self) -> None:
        """Test JSON-friendly dumping."""
        usage = ResourceUsage(cpu="250m", memory="1Gi")
        assert usage.model_dump(by_alias=True) == {
            "cpu": "250m",
            "memory": "1Gi",
            "ephemeral-storage": "0",
        }


class TestSnapshotModels:
    """Tests for node, pod and container records."""

    def test_node_requires_identity(self) -> None:
        """Test that uid and name are required."""
        with pytest.raises(ValidationError):
            NodeMetrics(name="n")  # type: ignore[call-arg]

    def test_pod_containers_default_empty(self) -> None:
        """Test a pod without containers."""
        pod = PodMetrics(uid="u", name="n", namespace="ns")
        assert pod.containers == []

    def test_models_are_frozen(self) -> None:
        """Test that snapshot records cannot be mutated."""
        container = ContainerMetrics(name="app")
        with pytest.raises(ValidationError):
            container.name = "other"  # type: ignore[misc]


# =============================================================================
# Tests for List Parsing
# =============================================================================


class TestParseNodeMetricsList:
    """Tests for parse_node_metrics_list()."""

    def test_parses_items(self, node_metrics_list: dict[str, Any]) -> None:
        """Test parsing a NodeMetricsList document."""
        nodes = parse_node_metrics_list(node_metrics_list)

        assert [n.name for n in nodes] == ["kind-control-plane", "kind-worker"]
        assert [n.uid for n in nodes] == ["5d2c", "77aa"]
        assert nodes[0].usage.cpu.milli_value() == 157
        assert nodes[0].usage.ephemeral_storage == Quantity.zero()
        assert nodes[1].usage.ephemeral_storage == Quantity.parse("3Gi")

    def test_empty_list(self) -> None:
        """Test documents with no items."""
        assert parse_node_metrics_list({"items": []}) == []
        assert parse_node_metrics_list({}) == []

    def test_items_must_be_list(self) -> None:
        """Test that a malformed items field is rejected."""
        with pytest.raises(InvalidArgumentError):
            parse_node_metrics_list({"items": {"name": "x"}})

    def test_invalid_item_reports_index(self, node_metrics_list: dict[str, Any]) -> None:
        """Test that a bad quantity names the offending item."""
        node_metrics_list["items"][1]["usage"]["memory"] = "huge"

        with pytest.raises(InvalidArgumentError) as exc_info:
            parse_node_metrics_list(node_metrics_list)

        assert exc_info.value.details["index"] == 1


class TestParsePodMetricsList:
    """Tests for parse_pod_metrics_list()."""

    def test_parses_items(self, pod_metrics_list: dict[str, Any]) -> None:
        """Test parsing a PodMetricsList document."""
        pods = parse_pod_metrics_list(pod_metrics_list)

        assert [p.name for p in pods] == ["coredns-5d78c9869d-4xk2p", "web-0"]
        assert pods[0].namespace == "kube-system"
        assert [c.name for c in pods[1].containers] == ["nginx", "exporter"]
        assert pods[1].containers[1].usage.cpu.milli_value() == 1

    def test_invalid_container_reports_index(
        self, pod_metrics_list: dict[str, Any]
    ) -> None:
        """Test that a bad container quantity names the offending pod."""
        pod_metrics_list["items"][0]["containers"][0]["usage"]["cpu"] = "fast"

        with pytest.raises(InvalidArgumentError) as exc_info:
            parse_pod_metrics_list(pod_metrics_list)

        assert exc_info.value.details["index"] == 0
