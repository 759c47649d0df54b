"""
Input snapshot models.

A snapshot is one scrape of the Kubernetes metrics API: a list of node usage
records and a list of pod usage records, each pod carrying per-container
usage. The models mirror the ``metrics.k8s.io/v1beta1`` NodeMetricsList and
PodMetricsList documents closely enough to be built straight from
``kubectl get --raw /apis/metrics.k8s.io/v1beta1/nodes`` output.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from metrics_scraper.errors import InvalidArgumentError
from metrics_scraper.quantity import Quantity


class ResourceUsage(BaseModel):
    """Resource usage of a node or container.

    Resources the API omits default to zero, as the Kubernetes client does.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    cpu: Quantity = Field(default_factory=Quantity.zero)
    memory: Quantity = Field(default_factory=Quantity.zero)
    ephemeral_storage: Quantity = Field(
        default_factory=Quantity.zero,
        alias="ephemeral-storage",
    )


class NodeMetrics(BaseModel):
    """Usage of a single node."""

    model_config = ConfigDict(frozen=True)

    uid: str
    name: str
    usage: ResourceUsage = Field(default_factory=ResourceUsage)


class ContainerMetrics(BaseModel):
    """Usage of a single container within a pod."""

    model_config = ConfigDict(frozen=True)

    name: str
    usage: ResourceUsage = Field(default_factory=ResourceUsage)


class PodMetrics(BaseModel):
    """Usage of a single pod, broken down by container."""

    model_config = ConfigDict(frozen=True)

    uid: str
    name: str
    namespace: str
    containers: list[ContainerMetrics] = Field(default_factory=list)


def _items(payload: dict[str, Any], kind: str) -> list[dict[str, Any]]:
    items = payload.get("items")
    if items is None:
        return []
    if not isinstance(items, list):
        raise InvalidArgumentError(
            f"{kind} 'items' must be a list",
            details={"kind": kind, "type": type(items).__name__},
        )
    return items


def parse_node_metrics_list(payload: dict[str, Any]) -> list[NodeMetrics]:
    """
    Build node records from a NodeMetricsList document.

    Args:
        payload: Decoded JSON of a ``NodeMetricsList``.

    Returns:
        One NodeMetrics per item.

    Raises:
        InvalidArgumentError: If an item is malformed.
    """
    nodes = []
    for index, item in enumerate(_items(payload, "NodeMetricsList")):
        metadata = item.get("metadata") or {}
        try:
            nodes.append(
                NodeMetrics(
                    uid=metadata.get("uid", ""),
                    name=metadata.get("name", ""),
                    usage=item.get("usage") or {},
                )
            )
        except ValidationError as e:
            raise InvalidArgumentError(
                f"Invalid node metrics item at index {index}",
                details={"index": index, "errors": e.errors(include_url=False)},
            ) from e
    return nodes


def parse_pod_metrics_list(payload: dict[str, Any]) -> list[PodMetrics]:
    """
    Build pod records from a PodMetricsList document.

    Args:
        payload: Decoded JSON of a ``PodMetricsList``.

    Returns:
        One PodMetrics per item, each with its containers.

    Raises:
        InvalidArgumentError: If an item is malformed.
    """
    pods = []
    for index, item in enumerate(_items(payload, "PodMetricsList")):
        metadata = item.get("metadata") or {}
        try:
            pods.append(
                PodMetrics(
                    uid=metadata.get("uid", ""),
                    name=metadata.get("name", ""),
                    namespace=metadata.get("namespace", ""),
                    containers=[
                        {"name": c.get("name", ""), "usage": c.get("usage") or {}}
                        for c in item.get("containers") or []
                    ],
                )
            )
        except ValidationError as e:
            raise InvalidArgumentError(
                f"Invalid pod metrics item at index {index}",
                details={"index": index, "errors": e.errors(include_url=False)},
            ) from e
    return pods
