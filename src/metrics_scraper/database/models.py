"""
Row models for the nodes and pods tables.

Usage columns are declared as text in SQLite but are always integers in
Python: cpu in millicores, memory and storage in bytes. The conversion from
API quantities happens here, on the write path.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from metrics_scraper.quantity import Quantity
from metrics_scraper.snapshot import ContainerMetrics, NodeMetrics, PodMetrics, ResourceUsage


def _truncated_units(quantity: Quantity) -> int:
    """
    Convert a quantity to whole units via its milli value.

    The milli value is divided by 1000 with truncation toward zero. This is
    lossy for fractional amounts and is kept deliberately so stored values
    stay comparable with rows written by earlier releases.
    """
    milli = quantity.milli_value()
    units = abs(milli) // 1000
    return units if milli >= 0 else -units


@dataclass(frozen=True)
class Usage:
    """Integer resource usage as persisted."""

    cpu: int
    memory: int
    storage: int

    @classmethod
    def from_resource_usage(cls, usage: ResourceUsage) -> Usage:
        return cls(
            cpu=usage.cpu.milli_value(),
            memory=_truncated_units(usage.memory),
            storage=_truncated_units(usage.ephemeral_storage),
        )


@dataclass(frozen=True)
class NodeMetricRow:
    """
    One snapshot of one node.

    Attributes:
        uid: Node UID. Not unique: every snapshot adds a row.
        name: Node name.
        cpu: CPU usage in millicores.
        memory: Memory usage in bytes.
        storage: Ephemeral storage usage in bytes.
        time: Insertion time assigned by the store, None before insertion.
    """

    uid: str
    name: str
    cpu: int
    memory: int
    storage: int
    time: datetime | None = None

    @classmethod
    def from_metrics(cls, node: NodeMetrics) -> NodeMetricRow:
        usage = Usage.from_resource_usage(node.usage)
        return cls(
            uid=node.uid,
            name=node.name,
            cpu=usage.cpu,
            memory=usage.memory,
            storage=usage.storage,
        )

    def to_params(self) -> tuple[Any, ...]:
        """Return the bind parameters for the insert statement."""
        return (self.uid, self.name, self.cpu, self.memory, self.storage)


@dataclass(frozen=True)
class PodMetricRow:
    """
    One snapshot of one container of one pod.

    Attributes:
        uid: Pod UID, shared by all containers of the pod.
        name: Pod name.
        namespace: Pod namespace.
        container: Container name within the pod.
        cpu: CPU usage in millicores.
        memory: Memory usage in bytes.
        storage: Ephemeral storage usage in bytes.
        time: Insertion time assigned by the store, None before insertion.
    """

    uid: str
    name: str
    namespace: str
    container: str
    cpu: int
    memory: int
    storage: int
    time: datetime | None = None

    @classmethod
    def from_metrics(cls, pod: PodMetrics, container: ContainerMetrics) -> PodMetricRow:
        usage = Usage.from_resource_usage(container.usage)
        return cls(
            uid=pod.uid,
            name=pod.name,
            namespace=pod.namespace,
            container=container.name,
            cpu=usage.cpu,
            memory=usage.memory,
            storage=usage.storage,
        )

    def to_params(self) -> tuple[Any, ...]:
        """Return the bind parameters for the insert statement."""
        return (
            self.uid,
            self.name,
            self.namespace,
            self.container,
            self.cpu,
            self.memory,
            self.storage,
        )
