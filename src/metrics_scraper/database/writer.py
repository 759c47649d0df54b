"""
Snapshot writer.

Persists one scrape (all node records plus every container of every pod) in
a single transaction: either every row of the snapshot is stored or none is.
"""

from __future__ import annotations

from collections.abc import Sequence

from metrics_scraper.database.models import NodeMetricRow, PodMetricRow
from metrics_scraper.database.store import MetricsStore
from metrics_scraper.errors import MetricsStoreError
from metrics_scraper.logging import get_logger
from metrics_scraper.snapshot import NodeMetrics, PodMetrics

logger = get_logger(__name__)

INSERT_NODE_SQL = (
    "INSERT INTO nodes (uid, name, cpu, memory, storage, time) "
    "VALUES (?, ?, ?, ?, ?, datetime('now'))"
)

INSERT_POD_SQL = (
    "INSERT INTO pods (uid, name, namespace, container, cpu, memory, storage, time) "
    "VALUES (?, ?, ?, ?, ?, ?, ?, datetime('now'))"
)


async def write_snapshot(
    store: MetricsStore,
    node_metrics: Sequence[NodeMetrics],
    pod_metrics: Sequence[PodMetrics],
) -> None:
    """
    Insert one node snapshot and one pod snapshot atomically.

    Each node produces one row in ``nodes``; each container of each pod
    produces one row in ``pods``. Insertion time is assigned by the store.

    Args:
        store: The metrics store handle.
        node_metrics: Node usage records of the snapshot.
        pod_metrics: Pod usage records of the snapshot.

    Raises:
        StoreUnavailableError: If the database cannot be opened.
        StatementError: If an insert fails; nothing from this call is kept.
        TransactionAbortError: If the commit fails; nothing is kept.
        RollbackFailedError: If rolling back a failed write also fails.
    """

    def _write() -> tuple[int, int]:
        node_rows = 0
        pod_rows = 0
        with store.transaction() as conn:
            for node in node_metrics:
                conn.execute(INSERT_NODE_SQL, NodeMetricRow.from_metrics(node).to_params())
                node_rows += 1

            for pod in pod_metrics:
                for container in pod.containers:
                    conn.execute(
                        INSERT_POD_SQL,
                        PodMetricRow.from_metrics(pod, container).to_params(),
                    )
                    pod_rows += 1
        return node_rows, pod_rows

    try:
        node_rows, pod_rows = await store.run(_write)
    except MetricsStoreError as e:
        logger.error(
            "Failed to write metrics snapshot",
            extra={
                "error_code": e.error_code,
                "error": str(e),
                "nodes": len(node_metrics),
                "pods": len(pod_metrics),
            },
        )
        raise

    logger.debug(
        "Wrote metrics snapshot",
        extra={"node_rows": node_rows, "pod_rows": pod_rows},
    )
