"""
Pytest configuration and shared fixtures for the metrics scraper tests.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from metrics_scraper.database import MetricsStore, initialize
from metrics_scraper.snapshot import ContainerMetrics, NodeMetrics, PodMetrics

pytest_plugins = ["pytest_asyncio"]


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (deselect with '-m \"not integration\"')",
    )


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Path to a fresh database file for each test."""
    return tmp_path / "metrics.db"


@pytest.fixture
async def store(db_path: Path) -> MetricsStore:
    """An initialized MetricsStore on a fresh database."""
    store = MetricsStore(db_path)
    await initialize(store)
    return store


@pytest.fixture
def sql(db_path: Path) -> Generator[sqlite3.Connection, None, None]:
    """A raw connection to the test database for inspecting and seeding rows."""
    conn = sqlite3.connect(str(db_path), isolation_level=None)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def count_rows(sql: sqlite3.Connection) -> Callable[[str], int]:
    """Count rows in a table through the raw connection."""

    def _count(table: str) -> int:
        return sql.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]

    return _count


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Generator[None, None, None]:
    """Undo any setup_logging() call so tests don't leak handlers."""
    yield
    logger = logging.getLogger("metrics_scraper")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


# =============================================================================
# Snapshot Builders
# =============================================================================


def make_node(
    uid: str = "node-uid-1",
    name: str = "node-1",
    cpu: str = "250m",
    memory: str = "1Gi",
    storage: str = "10Gi",
) -> NodeMetrics:
    """Build a NodeMetrics record."""
    return NodeMetrics(
        uid=uid,
        name=name,
        usage={"cpu": cpu, "memory": memory, "ephemeral-storage": storage},
    )


def make_pod(
    uid: str = "pod-uid-1",
    name: str = "web-0",
    namespace: str = "default",
    containers: list[str] | None = None,
) -> PodMetrics:
    """Build a PodMetrics record with one entry per container name."""
    names = containers if containers is not None else ["app"]
    return PodMetrics(
        uid=uid,
        name=name,
        namespace=namespace,
        containers=[
            ContainerMetrics(
                name=container,
                usage={"cpu": "10m", "memory": "64Mi", "ephemeral-storage": "1Mi"},
            )
            for container in names
        ],
    )
