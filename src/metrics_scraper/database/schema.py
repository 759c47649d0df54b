"""
Schema initialization for the metrics store.

SQLite Schema:
    nodes(uid text, name text, cpu text, memory text, storage text, time datetime)
    pods(uid text, name text, namespace text, container text,
         cpu text, memory text, storage text, time datetime)

Usage columns are text-typed and hold integers; ``time`` holds
``datetime('now')`` strings in UTC with second resolution.
"""

from __future__ import annotations

from metrics_scraper.database.store import MetricsStore
from metrics_scraper.errors import MetricsStoreError, StoreUnavailableError
from metrics_scraper.logging import get_logger

logger = get_logger(__name__)

SCHEMA_STATEMENTS = (
    "CREATE TABLE IF NOT EXISTS nodes ("
    "uid text, name text, cpu text, memory text, storage text, time datetime)",
    "CREATE TABLE IF NOT EXISTS pods ("
    "uid text, name text, namespace text, container text, "
    "cpu text, memory text, storage text, time datetime)",
)


async def initialize(store: MetricsStore) -> None:
    """
    Create the nodes and pods tables if they don't exist.

    Idempotent and safe to call on every startup. The parent directory of
    the database file is created when missing.

    Args:
        store: The metrics store handle.

    Raises:
        StoreUnavailableError: If the database cannot be created or opened.
        StatementError: If the schema statements are rejected.
    """
    try:
        store.db_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(
            "Failed to create metrics database directory",
            extra={"db_path": str(store.db_path), "error": str(e)},
        )
        raise StoreUnavailableError(
            f"Failed to create metrics database directory: {e}",
            details={"db_path": str(store.db_path)},
        ) from e

    def _create_tables() -> None:
        with store.transaction() as conn:
            for statement in SCHEMA_STATEMENTS:
                conn.execute(statement)

    try:
        await store.run(_create_tables)
    except MetricsStoreError as e:
        logger.error(
            "Failed to initialize metrics database",
            extra={"db_path": str(store.db_path), "error": str(e)},
        )
        raise

    logger.info(
        "Metrics database initialized",
        extra={"db_path": str(store.db_path)},
    )
