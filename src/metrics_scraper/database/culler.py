"""
Retention culler.

Deletes every node and pod row whose insertion time is at or before
``now - window``. Both tables are culled in one transaction, so they always
share the same cutoff.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from metrics_scraper.config import parse_duration
from metrics_scraper.database.store import TABLES, MetricsStore
from metrics_scraper.errors import InvalidArgumentError, MetricsStoreError
from metrics_scraper.logging import get_logger

logger = get_logger(__name__)


def compute_cutoff(window: timedelta, now: datetime | None = None) -> str:
    """
    Compute the inclusive cutoff timestamp for a retention window.

    A zero window cuts off at ``now``; a negative window cuts off in the
    future, which removes every stored row. Windows reaching past the
    representable date range are clamped to its first or last second.

    Args:
        window: Maximum age of rows to keep.
        now: Reference time. Naive values are taken as UTC. Defaults to the
            current time.

    Returns:
        The cutoff as ``YYYY-MM-DD HH:MM:SS``, truncated to seconds.
    """
    if now is None:
        now = datetime.now(UTC)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    try:
        cutoff = now.astimezone(UTC).replace(tzinfo=None) - window
    except OverflowError:
        cutoff = datetime.min if window > timedelta(0) else datetime.max

    # Stored times come from datetime('now'); isoformat() always pads the
    # year to four digits, so both sides compare correctly as text.
    return cutoff.replace(microsecond=0).isoformat(sep=" ")


async def cull(
    store: MetricsStore,
    window: timedelta | int | float,
    *,
    now: datetime | None = None,
) -> None:
    """
    Delete rows older than the retention window from both tables.

    The number of rows removed from each table is logged at debug level.
    Calling this repeatedly is safe; later calls only remove rows that have
    aged past the cutoff since.

    Args:
        store: The metrics store handle.
        window: Maximum age to retain, as a timedelta or seconds.
        now: Reference time for the cutoff. Defaults to the current time.

    Raises:
        InvalidArgumentError: If the window is not a duration.
        StoreUnavailableError: If the database cannot be opened.
        StatementError: If a delete fails; neither table is changed.
        TransactionAbortError: If the commit fails; neither table is changed.
        RollbackFailedError: If rolling back a failed cull also fails.
    """
    try:
        cutoff = compute_cutoff(parse_duration(window), now)
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidArgumentError(
            f"Invalid retention window: {e}",
            details={"window": repr(window)},
        ) from e

    def _cull() -> dict[str, int]:
        removed = {}
        with store.transaction() as conn:
            for table in TABLES:
                cursor = conn.execute(f"DELETE FROM {table} WHERE time <= ?", (cutoff,))
                removed[table] = cursor.rowcount
        return removed

    try:
        removed = await store.run(_cull)
    except MetricsStoreError as e:
        logger.error(
            "Failed to cull metrics database",
            extra={"error_code": e.error_code, "error": str(e), "cutoff": cutoff},
        )
        raise

    for table, count in removed.items():
        logger.debug(
            "Cleaning up %s: %d rows removed",
            table,
            count,
            extra={"table": table, "rows_removed": count, "cutoff": cutoff},
        )
