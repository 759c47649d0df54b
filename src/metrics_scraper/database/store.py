"""
Shared handle to the SQLite metrics store.

MetricsStore owns the database location and connection settings. It hands
out one connection per transaction; every public database operation runs
exactly one transaction through ``MetricsStore.transaction()``, which
guarantees commit-or-rollback and connection close on every exit path.

Error mapping:
    - failure to open or configure a connection -> StoreUnavailableError
    - sqlite3.Error or an unbindable integer inside the body -> StatementError
    - failure to commit -> TransactionAbortError
    - failure to roll back -> RollbackFailedError
"""

from __future__ import annotations

import asyncio
import functools
import sqlite3
from collections.abc import Callable, Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

from metrics_scraper.errors import (
    RollbackFailedError,
    StatementError,
    StoreUnavailableError,
    TransactionAbortError,
)
from metrics_scraper.logging import get_logger

if TYPE_CHECKING:
    from metrics_scraper.config import DatabaseConfig

logger = get_logger(__name__)

T = TypeVar("T")

TABLES = ("nodes", "pods")


class MetricsStore:
    """
    Handle to the SQLite database holding node and pod metrics.

    The handle is safe to share between concurrent callers: it keeps no open
    connection, and isolation between transactions is left to SQLite.

    Example:
        >>> store = MetricsStore("/tmp/metrics.db")
        >>> await initialize(store)
        >>> await write_snapshot(store, nodes, pods)
        >>> await cull(store, timedelta(minutes=15))
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        timeout: float = 30.0,
        journal_mode: str = "wal",
    ) -> None:
        """
        Initialize the MetricsStore.

        Args:
            db_path: Path to the SQLite database file.
            timeout: Seconds to wait for a lock held by another connection.
            journal_mode: SQLite journal mode set on each connection.
        """
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.journal_mode = journal_mode

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> MetricsStore:
        """Create a store from the database section of the app config."""
        return cls(
            config.path,
            timeout=config.timeout_seconds,
            journal_mode=config.journal_mode,
        )

    def _connect(self) -> sqlite3.Connection:
        """
        Open a connection in autocommit mode.

        Transactions are started explicitly with BEGIN so that DDL and DML
        share the same transaction handling.
        """
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.timeout,
            isolation_level=None,
        )
        try:
            conn.row_factory = sqlite3.Row
            conn.execute(f"PRAGMA journal_mode={self.journal_mode}")
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    def _open(self) -> sqlite3.Connection:
        try:
            return self._connect()
        except sqlite3.Error as e:
            logger.error(
                "Failed to open metrics database",
                extra={"db_path": str(self.db_path), "error": str(e)},
            )
            raise StoreUnavailableError(
                f"Failed to open metrics database: {e}",
                details={"db_path": str(self.db_path)},
            ) from e

    def _rollback(self, conn: sqlite3.Connection, cause: BaseException) -> None:
        try:
            conn.rollback()
        except sqlite3.Error as e:
            logger.critical(
                "Rollback failed, database state may be inconsistent",
                extra={
                    "db_path": str(self.db_path),
                    "error": str(e),
                    "cause": str(cause),
                },
            )
            raise RollbackFailedError(
                f"Rollback failed: {e}",
                details={"db_path": str(self.db_path), "cause": str(cause)},
            ) from e

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Run a block inside a single transaction.

        Commits once when the block completes. Any exception from the block
        rolls the transaction back before propagating. sqlite3 errors, and
        integers too large to bind, are re-raised as StatementError.

        Yields:
            The connection the transaction runs on.

        Raises:
            StoreUnavailableError: If the database cannot be opened.
            StatementError: If a statement inside the block fails.
            TransactionAbortError: If the commit fails.
            RollbackFailedError: If rolling back after a failure also fails.
        """
        conn = self._open()
        try:
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StoreUnavailableError(
                    f"Failed to begin transaction: {e}",
                    details={"db_path": str(self.db_path)},
                ) from e

            try:
                yield conn
            except (sqlite3.Error, OverflowError) as e:
                self._rollback(conn, e)
                raise StatementError(
                    f"Statement failed: {e}",
                    details={"db_path": str(self.db_path)},
                ) from e
            except BaseException as e:
                self._rollback(conn, e)
                raise

            try:
                conn.commit()
            except sqlite3.Error as e:
                self._rollback(conn, e)
                raise TransactionAbortError(
                    f"Commit failed: {e}",
                    details={"db_path": str(self.db_path)},
                ) from e
        finally:
            conn.close()

    async def run(self, func: Callable[..., T], *args: Any) -> T:
        """
        Run a blocking database function in the default executor.

        The whole transaction executes inside ``func``, so no transaction is
        held open across an await.
        """
        return await asyncio.get_event_loop().run_in_executor(
            None, functools.partial(func, *args)
        )
