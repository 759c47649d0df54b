"""
Error types for the metrics scraper persistence layer.

Every failure raised by the database package is a MetricsStoreError (or a
subclass). Errors carry a stable error code, a human-readable message and a
dictionary of structured details so the external scheduler can log them and
decide whether to retry the whole cycle.

Severity, from least to most severe:
- InvalidArgumentError: the caller supplied unusable input.
- StatementError: a single statement failed; the transaction was rolled back.
- TransactionAbortError: the commit failed; the transaction was rolled back.
- StoreUnavailableError: the store could not be opened at all.
- RollbackFailedError: the rollback itself failed; store state is unknown.
"""

from __future__ import annotations

from typing import Any


class MetricsStoreError(Exception):
    """
    Base exception class for metrics store errors.

    Attributes:
        error_code: Internal error code string (e.g., "invalid_argument",
            "unavailable", "statement_error", "transaction_aborted",
            "rollback_failed").
        message: Human-readable error message.
        details: Optional structured details (e.g., table, database path).

    Example:
        >>> raise MetricsStoreError(
        ...     error_code="unavailable",
        ...     message="unable to open database file",
        ...     details={"db_path": "/tmp/metrics.db"},
        ... )
    """

    def __init__(
        self,
        error_code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize a MetricsStoreError.

        Args:
            error_code: Internal error code string identifying the error category.
            message: Human-readable error message.
            details: Optional dictionary with structured error details.
        """
        super().__init__(message)
        self.error_code = error_code
        self.message = message
        self.details = details or {}

    def __repr__(self) -> str:
        """Return a detailed string representation."""
        return (
            f"{self.__class__.__name__}("
            f"error_code={self.error_code!r}, "
            f"message={self.message!r}, "
            f"details={self.details!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the error to a dictionary for serialization.

        Returns:
            Dictionary with error_code, message, and details.
        """
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class InvalidArgumentError(MetricsStoreError):
    """
    Error raised when an operation receives unusable input.

    Used for quantity strings that cannot be parsed and retention windows
    of the wrong type.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize an InvalidArgumentError."""
        super().__init__(
            error_code="invalid_argument", message=message, details=details
        )


class StoreUnavailableError(MetricsStoreError):
    """
    Error raised when the backing store cannot be opened.

    Covers missing or unwritable database paths and permission failures.
    This is fatal to the current cycle and is never retried internally.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize a StoreUnavailableError."""
        super().__init__(error_code="unavailable", message=message, details=details)


class StatementError(MetricsStoreError):
    """
    Error raised when a single SQL statement fails inside a transaction.

    The surrounding transaction has been rolled back when this is raised.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize a StatementError."""
        super().__init__(
            error_code="statement_error", message=message, details=details
        )


class TransactionAbortError(MetricsStoreError):
    """
    Error raised when committing a transaction fails.

    The transaction has been rolled back successfully, so no partial
    effects of the operation are visible.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize a TransactionAbortError."""
        super().__init__(
            error_code="transaction_aborted", message=message, details=details
        )


class RollbackFailedError(MetricsStoreError):
    """
    Error raised when rolling back a failed transaction also fails.

    This is the most severe failure: the store may be left in an
    indeterminate state. The failure that triggered the rollback is kept
    in ``details["cause"]``.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize a RollbackFailedError."""
        super().__init__(
            error_code="rollback_failed", message=message, details=details
        )
