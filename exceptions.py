"""
Unified exception hierarchy for the budget reconciliation project.

FinanceAppError is the base exception so callers can catch every
project-specific failure in one place while still distinguishing the
layer (configuration, storage, ingestion, budgeting) that raised it.
"""

from typing import Optional


class FinanceAppError(Exception):
    """
    Base exception class for all project errors.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional error context
        original_error: Optional original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ) -> None:
        """
        Initialize FinanceAppError.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
            original_error: Optional original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        msg = self.message
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            msg = f"{msg} ({detail_str})"
        return msg


class ConfigError(FinanceAppError):
    """Raised when configuration loading or validation fails."""
    pass


class DatabaseError(FinanceAppError):
    """Raised when database operations fail."""
    pass


class IngestionError(FinanceAppError):
    """Raised when CSV ingestion encounters a non-recoverable error."""
    pass


class BudgetError(FinanceAppError):
    """Raised when budget construction receives an unusable argument."""
    pass


class ReconciliationError(BudgetError):
    """
    Raised in strict mode when a removal would drive a budget's spent
    amount below zero, meaning the incremental history is out of sync
    with the ledger.
    """
    pass
