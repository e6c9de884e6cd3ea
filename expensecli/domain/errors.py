"""Domain error types and shared messages for expense operations."""

from typing import List, Optional

from expensecli.domain.models.expense import QueryError


class ExpenseServiceError(Exception):
    """Base class for errors raised by expense use cases."""


class ExpenseValidationError(ExpenseServiceError, ValueError):
    """Invalid input for a create or update."""


class ExpenseNotFoundError(ExpenseServiceError):
    """Requested expense does not exist."""


class RemoteOperationError(ExpenseServiceError):
    """The remote API rejected or failed a query or mutation."""

    def __init__(self, message: str, errors: Optional[List[QueryError]] = None):
        self.errors = errors or []
        super().__init__(message)


def expense_not_found(expense_id: str) -> str:
    """Return message for a missing expense."""
    return f"Expense {expense_id} not found"


def missing_required_fields(fields: List[str]) -> str:
    """Return message listing the missing required fields."""
    return f"Missing required fields: {', '.join(fields)}"


def invalid_amount(value: object) -> str:
    """Return message for an amount that is not a non-negative number."""
    return f"Amount must be a non-negative number, got {value!r}"
