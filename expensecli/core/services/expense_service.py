"""Core service for expense use cases.

Listing goes through the ResilientListFetcher; single-record reads and
mutations go straight to the RemoteQueryClient. Every successful mutation
clears the listing cache before returning, so the next listing is fresh.
"""

import logging
from datetime import date as date_type, datetime, time, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

# Domain Layer Imports
from expensecli.domain.errors import (
    ExpenseNotFoundError, ExpenseValidationError, RemoteOperationError,
    expense_not_found, invalid_amount, missing_required_fields,
)
from expensecli.domain.interfaces.query_client import RemoteQueryClient, RemoteQueryError
from expensecli.domain.models.common import ExpenseId, GraphQLDocument, Variables
from expensecli.domain.models.expense import Expense, QueryResponse, format_aws_datetime, parse_amount

# Infrastructure Layer Imports (interfaces/implementations injected)
from expensecli.infrastructure.graphql import documents
from expensecli.infrastructure.resilience.list_fetcher import ResilientListFetcher

logger = logging.getLogger(__name__)

DateLike = Union[str, date_type, datetime]
UPDATABLE_FIELDS = ("name", "amount", "category", "date", "description")
DATE_ONLY_TIME = time(12, 0, tzinfo=timezone.utc)


def normalize_date(value: DateLike) -> str:
    """Returns the AWSDateTime form of a date, datetime or ISO string.

    Plain dates are pinned to 12:00 UTC so they keep their calendar day in
    every timezone. Naive datetimes are taken to be UTC.
    """
    if isinstance(value, datetime):
        return format_aws_datetime(value)
    if isinstance(value, date_type):
        return format_aws_datetime(datetime.combine(value, DATE_ONLY_TIME))
    text = str(value).strip()
    try:
        if len(text) == 10:
            return normalize_date(date_type.fromisoformat(text))
        return format_aws_datetime(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError as e:
        raise ExpenseValidationError(f"Invalid date {value!r}; expected ISO-8601 (YYYY-MM-DD)") from e


def normalize_amount(value: Any) -> float:
    """Validates an amount and returns it as the float the API expects."""
    amount = parse_amount(value)
    if amount is None or amount < Decimal(0):
        raise ExpenseValidationError(invalid_amount(value))
    return float(amount)


class ExpenseService:
    """Orchestrates listing, reading and mutating expenses."""

    def __init__(self, client: RemoteQueryClient, fetcher: ResilientListFetcher):
        """Initializes the ExpenseService with its dependencies."""
        self.client = client
        self.fetcher = fetcher

    async def list_expenses(self, user_id: Optional[str] = None) -> List[Expense]:
        """Lists a user's expenses. Never raises; see ResilientListFetcher."""
        return await self.fetcher.list_expenses(user_id)

    async def get_expense(self, expense_id: ExpenseId) -> Expense:
        """Fetches one expense by id.

        Raises:
            ExpenseNotFoundError: If no expense has this id.
            RemoteOperationError: If the API call failed.
        """
        payload = await self._run(documents.GET_EXPENSE, {"id": expense_id}, documents.GET_EXPENSE_FIELD)
        if payload is None:
            raise ExpenseNotFoundError(expense_not_found(expense_id))
        return self._to_expense(payload)

    async def create_expense(
        self,
        name: Optional[str],
        amount: Any,
        category: Optional[str],
        date: Optional[DateLike],
        user_id: Optional[str] = None,
        description: str = "",
    ) -> Expense:
        """Creates an expense and invalidates the listing cache.

        Args:
            name: Display name (required).
            amount: Non-negative number or numeric string (required).
            category: Category name (required).
            date: ISO date/datetime string, or a date/datetime (required).
            user_id: Owner; the fetcher's default identity if None.
            description: Optional free text.

        Raises:
            ExpenseValidationError: If a required field is missing or invalid.
            RemoteOperationError: If the API rejected the mutation.
        """
        missing = [
            field_name for field_name, value in
            (("name", name), ("amount", amount), ("category", category), ("date", date))
            if value is None or (isinstance(value, str) and not value.strip())
        ]
        if missing:
            logger.error(f"Create rejected, {missing_required_fields(missing)}")
            raise ExpenseValidationError(missing_required_fields(missing))

        variables: Variables = {
            "name": name.strip(),
            "amount": normalize_amount(amount),
            "category": category.strip(),
            "date": normalize_date(date),
            "userId": self.fetcher.resolve_user_id(user_id),
            "description": description or "",
        }
        logger.info(f"Creating expense '{variables['name']}' for user {variables['userId']}")
        payload = await self._run(documents.CREATE_EXPENSE, variables, documents.CREATE_EXPENSE_FIELD)
        if payload is None:
            raise RemoteOperationError("Create returned no expense")
        self.fetcher.invalidate(reason="create")
        return self._to_expense(payload)

    async def update_expense(self, expense_id: ExpenseId, **changes: Any) -> Expense:
        """Applies the given field changes and invalidates the listing cache.

        Only ``name``, ``amount``, ``category``, ``date`` and ``description``
        may be changed; ``None`` values are ignored.
        """
        unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
        if unknown:
            raise ExpenseValidationError(f"Cannot update field(s): {', '.join(unknown)}")
        variables: Variables = {"id": expense_id}
        for field_name, value in changes.items():
            if value is None:
                continue
            if field_name == "amount":
                value = normalize_amount(value)
            elif field_name == "date":
                value = normalize_date(value)
            elif field_name in ("name", "category"):
                if not str(value).strip():
                    raise ExpenseValidationError(missing_required_fields([field_name]))
                value = str(value).strip()
            variables[field_name] = value
        if len(variables) == 1:
            raise ExpenseValidationError("Nothing to update")

        logger.info(f"Updating expense {expense_id}: {sorted(k for k in variables if k != 'id')}")
        payload = await self._run(
            documents.UPDATE_EXPENSE, variables, documents.UPDATE_EXPENSE_FIELD, expense_id=expense_id,
        )
        if payload is None:
            raise ExpenseNotFoundError(expense_not_found(expense_id))
        self.fetcher.invalidate(reason="update")
        return self._to_expense(payload)

    async def delete_expense(self, expense_id: ExpenseId) -> Expense:
        """Deletes an expense, invalidates the listing cache and returns the deleted record."""
        logger.info(f"Deleting expense {expense_id}")
        payload = await self._run(
            documents.DELETE_EXPENSE, {"id": expense_id}, documents.DELETE_EXPENSE_FIELD, expense_id=expense_id,
        )
        if payload is None:
            raise ExpenseNotFoundError(expense_not_found(expense_id))
        self.fetcher.invalidate(reason="delete")
        return self._to_expense(payload)

    # --- Helpers ---

    async def _run(
        self,
        document: GraphQLDocument,
        variables: Variables,
        root_field: str,
        expense_id: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """Executes a single-record operation and returns its payload.

        Errors without a payload are raised; errors next to a payload are logged.
        """
        try:
            response: QueryResponse = await self.client.execute(document, variables)
        except RemoteQueryError as e:
            logger.error(f"{root_field} failed at transport level: {e.message}")
            raise RemoteOperationError(f"{root_field} failed: {e.message}") from e

        payload = response.records(root_field)
        if response.errors:
            if payload is None:
                if expense_id is not None and any(
                    e.error_type == "NotFound" or "not found" in e.message.lower() for e in response.errors
                ):
                    raise ExpenseNotFoundError(expense_not_found(expense_id))
                messages = "; ".join(e.message for e in response.errors)
                logger.error(f"{root_field} failed: {messages}")
                raise RemoteOperationError(f"{root_field} failed: {messages}", errors=response.errors)
            logger.warning(f"{root_field} succeeded with {len(response.errors)} field error(s).")
        return payload if isinstance(payload, dict) else None

    def _to_expense(self, payload: Dict[str, Any]) -> Expense:
        return self.fetcher.reconciler.reconcile([payload])[0]
