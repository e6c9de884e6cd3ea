"""In-memory implementation of the RemoteQueryClient interface.

Stands in for AppSync when no endpoint is configured (offline use, demos,
integration tests). Understands the operations in ``documents.py`` by
operation name and answers them from a process-local list of records.
"""

import asyncio
import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

# Domain Layer Imports
from expensecli.domain.interfaces.query_client import RemoteQueryClient
from expensecli.domain.models.common import GraphQLDocument, RawRecord, Variables
from expensecli.domain.models.expense import (
    ErrorClassification, QueryError, QueryResponse, format_aws_datetime,
)
from expensecli.infrastructure.graphql import documents
from expensecli.infrastructure.graphql.documents import operation_name

logger = logging.getLogger(__name__)

SEED_EXPENSES: List[RawRecord] = [
    {
        "id": "1",
        "userId": "1",
        "name": "Groceries",
        "amount": 75.50,
        "date": "2023-05-15",
        "category": "Food",
        "description": "Weekly grocery shopping",
    },
    {
        "id": "2",
        "userId": "1",
        "name": "Gas",
        "amount": 45.00,
        "date": "2023-05-14",
        "category": "Transportation",
        "description": "Filled up the tank",
    },
    {
        "id": "3",
        "userId": "1",
        "name": "Movie tickets",
        "amount": 25.00,
        "date": "2023-05-13",
        "category": "Entertainment",
        "description": "Friday night movie",
    },
]

UPDATABLE_FIELDS = ("name", "amount", "category", "date", "description")


def _now_iso() -> str:
    return format_aws_datetime(datetime.now(timezone.utc))


class InMemoryQueryClient(RemoteQueryClient):
    """Local expense backend answering GraphQL operations by name."""

    def __init__(self, records: Optional[List[RawRecord]] = None, latency_s: float = 0.0):
        """Initializes the store.

        Args:
            records: Initial records; defaults to a copy of SEED_EXPENSES.
            latency_s: Simulated network delay per request.
        """
        self.records: List[RawRecord] = copy.deepcopy(SEED_EXPENSES if records is None else records)
        self.latency_s = latency_s
        self.request_count = 0
        self._handlers: Dict[str, Callable[[Variables], QueryResponse]] = {
            "ListExpenses": self._list_expenses,
            "GetExpense": self._get_expense,
            "CreateExpense": self._create_expense,
            "UpdateExpense": self._update_expense,
            "DeleteExpense": self._delete_expense,
        }
        logger.info(f"InMemoryQueryClient initialized with {len(self.records)} record(s).")

    async def execute(self, query: GraphQLDocument, variables: Variables) -> QueryResponse:
        self.request_count += 1
        if self.latency_s > 0:
            await asyncio.sleep(self.latency_s)
        operation = operation_name(query)
        handler = self._handlers.get(operation or "")
        if handler is None:
            logger.error(f"Unsupported operation: {operation}")
            return QueryResponse(errors=[QueryError(
                message=f"Unsupported operation: {operation}",
                error_type="ValidationError",
                classification=ErrorClassification.TERMINAL,
            )])
        return handler(variables or {})

    # --- Operation handlers ---

    def _find(self, expense_id: Any) -> Optional[RawRecord]:
        return next((r for r in self.records if r.get("id") == expense_id), None)

    @staticmethod
    def _not_found(root_field: str) -> QueryResponse:
        return QueryResponse(
            data={root_field: None},
            errors=[QueryError(
                message="Expense not found",
                path=[root_field],
                error_type="NotFound",
                classification=ErrorClassification.TERMINAL,
            )],
        )

    def _list_expenses(self, variables: Variables) -> QueryResponse:
        user_id = variables.get("userId")
        items = [copy.deepcopy(r) for r in self.records if r.get("userId") == user_id]
        return QueryResponse(data={documents.LIST_EXPENSES_FIELD: items})

    def _get_expense(self, variables: Variables) -> QueryResponse:
        record = self._find(variables.get("id"))
        return QueryResponse(data={documents.GET_EXPENSE_FIELD: copy.deepcopy(record)})

    def _create_expense(self, variables: Variables) -> QueryResponse:
        timestamp = _now_iso()
        record = {
            "id": uuid.uuid4().hex,
            "userId": variables.get("userId"),
            "name": variables.get("name"),
            "amount": variables.get("amount"),
            "category": variables.get("category"),
            "date": variables.get("date"),
            "description": variables.get("description") or "",
            "createdAt": timestamp,
            "updatedAt": timestamp,
        }
        self.records.append(record)
        return QueryResponse(data={documents.CREATE_EXPENSE_FIELD: copy.deepcopy(record)})

    def _update_expense(self, variables: Variables) -> QueryResponse:
        record = self._find(variables.get("id"))
        if record is None:
            return self._not_found(documents.UPDATE_EXPENSE_FIELD)
        for name in UPDATABLE_FIELDS:
            if variables.get(name) is not None:
                record[name] = variables[name]
        record["updatedAt"] = _now_iso()
        return QueryResponse(data={documents.UPDATE_EXPENSE_FIELD: copy.deepcopy(record)})

    def _delete_expense(self, variables: Variables) -> QueryResponse:
        record = self._find(variables.get("id"))
        if record is None:
            return self._not_found(documents.DELETE_EXPENSE_FIELD)
        self.records.remove(record)
        return QueryResponse(data={documents.DELETE_EXPENSE_FIELD: record})
