"""Turns partially failed GraphQL listings into complete Expense records.

Under load the API may return null rows or null fields, each reported as an
entry in the response ``errors`` array whose path points at the failed
field (``['getExpenses', 3, 'amount']``). Rather than rejecting such rows the
reconciler fills them with deterministic fallbacks and marks them through the
id prefix, so the listing stays usable and the UI can flag what is synthetic.
"""

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from expensecli.domain.models.common import RawRecord
from expensecli.domain.models.expense import (
    Expense,
    PLACEHOLDER_PREFIX,
    RECOVERED_PREFIX,
    format_aws_datetime,
    parse_amount,
)

logger = logging.getLogger(__name__)

FALLBACK_CATEGORIES = [
    "Food",
    "Housing",
    "Transportation",
    "Entertainment",
    "Utilities",
    "Healthcare",
    "Education",
    "Other",
]
PLACEHOLDER_NAME = "Loading..."


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _error_path(error: Any) -> Optional[list]:
    if isinstance(error, Mapping):
        return error.get("path")
    return getattr(error, "path", None)


def _usable_amount(value: Any) -> bool:
    amount = parse_amount(value)
    return amount is not None and amount >= 0


def fallback_category(index: int) -> str:
    """Deterministic category for the record at ``index``."""
    return FALLBACK_CATEGORIES[index % len(FALLBACK_CATEGORIES)]


class Reconciler:
    """Repairs raw expense rows so every emitted Expense has its mandatory fields."""

    def __init__(self, clock: Callable[[], datetime] = _utc_now):
        self.clock = clock

    @staticmethod
    def index_field_errors(field_errors: Optional[Iterable[Any]]) -> Dict[int, Set[str]]:
        """Groups error-flagged field names by record index.

        Errors whose path is too short to name a field, or whose index is not
        an integer, are ignored.
        """
        error_map: Dict[int, Set[str]] = {}
        for error in field_errors or []:
            path = _error_path(error)
            if not path or len(path) < 3:
                continue
            try:
                record_index = int(path[1])
            except (TypeError, ValueError):
                continue
            error_map.setdefault(record_index, set()).add(str(path[2]))
        return error_map

    def reconcile(self, raw_records: Any, field_errors: Optional[Iterable[Any]] = None) -> List[Expense]:
        """Converts raw rows plus field errors into a list of complete expenses.

        Args:
            raw_records: The record list taken from the response ``data``.
            field_errors: Errors from the same response (QueryError objects or dicts).

        Returns:
            Expenses in input order; empty when ``raw_records`` is not a list.
        """
        if not isinstance(raw_records, (list, tuple)):
            return []

        error_map = self.index_field_errors(field_errors)
        now = self.clock()
        expenses: List[Expense] = []
        placeholders = recovered = 0

        for index, record in enumerate(raw_records):
            if not isinstance(record, Mapping):
                expenses.append(self._placeholder(index, now))
                placeholders += 1
                continue

            flagged = error_map.get(index, set())
            if flagged or self._missing_fields(record):
                expense = self._repair(index, record, flagged, now)
                if expense.is_placeholder:
                    recovered += 1
                expenses.append(expense)
            else:
                expenses.append(Expense.from_record(record))

        if placeholders or recovered:
            logger.info(
                f"Reconciled {len(raw_records)} rows: {placeholders} placeholder(s), "
                f"{recovered} with recovered id, {len(error_map)} row(s) with field errors."
            )
        return expenses

    def _placeholder(self, index: int, now: datetime) -> Expense:
        timestamp = format_aws_datetime(now)
        return Expense(
            id=f"{PLACEHOLDER_PREFIX}{index}-{int(now.timestamp() * 1000)}",
            name=PLACEHOLDER_NAME,
            amount=parse_amount(0),
            category=fallback_category(index),
            date=timestamp,
            created_at=timestamp,
            updated_at=timestamp,
        )

    @staticmethod
    def _missing_fields(record: Mapping) -> List[str]:
        missing = []
        if not record.get("id"):
            missing.append("id")
        if not (record.get("name") or record.get("title")):
            missing.append("name")
        if not _usable_amount(record.get("amount")):
            missing.append("amount")
        if not record.get("category"):
            missing.append("category")
        if not record.get("date"):
            missing.append("date")
        return missing

    def _repair(self, index: int, record: Mapping, flagged: Set[str], now: datetime) -> Expense:
        repaired: RawRecord = dict(record)
        if not repaired.get("name") and repaired.get("title") and "name" not in flagged:
            repaired["name"] = repaired["title"]

        if "id" in flagged or not repaired.get("id"):
            repaired["id"] = f"{RECOVERED_PREFIX}{index}-{int(now.timestamp() * 1000)}"
        if "name" in flagged or not repaired.get("name"):
            repaired["name"] = f"Expense {index + 1}"
        if "amount" in flagged or not _usable_amount(repaired.get("amount")):
            repaired["amount"] = 0
        if "category" in flagged or not repaired.get("category"):
            repaired["category"] = fallback_category(index)
        if "date" in flagged or not repaired.get("date"):
            repaired["date"] = format_aws_datetime(now)

        logger.debug(f"Repaired row {index}: flagged={sorted(flagged)}")
        return Expense.from_record(repaired)
