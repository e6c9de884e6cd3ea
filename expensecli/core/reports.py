"""Views over a user's expenses: filtering, ordering and the summary report.

Works on already fetched listings, so it never talks to the API itself and
inherits the fetcher's caching and recovery.
"""

import logging
from collections import defaultdict
from datetime import date as date_type
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from expensecli.domain.errors import ExpenseValidationError
from expensecli.domain.models.expense import Expense
from expensecli.domain.models.report import CategoryShare, ExpenseSummary, MonthlyTotal

logger = logging.getLogger(__name__)

SORT_BY_DATE = "date"
SORT_BY_NAME = "name"
SORT_BY_AMOUNT = "amount"
SORT_KEYS = (SORT_BY_DATE, SORT_BY_NAME, SORT_BY_AMOUNT)
DEFAULT_SUMMARY_MONTHS = 6
_EPOCH = date_type(1970, 1, 1)


def expense_day(expense: Expense) -> Optional[date_type]:
    """Calendar day of an expense, read from the leading YYYY-MM-DD of its date."""
    try:
        return date_type.fromisoformat(expense.date[:10])
    except (TypeError, ValueError):
        return None


def filter_expenses(
    expenses: Iterable[Expense],
    search: Optional[str] = None,
    category: Optional[str] = None,
) -> List[Expense]:
    """Keeps expenses whose name contains ``search`` and whose category is ``category``.

    Both comparisons ignore case. ``None``, empty and ``"all"`` categories do not filter.
    """
    needle = (search or "").strip().casefold()
    wanted = (category or "").strip().casefold()
    if wanted == "all":
        wanted = ""
    return [
        expense for expense in expenses
        if needle in expense.name.casefold()
        and (not wanted or expense.category.casefold() == wanted)
    ]


def sort_expenses(expenses: Iterable[Expense], sort_by: str = SORT_BY_DATE) -> List[Expense]:
    """Orders expenses: newest first, by name A-Z, or largest amount first.

    Raises:
        ExpenseValidationError: If ``sort_by`` is not one of SORT_KEYS.
    """
    key = (sort_by or SORT_BY_DATE).lower()
    if key == SORT_BY_NAME:
        return sorted(expenses, key=lambda e: e.name.casefold())
    if key == SORT_BY_AMOUNT:
        return sorted(expenses, key=lambda e: e.amount, reverse=True)
    if key == SORT_BY_DATE:
        return sorted(expenses, key=lambda e: expense_day(e) or _EPOCH, reverse=True)
    raise ExpenseValidationError(f"Unknown sort key {sort_by!r}; use one of: {', '.join(SORT_KEYS)}")


def _recent_months(today: date_type, months: int) -> List[Tuple[int, int]]:
    """(year, month) pairs for the last ``months`` months, oldest first, ending with ``today``'s."""
    current = today.year * 12 + today.month - 1
    return [(index // 12, index % 12 + 1) for index in range(current - months + 1, current + 1)]


def summarize(
    expenses: Iterable[Expense],
    today: date_type,
    months: int = DEFAULT_SUMMARY_MONTHS,
) -> ExpenseSummary:
    """Builds the total, the per-category breakdown and the recent monthly totals."""
    expenses = list(expenses)
    total = sum((expense.amount for expense in expenses), Decimal(0))

    by_category: Dict[str, Decimal] = defaultdict(Decimal)
    for expense in expenses:
        by_category[expense.category] += expense.amount
    categories = [
        CategoryShare(
            category=name,
            amount=amount,
            percentage=(amount / total * 100) if total else Decimal(0),
        )
        for name, amount in sorted(by_category.items(), key=lambda item: (-item[1], item[0]))
    ]

    monthly = {year_month: Decimal(0) for year_month in _recent_months(today, months)}
    for expense in expenses:
        day = expense_day(expense)
        if day is not None and (day.year, day.month) in monthly:
            monthly[(day.year, day.month)] += expense.amount

    logger.debug(f"Summarized {len(expenses)} expense(s) into {len(categories)} categories.")
    return ExpenseSummary(
        total=total,
        count=len(expenses),
        categories=categories,
        monthly=[MonthlyTotal(year=year, month=month, amount=amount) for (year, month), amount in monthly.items()],
    )
