"""Report models built from a user's expenses."""

import calendar
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List


@dataclass
class CategoryShare:
    """Spending of one category and its share of the total, in percent."""
    category: str
    amount: Decimal
    percentage: Decimal


@dataclass
class MonthlyTotal:
    year: int
    month: int
    amount: Decimal

    @property
    def label(self) -> str:
        return f"{calendar.month_abbr[self.month]} {self.year}"


@dataclass
class ExpenseSummary:
    """Totals for the summary report."""
    total: Decimal
    count: int
    categories: List[CategoryShare] = field(default_factory=list)
    monthly: List[MonthlyTotal] = field(default_factory=list)
