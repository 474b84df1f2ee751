"""Module defining the result types of ledger aggregations."""
from datetime import date
from decimal import Decimal
from typing import NamedTuple

from budget_ledger.core.types import CategoryId
from budget_ledger.domain.category import Category


class PeriodSummary(NamedTuple):
    """Budget against spend over one period."""

    first_date: date
    last_date: date
    budget: Decimal
    spent: Decimal
    category_totals: dict[CategoryId, Decimal]

    @property
    def remaining(self) -> Decimal:
        """Budget left, negative when overspent."""
        return self.budget - self.spent

    @property
    def is_over_budget(self) -> bool:
        """Whether more was spent than budgeted."""
        return self.spent > self.budget

    @property
    def progress(self) -> Decimal:
        """Share of the budget spent, capped at 1 (0 without a budget)."""
        if self.budget <= 0:
            return Decimal(0)
        return min(self.spent / self.budget, Decimal(1))


class SeriesEntry(NamedTuple):
    """One period of a historical series."""

    label: str
    first_date: date
    last_date: date
    budget_for_period: Decimal
    spent_in_period: Decimal


class CategoryBreakdown(NamedTuple):
    """Weekly and monthly budget against spend for one category."""

    category: Category
    weekly_budget: Decimal
    weekly_spent: Decimal
    monthly_budget: Decimal
    monthly_spent: Decimal

    @property
    def weekly_difference(self) -> Decimal:
        """Spend above (positive) or below (negative) the weekly budget."""
        return self.weekly_spent - self.weekly_budget

    @property
    def monthly_difference(self) -> Decimal:
        """Spend above (positive) or below (negative) the monthly budget."""
        return self.monthly_spent - self.monthly_budget

    @property
    def is_over_weekly_budget(self) -> bool:
        """Whether the week's spend exceeds the weekly budget."""
        return self.weekly_spent > self.weekly_budget

    @property
    def is_over_monthly_budget(self) -> bool:
        """Whether the month's spend exceeds the monthly budget."""
        return self.monthly_spent > self.monthly_budget
