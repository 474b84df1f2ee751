"""Module to compare forecasted and actual spending over time windows.

Weeks are always rolling windows of 7 days ending on the reference day, both
for the current week and for historical series; months are calendar months.

Historical series apply today's category targets to every past period: the
budget of a period is not reconstructed from the categories that existed at
that time.
"""
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable

from budget_ledger.core.amount import sum_amounts
from budget_ledger.core.date_window import (
    DateWindow,
    calendar_month,
    rolling_week,
    single_day,
)
from budget_ledger.core.types import CategoryId, Granularity
from budget_ledger.domain.expense import Expense
from budget_ledger.domain.forecast import (
    DAYS_PER_MONTH,
    monthly_forecast,
    total_monthly_budget,
    total_weekly_budget,
    weekly_forecast,
)
from budget_ledger.domain.ledger_state import LedgerState
from budget_ledger.exceptions import ValidationError
from budget_ledger.services.aggregation.ledger_report import (
    CategoryBreakdown,
    PeriodSummary,
    SeriesEntry,
)


YearMonthGroups = dict[int, dict[int, list[Expense]]]
"""Expenses grouped by year, then by calendar month.

Months are keyed 1-12 like :attr:`datetime.date.month`, not 0-11 as in
the JavaScript ``Date.getMonth()`` grouping of older versions.
"""


def category_totals(expenses: Iterable[Expense]) -> dict[CategoryId, Decimal]:
    """Sum expense amounts per category.

    Categories without expenses are absent from the result.
    """
    totals: dict[CategoryId, Decimal] = {}
    for expense in expenses:
        totals[expense.category_id] = (
            totals.get(expense.category_id, Decimal(0)) + expense.amount
        )
    return totals


def expenses_in_window(
    expenses: Iterable[Expense], window: DateWindow
) -> tuple[Expense, ...]:
    """Return the expenses dated within a window."""
    return tuple(exp for exp in expenses if window.is_within(exp.expense_date))


def group_by_year_month(expenses: Iterable[Expense]) -> YearMonthGroups:
    """Group expenses by year then month, most recent first.

    Within a month, expenses keep their insertion order.
    """
    groups: defaultdict[int, defaultdict[int, list[Expense]]] = defaultdict(
        lambda: defaultdict(list)
    )
    for expense in expenses:
        groups[expense.expense_date.year][expense.expense_date.month].append(expense)
    return {
        year: {month: groups[year][month] for month in sorted(groups[year], reverse=True)}
        for year in sorted(groups, reverse=True)
    }


class LedgerAnalyzer:
    """Compute totals of a ledger state relative to a reference day."""

    def __init__(self, state: LedgerState, today: date) -> None:
        self._state = state
        self._today = today

    @property
    def total_monthly_budget(self) -> Decimal:
        """Sum of the monthly forecasts of all categories."""
        return total_monthly_budget(self._state.categories)

    @property
    def total_weekly_budget(self) -> Decimal:
        """Sum of the weekly forecasts of all categories."""
        return total_weekly_budget(self._state.categories)

    def current_month_expenses(self) -> tuple[Expense, ...]:
        """Expenses dated in the current calendar month."""
        return expenses_in_window(self._state.expenses, calendar_month(self._today))

    def current_week_expenses(self) -> tuple[Expense, ...]:
        """Expenses dated in the rolling week ending today."""
        return expenses_in_window(self._state.expenses, rolling_week(self._today))

    def current_month_summary(self) -> PeriodSummary:
        """Monthly budget against spend of the current calendar month."""
        return self._summarize(calendar_month(self._today), self.total_monthly_budget)

    def current_week_summary(self) -> PeriodSummary:
        """Weekly budget against spend of the rolling week ending today."""
        return self._summarize(rolling_week(self._today), self.total_weekly_budget)

    def _summarize(self, window: DateWindow, budget: Decimal) -> PeriodSummary:
        totals = category_totals(expenses_in_window(self._state.expenses, window))
        return PeriodSummary(
            first_date=window.first_date,
            last_date=window.last_date,
            budget=budget,
            spent=sum_amounts(totals.values()),
            category_totals=totals,
        )

    def historical_series(
        self, granularity: Granularity | str, count: int
    ) -> tuple[SeriesEntry, ...]:
        """Budget against spend over the last ``count`` periods, most recent first.

        Raises:
            ValidationError: If the granularity is unknown or count is not a
                positive integer.
        """
        try:
            granularity = Granularity(granularity)
        except ValueError as e:
            raise ValidationError(
                f"Unknown granularity: {granularity!r}", field="granularity"
            ) from e
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise ValidationError(
                f"Count must be a positive integer: {count!r}", field="count"
            )

        match granularity:
            case Granularity.DAY:
                budget = self.total_monthly_budget / DAYS_PER_MONTH
                windows = [single_day(self._today, index) for index in range(count)]
            case Granularity.WEEK:
                budget = self.total_weekly_budget
                windows = [rolling_week(self._today, index) for index in range(count)]
            case _:
                budget = self.total_monthly_budget
                windows = [calendar_month(self._today, index) for index in range(count)]

        return tuple(
            SeriesEntry(
                label=self._label(granularity, window),
                first_date=window.first_date,
                last_date=window.last_date,
                budget_for_period=budget,
                spent_in_period=sum_amounts(
                    exp.amount
                    for exp in expenses_in_window(self._state.expenses, window)
                ),
            )
            for window in windows
        )

    @staticmethod
    def _label(granularity: Granularity, window: DateWindow) -> str:
        match granularity:
            case Granularity.DAY:
                return window.first_date.isoformat()
            case Granularity.WEEK:
                return f"{window.first_date.isoformat()} to {window.last_date.isoformat()}"
            case _:
                return window.first_date.strftime("%Y-%m")

    def grouped_history(self) -> YearMonthGroups:
        """All expenses grouped by year and month for browsing."""
        return group_by_year_month(self._state.expenses)

    def category_breakdown(self) -> tuple[CategoryBreakdown, ...]:
        """Weekly and monthly budget against spend per category."""
        week_totals = category_totals(self.current_week_expenses())
        month_totals = category_totals(self.current_month_expenses())
        return tuple(
            CategoryBreakdown(
                category=category,
                weekly_budget=weekly_forecast(category),
                weekly_spent=week_totals.get(category.id, Decimal(0)),
                monthly_budget=monthly_forecast(category),
                monthly_spent=month_totals.get(category.id, Decimal(0)),
            )
            for category in self._state.categories
        )

    def recent_expenses(self, limit: int = 10) -> tuple[Expense, ...]:
        """The last recorded expenses, newest first."""
        if limit <= 0:
            return ()
        return tuple(reversed(self._state.expenses[-limit:]))
