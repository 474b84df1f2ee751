"""Forecast functions projecting a category's target onto weeks and months.

A category's target is expressed in its own frequency. The functions here
convert it to a comparable weekly or monthly amount using fixed ratios: a
month counts 30 days or 4.33 weeks (365 / 12 / 7 rounded).
"""
from decimal import Decimal
from typing import Iterable

from budget_ledger.core.amount import sum_amounts
from budget_ledger.core.types import Frequency
from budget_ledger.domain.category import Category

DAYS_PER_MONTH = Decimal(30)
DAYS_PER_WEEK = Decimal(7)
WEEKS_PER_MONTH = Decimal("4.33")


def monthly_forecast(category: Category) -> Decimal:
    """Return the amount the category is expected to consume per month."""
    match category.frequency:
        case Frequency.DAILY:
            return category.target * DAYS_PER_MONTH
        case Frequency.WEEKLY:
            return category.target * WEEKS_PER_MONTH
        case _:
            return category.target


def weekly_forecast(category: Category) -> Decimal:
    """Return the amount the category is expected to consume per week."""
    match category.frequency:
        case Frequency.DAILY:
            return category.target * DAYS_PER_WEEK
        case Frequency.MONTHLY:
            return category.target / WEEKS_PER_MONTH
        case _:
            return category.target


def total_monthly_budget(categories: Iterable[Category]) -> Decimal:
    """Sum the monthly forecasts of all categories."""
    return sum_amounts(monthly_forecast(category) for category in categories)


def total_weekly_budget(categories: Iterable[Category]) -> Decimal:
    """Sum the weekly forecasts of all categories."""
    return sum_amounts(weekly_forecast(category) for category in categories)
