"""Date window module.

A date window is an inclusive range of calendar days. Windows are either
rolling (defined relative to a reference day) or aligned on calendar months.
"""
from datetime import date, timedelta
from typing import NamedTuple

from dateutil.relativedelta import relativedelta

DAYS_PER_WEEK = 7


class DateWindow(NamedTuple):
    """An inclusive range of days."""

    first_date: date
    last_date: date

    def is_within(self, target_date: date) -> bool:
        """Check if the date falls in the window."""
        return self.first_date <= target_date <= self.last_date

    @property
    def days(self) -> int:
        """Number of days covered by the window."""
        return (self.last_date - self.first_date).days + 1


def single_day(today: date, days_ago: int = 0) -> DateWindow:
    """Return the window covering the day ``days_ago`` days before ``today``."""
    day = today - timedelta(days=days_ago)
    return DateWindow(day, day)


def rolling_week(today: date, weeks_ago: int = 0) -> DateWindow:
    """Return the rolling week ``(end - 7 days, end]`` with ``end = today - 7 * weeks_ago``.

    Consecutive rolling weeks partition the past days without overlap.
    """
    last_date = today - timedelta(days=DAYS_PER_WEEK * weeks_ago)
    return DateWindow(last_date - timedelta(days=DAYS_PER_WEEK - 1), last_date)


def calendar_month(today: date, months_ago: int = 0) -> DateWindow:
    """Return the calendar month ``months_ago`` months before the month of ``today``."""
    first_date = today.replace(day=1) - relativedelta(months=months_ago)
    last_date = first_date + relativedelta(months=1) - timedelta(days=1)
    return DateWindow(first_date, last_date)
