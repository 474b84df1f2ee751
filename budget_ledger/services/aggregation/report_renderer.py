"""Module to render ledger reports as spreadsheets."""
from __future__ import annotations

import abc
from pathlib import Path
from types import TracebackType
from typing import NamedTuple

import pandas as pd

from budget_ledger.core.amount import currency_symbol
from budget_ledger.core.types import Granularity
from budget_ledger.domain.ledger_state import LedgerState
from budget_ledger.services.aggregation.ledger_analyzer import LedgerAnalyzer


class LedgerReport(NamedTuple):
    """Tabular views of a ledger, ready to be rendered."""

    currency: str
    breakdown: pd.DataFrame
    history: pd.DataFrame
    expenses: pd.DataFrame


def build_ledger_report(
    state: LedgerState,
    analyzer: LedgerAnalyzer,
    granularity: Granularity | str = Granularity.MONTH,
    count: int = 12,
) -> LedgerReport:
    """Build the report tables of a ledger.

    Amounts are converted to floats; the tables are for display only.
    """
    breakdown = pd.DataFrame(
        [
            {
                "Category": item.category.name,
                "Frequency": item.category.frequency.value,
                "Target": float(item.category.target),
                "Weekly budget": float(item.weekly_budget),
                "Weekly spent": float(item.weekly_spent),
                "Monthly budget": float(item.monthly_budget),
                "Monthly spent": float(item.monthly_spent),
            }
            for item in analyzer.category_breakdown()
        ],
        columns=[
            "Category",
            "Frequency",
            "Target",
            "Weekly budget",
            "Weekly spent",
            "Monthly budget",
            "Monthly spent",
        ],
    )
    history = pd.DataFrame(
        [
            {
                "Period": entry.label,
                "Start": entry.first_date,
                "End": entry.last_date,
                "Budget": float(entry.budget_for_period),
                "Spent": float(entry.spent_in_period),
            }
            for entry in analyzer.historical_series(granularity, count)
        ],
        columns=["Period", "Start", "End", "Budget", "Spent"],
    )
    category_names = {cat.id: cat.name for cat in state.categories}
    expenses = pd.DataFrame(
        [
            {
                "Date": exp.expense_date,
                "Category": category_names.get(exp.category_id, exp.category_id),
                "Description": exp.description,
                "Amount": float(exp.amount),
            }
            for exp in state.expenses
        ],
        columns=["Date", "Category", "Description", "Amount"],
    )
    if not expenses.empty:
        expenses = expenses.sort_values("Date", ascending=False, kind="stable")
    return LedgerReport(state.settings.currency, breakdown, history, expenses)


class LedgerReportRenderer(abc.ABC):
    """
    Abstract base class for ledger report renderers.

    Must be used as a context manager.
    """

    @abc.abstractmethod
    def __enter__(self) -> LedgerReportRenderer:
        """Enter context manager and initialize resources."""

    @abc.abstractmethod
    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager and cleanup resources."""

    @abc.abstractmethod
    def __call__(self, report: LedgerReport) -> None:
        """Render a ledger report."""


class LedgerReportRendererExcel(LedgerReportRenderer):
    """
    Exports a ledger report to an Excel file.

    Must be used as a context manager:
        with LedgerReportRendererExcel(path) as renderer:
            renderer(report)
    """

    MONEY_COLUMNS = {
        "Target",
        "Weekly budget",
        "Weekly spent",
        "Monthly budget",
        "Monthly spent",
        "Budget",
        "Spent",
        "Amount",
    }

    def __init__(self, path: Path) -> None:
        self._path = path
        self._writer_impl: pd.ExcelWriter | None = None

    @property
    def _writer(self) -> pd.ExcelWriter:
        """Return the writer, raising if not in context manager."""
        if self._writer_impl is None:
            raise RuntimeError("Renderer must be used as a context manager")
        return self._writer_impl

    def __enter__(self) -> LedgerReportRendererExcel:
        self._writer_impl = pd.ExcelWriter(
            self._path,
            engine="xlsxwriter",
            date_format="yyyy-mm-dd",
            datetime_format="yyyy-mm-dd",
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._writer_impl is not None:
            self._writer_impl.close()
            self._writer_impl = None

    def __call__(self, report: LedgerReport) -> None:
        money_format = self._writer.book.add_format(  # type: ignore[union-attr]
            {"num_format": f'"{currency_symbol(report.currency)}"#,##0.00'}
        )
        self._add_sheet("Categories", report.breakdown, money_format)
        self._add_sheet("History", report.history, money_format)
        self._add_sheet("Expenses", report.expenses, money_format)

    def _add_sheet(
        self, sheet_name: str, frame: pd.DataFrame, money_format: object
    ) -> None:
        frame.to_excel(self._writer, sheet_name=sheet_name, index=False)
        worksheet = self._writer.sheets[sheet_name]
        for index, column in enumerate(frame.columns):
            width = max(len(str(column)), 12)
            if column in self.MONEY_COLUMNS:
                worksheet.set_column(index, index, width, money_format)
            else:
                worksheet.set_column(index, index, width)
