"""Tests for the ledger report tables and their Excel rendering."""

import zipfile
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from budget_ledger.core.types import Frequency, Granularity
from budget_ledger.domain.category import Category
from budget_ledger.domain.expense import Expense
from budget_ledger.domain.ledger_state import LedgerState
from budget_ledger.domain.settings import Settings
from budget_ledger.services.aggregation.ledger_analyzer import LedgerAnalyzer
from budget_ledger.services.aggregation.report_renderer import (
    LedgerReport,
    LedgerReportRendererExcel,
    build_ledger_report,
)

TODAY = date(2024, 3, 10)


@pytest.fixture(name="state")
def state_fixture() -> LedgerState:
    """A small ledger in euros."""
    return LedgerState(
        categories=(
            Category("food", "Groceries", Decimal("100.00"), Frequency.WEEKLY),
        ),
        expenses=(
            Expense("e1", "food", Decimal("12.00"), "Market", date(2024, 3, 1)),
            Expense("e2", "food", Decimal("8.50"), "Bakery", date(2024, 3, 9)),
        ),
        settings=Settings(currency="EUR"),
    )


@pytest.fixture(name="report")
def report_fixture(state: LedgerState) -> LedgerReport:
    """The report of the small ledger."""
    return build_ledger_report(
        state, LedgerAnalyzer(state, TODAY), Granularity.WEEK, 3
    )


class TestBuildLedgerReport:
    """Tests for build_ledger_report."""

    def test_breakdown(self, report: LedgerReport) -> None:
        """The breakdown has one row per category."""
        assert report.currency == "EUR"
        assert list(report.breakdown["Category"]) == ["Groceries"]
        assert report.breakdown.loc[0, "Monthly budget"] == pytest.approx(433.0)
        assert report.breakdown.loc[0, "Monthly spent"] == pytest.approx(20.5)

    def test_history(self, report: LedgerReport) -> None:
        """The history has the requested number of periods."""
        assert len(report.history) == 3
        assert list(report.history["Spent"]) == pytest.approx([8.5, 12.0, 0.0])

    def test_expenses_newest_first(self, report: LedgerReport) -> None:
        """Expenses are sorted by date, newest first."""
        assert list(report.expenses["Description"]) == ["Bakery", "Market"]
        assert list(report.expenses["Category"]) == ["Groceries", "Groceries"]

    def test_empty_ledger(self) -> None:
        """An empty ledger yields empty tables with their columns."""
        state = LedgerState()
        report = build_ledger_report(state, LedgerAnalyzer(state, TODAY))
        assert report.expenses.empty
        assert "Amount" in report.expenses.columns
        assert len(report.history) == 12


class TestLedgerReportRendererExcel:
    """Tests for the Excel renderer."""

    def test_writes_workbook(self, report: LedgerReport, tmp_path: Path) -> None:
        """The workbook has one sheet per table."""
        path = tmp_path / "report.xlsx"

        with LedgerReportRendererExcel(path) as renderer:
            renderer(report)

        assert path.exists()
        with zipfile.ZipFile(path) as workbook:
            sheets = [
                name for name in workbook.namelist() if name.startswith("xl/worksheets/")
            ]
            workbook_xml = workbook.read("xl/workbook.xml").decode("utf-8")
        assert len(sheets) == 3
        for sheet_name in ("Categories", "History", "Expenses"):
            assert f'name="{sheet_name}"' in workbook_xml

    def test_requires_context_manager(self, report: LedgerReport, tmp_path: Path) -> None:
        """Rendering outside of a with block raises RuntimeError."""
        renderer = LedgerReportRendererExcel(tmp_path / "report.xlsx")
        with pytest.raises(RuntimeError):
            renderer(report)
