"""Module with tests for the amount helpers."""
from decimal import Decimal

import pytest

from budget_ledger.core.amount import (
    MAX_AMOUNT,
    currency_symbol,
    format_amount,
    sum_amounts,
    to_amount,
)


class TestToAmount:
    """Tests for to_amount."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (10, Decimal("10.00")),
            ("12.5", Decimal("12.50")),
            (" 3.14 ", Decimal("3.14")),
            (0.1, Decimal("0.10")),
            (Decimal("1.005"), Decimal("1.01")),
            ("2.675", Decimal("2.68")),
        ],
    )
    def test_converts_to_cents(self, value: object, expected: Decimal) -> None:
        """Values are converted to decimals rounded half up to cents."""
        assert to_amount(value) == expected  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        "value", ["abc", "", "NaN", "inf", float("nan"), True, "1e30", -1e26]
    )
    def test_rejects_non_numbers(self, value: object) -> None:
        """Values that are not finite numbers or are out of range raise ValueError."""
        with pytest.raises(ValueError):
            to_amount(value)  # type: ignore[arg-type]

    def test_maximum_is_accepted(self) -> None:
        """The largest amount is still converted to cents."""
        assert to_amount(MAX_AMOUNT) == Decimal("1000000000000000.00")


class TestSumAmounts:
    """Tests for sum_amounts."""

    def test_empty_sum_is_zero(self) -> None:
        """The sum of no amounts is a decimal zero."""
        result = sum_amounts([])
        assert result == Decimal(0)
        assert isinstance(result, Decimal)

    def test_sum_is_exact(self) -> None:
        """Cents add up without floating point drift."""
        assert sum_amounts([Decimal("0.10")] * 3) == Decimal("0.30")


class TestCurrency:
    """Tests for currency symbols and formatting."""

    def test_known_currency_symbol(self) -> None:
        """Known currencies use their own symbol."""
        assert currency_symbol("EUR") == "€"
        assert currency_symbol("GBP") == "£"

    def test_unknown_currency_falls_back_to_dollar(self) -> None:
        """Unknown codes fall back to the dollar sign."""
        assert currency_symbol("XYZ") == "$"

    def test_format_amount(self) -> None:
        """Amounts are formatted with thousands separators and two decimals."""
        assert format_amount(Decimal("1234.5"), "USD") == "$1,234.50"

    def test_format_negative_amount(self) -> None:
        """The sign goes before the currency symbol."""
        assert format_amount(Decimal("-3"), "EUR") == "-€3.00"
