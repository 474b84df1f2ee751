"""A module for representing amounts of money."""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

from budget_ledger.core.types import CURRENCIES, DEFAULT_CURRENCY_SYMBOL

CENTS = Decimal("0.01")

# Keeps budgets and totals exact within the default 28-digit context
MAX_AMOUNT = Decimal("1e15")

AmountLike = Decimal | int | float | str


def to_amount(value: AmountLike) -> Decimal:
    """Convert a user supplied value to a decimal amount rounded to cents.

    Floats go through their shortest string representation so that ``0.1``
    becomes ``Decimal("0.10")`` rather than the binary approximation.

    Raises:
        ValueError: If the value is not a finite number or exceeds
            ``MAX_AMOUNT``.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not an amount: {value!r}")
    try:
        if isinstance(value, float):
            amount = Decimal(repr(value))
        elif isinstance(value, str):
            amount = Decimal(value.strip())
        else:
            amount = Decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Not an amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Not an amount: {value!r}")
    if abs(amount) > MAX_AMOUNT:
        raise ValueError(f"Amount out of range: {value!r}")
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def sum_amounts(amounts: Iterable[Decimal]) -> Decimal:
    """Sum decimal amounts, returning ``Decimal("0")`` for no amounts."""
    return sum(amounts, Decimal("0"))


def currency_symbol(currency: str) -> str:
    """Return the display symbol of a currency code."""
    if (entry := CURRENCIES.get(currency)) is None:
        return DEFAULT_CURRENCY_SYMBOL
    return entry.symbol


def format_amount(amount: Decimal, currency: str) -> str:
    """Format an amount with its currency symbol and two decimals."""
    rounded = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{currency_symbol(currency)}{abs(rounded):,.2f}"
