"""Module containing custom types for the budget_ledger package."""
import enum
from typing import NamedTuple

CategoryId = str
"""Unique identifier for a spending category."""

ExpenseId = str
"""Unique identifier for a recorded expense."""

SnapshotId = str
"""Unique identifier for a backup snapshot."""


class Frequency(enum.StrEnum):
    """How often a category's target amount is meant to be spent."""

    DAILY = enum.auto()
    WEEKLY = enum.auto()
    MONTHLY = enum.auto()


class Granularity(enum.StrEnum):
    """Period length of a historical series."""

    DAY = enum.auto()
    WEEK = enum.auto()
    MONTH = enum.auto()


class StatusLevel(enum.StrEnum):
    """Severity of a status message shown to the user."""

    INFO = enum.auto()
    WARNING = enum.auto()
    ERROR = enum.auto()


class CurrencyInfo(NamedTuple):
    """Display information about a currency."""

    symbol: str
    name: str


DEFAULT_CURRENCY = "USD"

DEFAULT_CURRENCY_SYMBOL = "$"

CURRENCIES: dict[str, CurrencyInfo] = {
    "USD": CurrencyInfo("$", "US Dollar"),
    "EUR": CurrencyInfo("€", "Euro"),
    "GBP": CurrencyInfo("£", "British Pound"),
    "JPY": CurrencyInfo("¥", "Japanese Yen"),
    "CNY": CurrencyInfo("¥", "Chinese Yuan"),
    "INR": CurrencyInfo("₹", "Indian Rupee"),
    "AUD": CurrencyInfo("A$", "Australian Dollar"),
    "CAD": CurrencyInfo("C$", "Canadian Dollar"),
    "CHF": CurrencyInfo("Fr", "Swiss Franc"),
    "SEK": CurrencyInfo("kr", "Swedish Krona"),
    "NZD": CurrencyInfo("NZ$", "New Zealand Dollar"),
    "KRW": CurrencyInfo("₩", "South Korean Won"),
    "SGD": CurrencyInfo("S$", "Singapore Dollar"),
    "NOK": CurrencyInfo("kr", "Norwegian Krone"),
    "MXN": CurrencyInfo("$", "Mexican Peso"),
    "HKD": CurrencyInfo("HK$", "Hong Kong Dollar"),
    "BRL": CurrencyInfo("R$", "Brazilian Real"),
    "ZAR": CurrencyInfo("R", "South African Rand"),
    "RUB": CurrencyInfo("₽", "Russian Ruble"),
    "TRY": CurrencyInfo("₺", "Turkish Lira"),
    "PLN": CurrencyInfo("zł", "Polish Zloty"),
    "THB": CurrencyInfo("฿", "Thai Baht"),
    "IDR": CurrencyInfo("Rp", "Indonesian Rupiah"),
    "MYR": CurrencyInfo("RM", "Malaysian Ringgit"),
    "PHP": CurrencyInfo("₱", "Philippine Peso"),
    "DKK": CurrencyInfo("kr", "Danish Krone"),
    "CZK": CurrencyInfo("Kč", "Czech Koruna"),
    "HUF": CurrencyInfo("Ft", "Hungarian Forint"),
    "ILS": CurrencyInfo("₪", "Israeli Shekel"),
    "AED": CurrencyInfo("د.إ", "UAE Dirham"),
    "SAR": CurrencyInfo("﷼", "Saudi Riyal"),
    "ARS": CurrencyInfo("$", "Argentine Peso"),
    "CLP": CurrencyInfo("$", "Chilean Peso"),
    "COP": CurrencyInfo("$", "Colombian Peso"),
    "EGP": CurrencyInfo("E£", "Egyptian Pound"),
    "PKR": CurrencyInfo("₨", "Pakistani Rupee"),
    "VND": CurrencyInfo("₫", "Vietnamese Dong"),
    "BGN": CurrencyInfo("лв", "Bulgarian Lev"),
    "RON": CurrencyInfo("lei", "Romanian Leu"),
    "HRK": CurrencyInfo("kn", "Croatian Kuna"),
    "UAH": CurrencyInfo("₴", "Ukrainian Hryvnia"),
}
"""Supported currencies, keyed by ISO 4217 code."""
