"""This module contains the Settings class."""
from datetime import datetime
from typing import NamedTuple

from budget_ledger.core.types import DEFAULT_CURRENCY


class Settings(NamedTuple):
    """User preferences of the ledger."""

    currency: str = DEFAULT_CURRENCY
    user_name: str = ""
    auto_backup: bool = False
    last_backup: datetime | None = None
