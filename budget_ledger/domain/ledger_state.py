"""This module contains the LedgerState class."""
from typing import NamedTuple

from budget_ledger.core.types import CategoryId, ExpenseId
from budget_ledger.domain.category import Category
from budget_ledger.domain.expense import Expense
from budget_ledger.domain.settings import Settings


class LedgerState(NamedTuple):
    """An immutable snapshot of the whole ledger.

    Categories and expenses are kept in insertion order.
    """

    categories: tuple[Category, ...] = ()
    expenses: tuple[Expense, ...] = ()
    settings: Settings = Settings()

    def find_category(self, category_id: CategoryId) -> Category | None:
        """Return the category with the given id, if any."""
        return next((cat for cat in self.categories if cat.id == category_id), None)

    def find_expense(self, expense_id: ExpenseId) -> Expense | None:
        """Return the expense with the given id, if any."""
        return next((exp for exp in self.expenses if exp.id == expense_id), None)

    def expenses_for_category(self, category_id: CategoryId) -> tuple[Expense, ...]:
        """Return the expenses recorded against a category."""
        return tuple(exp for exp in self.expenses if exp.category_id == category_id)

    def orphan_expenses(self) -> tuple[Expense, ...]:
        """Return the expenses whose category does not exist."""
        category_ids = {cat.id for cat in self.categories}
        return tuple(exp for exp in self.expenses if exp.category_id not in category_ids)
