"""This module contains the Expense class."""
from datetime import date
from decimal import Decimal
from typing import NamedTuple

from budget_ledger.core.amount import AmountLike
from budget_ledger.core.types import CategoryId, ExpenseId
from budget_ledger.domain.category import validate_positive_amount
from budget_ledger.exceptions import ValidationError


class Expense(NamedTuple):
    """A single dated spend recorded against a category."""

    id: ExpenseId
    category_id: CategoryId
    amount: Decimal
    description: str
    expense_date: date

    @classmethod
    def create(  # pylint: disable=too-many-arguments,too-many-positional-arguments
        cls,
        expense_id: ExpenseId,
        category_id: CategoryId | None,
        amount: AmountLike | None,
        description: str | None,
        expense_date: date,
    ) -> "Expense":
        """Build a validated expense.

        The caller is responsible for checking that the category exists.

        Raises:
            ValidationError: If the category id is missing or the amount is
                not a positive number.
        """
        if not expense_id:
            raise ValidationError("Expense id is required", field="id")
        if not category_id:
            raise ValidationError("Expense category is required", field="category_id")
        if not isinstance(expense_date, date):
            raise ValidationError("Expense date is required", field="date")
        return cls(
            id=expense_id,
            category_id=category_id,
            amount=validate_positive_amount(amount, "amount"),
            description=description or "",
            expense_date=expense_date,
        )
