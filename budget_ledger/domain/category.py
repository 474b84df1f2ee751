"""This module contains the Category class."""
from decimal import Decimal
from typing import NamedTuple

from budget_ledger.core.amount import AmountLike, to_amount
from budget_ledger.core.types import CategoryId, Frequency
from budget_ledger.exceptions import ValidationError


def validate_positive_amount(value: AmountLike | None, field: str) -> Decimal:
    """Convert a value to a decimal amount and check it is strictly positive.

    Raises:
        ValidationError: If the value is missing, not a number or not positive.
    """
    if value is None:
        raise ValidationError(f"{field} is required", field=field)
    try:
        amount = to_amount(value)
    except ValueError as e:
        raise ValidationError(f"{field} must be a number", field=field) from e
    if amount <= 0:
        raise ValidationError(f"{field} must be positive", field=field)
    return amount


class Category(NamedTuple):
    """A named recurring budget line with a target amount and frequency."""

    id: CategoryId
    name: str
    target: Decimal
    frequency: Frequency

    @classmethod
    def create(
        cls,
        category_id: CategoryId,
        name: str | None,
        target: AmountLike | None,
        frequency: Frequency | str | None,
    ) -> "Category":
        """Build a validated category.

        Raises:
            ValidationError: If the name is empty, the target is not a positive
                number or the frequency is unknown.
        """
        if not category_id:
            raise ValidationError("Category id is required", field="id")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Category name is required", field="name")
        amount = validate_positive_amount(target, "target")
        try:
            parsed_frequency = Frequency(frequency)
        except ValueError as e:
            raise ValidationError(
                f"Unknown frequency: {frequency!r}", field="frequency"
            ) from e
        return cls(
            id=category_id,
            name=name.strip(),
            target=amount,
            frequency=parsed_frequency,
        )
