"""Service owning the ledger state.

The store keeps the current :class:`LedgerState` in memory and replaces it
wholesale on every mutation. Subscribers are notified with the new state and
the matching durable writes are handed to the write queue.
"""

import logging
import uuid
from datetime import date, datetime
from typing import Callable

from budget_ledger.core.amount import AmountLike
from budget_ledger.core.types import CategoryId, ExpenseId, Frequency
from budget_ledger.domain.category import Category
from budget_ledger.domain.expense import Expense
from budget_ledger.domain.ledger_state import LedgerState
from budget_ledger.domain.settings import Settings
from budget_ledger.exceptions import (
    CategoryNotFoundError,
    ExpenseNotFoundError,
    ValidationError,
)
from budget_ledger.infrastructure.persistence.write_queue import WriteQueue

logger = logging.getLogger(__name__)

StateListener = Callable[[LedgerState], None]
"""Called with the new ledger state after every change."""


def new_id() -> str:
    """Return a new unique record id."""
    return uuid.uuid4().hex


class LedgerStore:
    """Owner of categories, expenses and settings."""

    def __init__(
        self,
        writer: WriteQueue,
        default_settings: Settings = Settings(),
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        """Initialize the store.

        Args:
            writer: Queue applying durable writes.
            default_settings: Settings used when none are stored.
            clock: Source of "today" for expenses without a date.
            id_factory: Generator of new record ids.
        """
        self._writer = writer
        self._default_settings = default_settings
        self._clock = clock
        self._id_factory = id_factory
        self._state = LedgerState(settings=default_settings)
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> LedgerState:
        """Return the current ledger state."""
        return self._state

    def load(self) -> LedgerState:
        """Load the ledger from the repository.

        Raises:
            PersistenceError: If the repository cannot be read.
        """
        repository = self._writer.repository
        repository.initialize()
        categories = repository.get_all_categories()
        expenses = repository.get_all_expenses()
        settings = repository.get_settings() or self._default_settings

        state = LedgerState(categories, expenses, settings)
        if orphans := state.orphan_expenses():
            # Left behind by an interrupted write; the invariant forbids them
            logger.warning("Dropping %d orphan expenses", len(orphans))
            state = state._replace(
                expenses=tuple(exp for exp in expenses if exp not in orphans)
            )
            for orphan in orphans:
                self._writer.submit(
                    f"delete orphan expense {orphan.id}",
                    lambda repo, expense_id=orphan.id: repo.delete_expense(expense_id),
                )

        logger.info(
            "Loaded %d categories and %d expenses",
            len(state.categories),
            len(state.expenses),
        )
        self._set_state(state)
        return state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener called after every state change.

        Returns:
            A callable removing the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Categories

    def add_category(
        self, name: str, target: AmountLike, frequency: Frequency | str
    ) -> Category:
        """Create a category.

        Raises:
            ValidationError: If the name is empty, the target is not positive
                or the frequency is unknown.
        """
        category = Category.create(self._id_factory(), name, target, frequency)
        self._set_state(
            self._state._replace(categories=self._state.categories + (category,))
        )
        self._writer.submit(
            f"insert category {category.id}",
            lambda repo: repo.insert_category(category),
        )
        logger.info("Added category %s (%s)", category.id, category.name)
        return category

    def delete_category(self, category_id: CategoryId) -> tuple[Expense, ...]:
        """Delete a category and every expense recorded against it.

        Returns:
            The expenses removed with the category.

        Raises:
            CategoryNotFoundError: If the category does not exist.
        """
        if self._state.find_category(category_id) is None:
            raise CategoryNotFoundError(category_id)

        removed = self._state.expenses_for_category(category_id)
        self._set_state(
            self._state._replace(
                categories=tuple(
                    cat for cat in self._state.categories if cat.id != category_id
                ),
                expenses=tuple(
                    exp
                    for exp in self._state.expenses
                    if exp.category_id != category_id
                ),
            )
        )
        self._writer.submit(
            f"delete category {category_id}",
            lambda repo: repo.delete_category(category_id),
        )
        logger.info(
            "Deleted category %s and %d expenses", category_id, len(removed)
        )
        return removed

    # Expenses

    def add_expense(
        self,
        category_id: CategoryId,
        amount: AmountLike,
        description: str | None = None,
        expense_date: date | None = None,
    ) -> Expense:
        """Record an expense.

        Raises:
            ValidationError: If the category does not exist or the amount is
                not positive.
        """
        if not category_id or self._state.find_category(category_id) is None:
            raise ValidationError(
                f"Unknown category: {category_id!r}", field="category_id"
            )
        if expense_date is None:
            expense_date = self._clock().date()
        elif isinstance(expense_date, datetime):
            expense_date = expense_date.date()

        expense = Expense.create(
            self._id_factory(), category_id, amount, description, expense_date
        )
        self._set_state(
            self._state._replace(expenses=self._state.expenses + (expense,))
        )
        self._writer.submit(
            f"insert expense {expense.id}",
            lambda repo: repo.insert_expense(expense),
        )
        logger.info("Added expense %s to category %s", expense.id, category_id)
        return expense

    def delete_expense(self, expense_id: ExpenseId) -> None:
        """Delete an expense.

        Raises:
            ExpenseNotFoundError: If the expense does not exist.
        """
        if self._state.find_expense(expense_id) is None:
            raise ExpenseNotFoundError(expense_id)

        self._set_state(
            self._state._replace(
                expenses=tuple(
                    exp for exp in self._state.expenses if exp.id != expense_id
                )
            )
        )
        self._writer.submit(
            f"delete expense {expense_id}",
            lambda repo: repo.delete_expense(expense_id),
        )
        logger.info("Deleted expense %s", expense_id)

    # Settings and whole ledger

    def save_settings(self, settings: Settings) -> None:
        """Replace the settings record wholesale.

        Raises:
            ValidationError: If the currency code is empty.
        """
        if not settings.currency or not settings.currency.strip():
            raise ValidationError("Currency is required", field="currency")
        self._set_state(self._state._replace(settings=settings))
        self._writer.submit("save settings", lambda repo: repo.save_settings(settings))

    def replace_state(self, state: LedgerState) -> None:
        """Replace the whole ledger, e.g. when restoring a backup.

        Raises:
            ValidationError: If an expense references an unknown category.
        """
        if orphans := state.orphan_expenses():
            raise ValidationError(
                f"Expense {orphans[0].id!r} references an unknown category",
                field="category_id",
            )
        self._set_state(state)
        self._writer.submit("replace ledger", lambda repo: repo.replace_ledger(state))
        logger.info(
            "Replaced ledger with %d categories and %d expenses",
            len(state.categories),
            len(state.expenses),
        )

    def _set_state(self, state: LedgerState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:  # pylint: disable=broad-exception-caught
                logger.exception("Ledger listener %r failed", listener)
